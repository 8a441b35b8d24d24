"""
Error handling utilities for Lambda functions.

Provides standardized errors with error codes, and the I/O failures raised by
the entity store, the change notifier and the search index client.
"""

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """
    Application error with error code and message.

    Used to return structured errors to API Gateway clients.
    """

    def __init__(self, error_code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the response body."""
        return {
            "errorCode": self.error_code,
            "message": self.message,
            **self.details,
        }


# Common error codes
class ErrorCode:
    """Standard error codes for the application."""

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_OPERATION = "INVALID_OPERATION"

    # Pipeline errors
    INGESTION_FAILED = "INGESTION_FAILED"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"
    SEARCH_ERROR = "SEARCH_ERROR"


class ValidationError(AppError):
    """Field-level validation failed; carries every message found."""

    def __init__(self, errors: List[str]):
        super().__init__(ErrorCode.INVALID_INPUT, "Validation failed", {"errors": list(errors)})
        self.errors = list(errors)


class StoreError(AppError):
    """Transport or decoding failure talking to the entity store."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.DATABASE_ERROR, message, details)


class PreconditionFailedError(StoreError):
    """A conditional write lost against a concurrent writer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.error_code = ErrorCode.PRECONDITION_FAILED


class NotifyError(AppError):
    """Publishing a change notification failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.NOTIFICATION_ERROR, message, details)


class SearchIndexError(AppError):
    """The search engine rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["statusCode"] = status_code
        super().__init__(ErrorCode.SEARCH_ERROR, message, details)
        self.status_code = status_code
        self.body = body


class IngestionError(AppError):
    """An index document could not be derived for a change notification."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.INGESTION_FAILED, message, details)


def handle_error(error: Exception) -> Dict[str, Any]:
    """
    Convert exception to standardized error response.

    Args:
        error: Exception to handle

    Returns:
        Error dictionary for the response body
    """
    if isinstance(error, AppError):
        return error.to_dict()

    # Unexpected error - return generic message
    return {
        "errorCode": ErrorCode.INTERNAL_ERROR,
        "message": "An unexpected error occurred. Please try again.",
    }
