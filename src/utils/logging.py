"""
Logging utilities for Lambda functions.

Provides structured JSON logging with correlation IDs for tracing a change
from the admin request through SNS/SQS into the search index.
"""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class StructuredLogger:
    """
    JSON logger for Lambda functions with correlation ID support.

    Example:
        logger = StructuredLogger(__name__)
        logger.info("Indexed entity", kind="event", entity_id="festival-de-jazz")
    """

    def __init__(self, name: str, correlation_id: Optional[str] = None) -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO"))
        self.name = name
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def _enabled(self, level: str) -> bool:
        threshold = _LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), 20)
        return _LEVELS[level] >= threshold

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        """Internal method to emit structured JSON logs."""
        if not self._enabled(level):
            return

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "logger": self.name,
            "message": message,
            "correlationId": self.correlation_id,
            **kwargs,
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        print(json.dumps(log_entry, default=str))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info level message."""
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning level message."""
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error level message."""
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug level message."""
        self._log("DEBUG", message, **kwargs)


def get_logger(name: str, correlation_id: Optional[str] = None) -> StructuredLogger:
    """Build a StructuredLogger, optionally bound to a correlation ID."""
    return StructuredLogger(name, correlation_id)


def get_correlation_id(event: Dict[str, Any]) -> str:
    """
    Extract or generate correlation ID from a Lambda event.

    Checks for correlation ID in:
    1. event['requestContext']['requestId'] (API Gateway)
    2. event['headers']['x-correlation-id']
    3. event['messageId'] (a single SQS record)
    4. Generates new UUID if not found
    """
    request_context = event.get("requestContext") or {}
    if "requestId" in request_context:
        return str(request_context["requestId"])

    headers = {str(k).lower(): v for k, v in (event.get("headers") or {}).items()}
    if headers.get("x-correlation-id"):
        return str(headers["x-correlation-id"])

    if event.get("messageId"):
        return str(event["messageId"])

    return str(uuid.uuid4())
