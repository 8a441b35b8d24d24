"""
API Gateway response builders.

Every HTTP handler answers with the same envelope:
``{"success": true, "data": ...}`` or ``{"success": false, "errors": [...]}``,
serialized as JSON with CORS headers.
"""

import json
from typing import Any, Dict, List, Optional, TypedDict

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Correlation-Id",
    "Access-Control-Allow-Methods": "GET,POST,PUT,PATCH,OPTIONS",
}

SUPPORT_MESSAGE = "Please, contact support!"


class ProxyResponse(TypedDict):
    """API Gateway proxy integration response."""

    statusCode: int
    headers: Dict[str, str]
    body: str


def build_response(status_code: int, body: Dict[str, Any]) -> ProxyResponse:
    """
    Serialize an envelope into a proxy response.

    Args:
        status_code: HTTP status code
        body: Envelope to serialize

    Returns:
        ProxyResponse with CORS headers
    """
    return ProxyResponse(
        statusCode=status_code,
        headers=dict(CORS_HEADERS),
        body=json.dumps(body, ensure_ascii=False, default=str),
    )


def success(data: Any = None) -> ProxyResponse:
    """200 with ``data``. A missing entity is answered as ``data: null``."""
    return build_response(200, {"success": True, "data": data})


def failure(errors: List[str], status_code: int = 400) -> ProxyResponse:
    """400 (or the given status) with a list of error messages."""
    return build_response(status_code, {"success": False, "errors": list(errors)})


def server_error(action: Optional[str] = None) -> ProxyResponse:
    """500 with a generic message; details stay in the logs."""
    message = f"Failed to {action} - {SUPPORT_MESSAGE}" if action else f"Unexpected error - {SUPPORT_MESSAGE}"
    return failure([message], status_code=500)
