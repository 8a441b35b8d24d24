"""
Routing for API Gateway proxy events.

A ``Router`` is an explicit table of ``(verb, resource template)`` to handler
function, matched exactly on the lower-cased resource template API Gateway
reports in ``event["resource"]``.
"""

import json
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from .errors import AppError, PreconditionFailedError, ValidationError
from .logging import get_correlation_id, get_logger
from .responses import ProxyResponse, failure, server_error

if TYPE_CHECKING:  # pragma: no cover
    from .resources import Resources

RouteHandler = Callable[["Resources", Dict[str, Any]], ProxyResponse]

INVALID_OPERATION = "Invalid Operation"
PRECONDITION_FAILED = "The entity was modified by another request. Reload it and try again."


class Router:
    """Exact-match routing table."""

    def __init__(self, routes: Dict[Tuple[str, str], RouteHandler]) -> None:
        self.routes = {(verb.upper(), resource.lower()): handler for (verb, resource), handler in routes.items()}

    def resolve(self, method: str, resource: str) -> Optional[RouteHandler]:
        return self.routes.get(((method or "").upper(), (resource or "").lower()))

    def dispatch(self, resources: "Resources", event: Dict[str, Any]) -> ProxyResponse:
        """
        Run the handler registered for the event's verb and resource.

        Validation errors become 400 responses, any other failure a 500 with
        a generic message. An unknown route is a 400 ``Invalid Operation``.
        """
        method = event.get("httpMethod", "")
        resource = event.get("resource", "")
        logger = get_logger(__name__, get_correlation_id(event))

        handler = self.resolve(method, resource)
        if handler is None:
            logger.info("Unknown route", method=method, resource=resource)
            return failure([INVALID_OPERATION])

        try:
            return handler(resources, event)
        except ValidationError as e:
            logger.info("Validation failed", method=method, resource=resource, errors=e.errors)
            return failure(e.errors)
        except PreconditionFailedError as e:
            logger.info("Conditional write rejected", method=method, resource=resource, error=e.message)
            return failure([PRECONDITION_FAILED], status_code=409)
        except AppError as e:
            logger.error(
                "Request failed", method=method, resource=resource, error_code=e.error_code, error=e.message
            )
            return server_error()
        except Exception as e:
            logger.error("Unexpected error", method=method, resource=resource, error=str(e))
            return server_error()


def parse_json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode the request body into a JSON object.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    raw = event.get("body")
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise ValidationError(["Request body must be valid JSON."]) from e
    if not isinstance(body, dict):
        raise ValidationError(["Request body must be a JSON object."])
    return body


def path_param(event: Dict[str, Any], name: str = "id") -> str:
    return str((event.get("pathParameters") or {}).get(name) or "").strip()


def query_param(event: Dict[str, Any], name: str) -> Optional[str]:
    value = (event.get("queryStringParameters") or {}).get(name)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def query_int(event: Dict[str, Any], name: str, default: int) -> int:
    """Non-negative integer query parameter, ``default`` when absent or malformed."""
    value = query_param(event, name)
    if value is None:
        return default
    try:
        return max(int(value), 0)
    except ValueError:
        return default


def query_list(event: Dict[str, Any], name: str) -> List[str]:
    """Comma-separated query parameter, single and multi-value forms merged."""
    values: List[str] = []
    multi = (event.get("multiValueQueryStringParameters") or {}).get(name)
    raw_values = multi if multi else [query_param(event, name)]
    for raw in raw_values:
        if raw:
            values.extend(part.strip() for part in str(raw).split(",") if part.strip())
    return values


def header(event: Dict[str, Any], name: str) -> Optional[str]:
    """Case-insensitive request header."""
    headers = {str(k).lower(): v for k, v in (event.get("headers") or {}).items()}
    value = headers.get(name.lower())
    return str(value).strip() if value else None
