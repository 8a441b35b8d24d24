"""
Lambda handlers for the institutional "about" page.

A single document, not indexed and therefore never notified.
"""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.errors import ValidationError
    from utils.logging import get_correlation_id, get_logger
    from utils.mappers import to_about_entity
    from utils.resources import Resources, get_resources
    from utils.responses import ProxyResponse, success
    from utils.routing import Router, header, parse_json_body
    from utils.validation import validate_about
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.errors import ValidationError
    from ..utils.logging import get_correlation_id, get_logger
    from ..utils.mappers import to_about_entity
    from ..utils.resources import Resources, get_resources
    from ..utils.responses import ProxyResponse, success
    from ..utils.routing import Router, header, parse_json_body
    from ..utils.validation import validate_about


def get_about(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/admin/about and /v1/public/about. Null until first saved."""
    return success(resources.about_store().get())


def put_about(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """PUT /v1/admin/about"""
    request = parse_json_body(event)
    errors = validate_about(request)
    if errors:
        raise ValidationError(errors)

    store = resources.about_store()
    about = to_about_entity(request, store.get())
    store.put(about, if_match=header(event, "If-Match"))
    get_logger(__name__, get_correlation_id(event)).info("Saved about page")
    return success(True)


ADMIN_ROUTER = Router(
    {
        ("GET", "/v1/admin/about"): get_about,
        ("PUT", "/v1/admin/about"): put_about,
    }
)

PUBLIC_ROUTER = Router({("GET", "/v1/public/about"): get_about})


def admin_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/admin/about."""
    return ADMIN_ROUTER.dispatch(get_resources(), event)


def public_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/public/about."""
    return PUBLIC_ROUTER.dispatch(get_resources(), event)
