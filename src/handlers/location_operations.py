"""Lambda handlers for location operations (admin and public APIs)."""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.entity_operations import EntityOperations
    from utils.mappers import to_location_entity, to_location_list_item
    from utils.resources import Resources, get_resources
    from utils.responses import ProxyResponse, success
    from utils.routing import Router, path_param, query_int, query_param
    from utils.search_index import build_listing_query
    from utils.validation import validate_location
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.entity_operations import EntityOperations
    from ..utils.mappers import to_location_entity, to_location_list_item
    from ..utils.resources import Resources, get_resources
    from ..utils.responses import ProxyResponse, success
    from ..utils.routing import Router, path_param, query_int, query_param
    from ..utils.search_index import build_listing_query
    from ..utils.validation import validate_location

locations = EntityOperations(
    kind="location",
    validate=validate_location,
    to_entity=to_location_entity,
    to_list_item=to_location_list_item,
    name_field="city.keyword",
)

PUBLIC_PAGE_SIZE = 100


def list_public_locations(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/public/location?name=: active locations, filtered by city."""
    query = build_listing_query(
        query_int(event, "skip", 0),
        query_int(event, "take", PUBLIC_PAGE_SIZE),
        "city.keyword",
        query_param(event, "name"),
        active_only=True,
    )
    return success(resources.search("location").search(query))


def get_public_location(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/public/location/{id}: the canonical location, null when unknown or inactive."""
    location = resources.store("location").get(path_param(event))
    if location is None or not location.get("active"):
        return success(None)
    return success(location)


ADMIN_ROUTER = Router(locations.admin_routes())

PUBLIC_ROUTER = Router(
    {
        ("GET", "/v1/public/location"): list_public_locations,
        ("GET", "/v1/public/location/{id}"): get_public_location,
    }
)


def admin_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/admin/location."""
    return ADMIN_ROUTER.dispatch(get_resources(), event)


def public_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/public/location."""
    return PUBLIC_ROUTER.dispatch(get_resources(), event)
