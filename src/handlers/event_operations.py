"""Lambda handlers for event operations (admin and public APIs)."""

from typing import Any, Dict, Optional

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.entity_operations import DEFAULT_PAGE_SIZE, EntityOperations
    from utils.mappers import to_event_entity, to_event_list_item, to_public_event
    from utils.resources import Resources, get_resources
    from utils.responses import ProxyResponse, success
    from utils.routing import Router, path_param, query_int, query_list, query_param
    from utils.search_index import build_event_listing_query, build_related_events_query
    from utils.validation import validate_event
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.entity_operations import DEFAULT_PAGE_SIZE, EntityOperations
    from ..utils.mappers import to_event_entity, to_event_list_item, to_public_event
    from ..utils.resources import Resources, get_resources
    from ..utils.responses import ProxyResponse, success
    from ..utils.routing import Router, path_param, query_int, query_list, query_param
    from ..utils.search_index import build_event_listing_query, build_related_events_query
    from ..utils.validation import validate_event

events = EntityOperations(
    kind="event",
    validate=validate_event,
    to_entity=to_event_entity,
    to_list_item=to_event_list_item,
    name_field="title.pt.keyword",
)

RELATED_EVENTS_SIZE = 4


def list_public_events(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """
    GET /v1/public/event

    Query parameters: ``skip``, ``take``, ``name``, ``from`` (ISO date,
    default now), ``category`` (comma-separated ids, matching the category or
    its parent) and ``lang`` (language of the name filter).
    """
    query = build_event_listing_query(
        query_int(event, "skip", 0),
        query_int(event, "take", DEFAULT_PAGE_SIZE),
        name=query_param(event, "name"),
        from_date=query_param(event, "from"),
        category_ids=query_list(event, "category"),
        lang=query_param(event, "lang") or "pt",
    )
    return success(resources.search("event").search(query))


def _get_optional(resources: Resources, kind: str, entity_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return resources.store(kind).get(entity_id) if entity_id else None


def get_public_event(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """
    GET /v1/public/event/{id}, where ``id`` is a slug in any language.

    Answers the canonical event joined with its category, venue and
    location; ``data: null`` when unknown or inactive.
    """
    doc = resources.search("event").get_by_slug(path_param(event))
    if doc is None:
        return success(None)
    entity = resources.store("event").get(doc["id"])
    if entity is None or not entity.get("active"):
        return success(None)

    category = _get_optional(resources, "category", entity.get("category"))
    company = _get_optional(resources, "company", entity.get("company"))
    location = _get_optional(resources, "location", company.get("location") if company else None)
    return success(to_public_event(entity, category, company, location))


def list_related_events(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/public/event/related/{id}: other active events at the same location."""
    index = resources.search("event")
    base = index.get_by_slug(path_param(event))
    query = build_related_events_query(base, query_int(event, "take", RELATED_EVENTS_SIZE)) if base else None
    if query is None:
        return success([])
    return success(index.search(query))


ADMIN_ROUTER = Router(events.admin_routes())

PUBLIC_ROUTER = Router(
    {
        ("GET", "/v1/public/event"): list_public_events,
        ("GET", "/v1/public/event/{id}"): get_public_event,
        ("GET", "/v1/public/event/related/{id}"): list_related_events,
    }
)


def admin_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/admin/event."""
    return ADMIN_ROUTER.dispatch(get_resources(), event)


def public_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/public/event."""
    return PUBLIC_ROUTER.dispatch(get_resources(), event)
