"""Lambda handlers for category operations (admin and public APIs)."""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.entity_operations import EntityOperations
    from utils.mappers import to_category_entity, to_category_list_item
    from utils.resources import Resources, get_resources
    from utils.responses import ProxyResponse, success
    from utils.routing import Router, path_param, query_int, query_param
    from utils.search_index import build_children_query, build_listing_query
    from utils.validation import validate_category
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.entity_operations import EntityOperations
    from ..utils.mappers import to_category_entity, to_category_list_item
    from ..utils.resources import Resources, get_resources
    from ..utils.responses import ProxyResponse, success
    from ..utils.routing import Router, path_param, query_int, query_param
    from ..utils.search_index import build_children_query, build_listing_query
    from ..utils.validation import validate_category

categories = EntityOperations(
    kind="category",
    validate=validate_category,
    to_entity=to_category_entity,
    to_list_item=to_category_list_item,
    name_field="name.pt.keyword",
)

# Categories are few; public listings return them all unless paged explicitly
PUBLIC_PAGE_SIZE = 100


def list_root_categories(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/public/category: active top-level categories."""
    lang = query_param(event, "lang") or "pt"
    query = build_listing_query(
        query_int(event, "skip", 0),
        query_int(event, "take", PUBLIC_PAGE_SIZE),
        f"name.{lang}.keyword",
        query_param(event, "name"),
        root_only=True,
        active_only=True,
    )
    return success(resources.search("category").search(query))


def get_public_category(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """
    GET /v1/public/category/{id}, where ``id`` is a slug in any language.

    The slug is resolved through the index, the category itself re-read from
    the store.
    """
    doc = resources.search("category").get_by_slug(path_param(event))
    if doc is None:
        return success(None)
    category = resources.store("category").get(doc["id"])
    if category is None or not category.get("active"):
        return success(None)
    return success(category)


def list_child_categories(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/public/category/{id}/children, ``id`` being a slug or a category id."""
    index = resources.search("category")
    key = path_param(event)
    parent = index.get_by_slug(key)
    parent_id = parent["id"] if parent else key

    query = build_children_query(
        parent_id,
        query_int(event, "skip", 0),
        query_int(event, "take", PUBLIC_PAGE_SIZE),
    )
    return success(index.search(query))


ADMIN_ROUTER = Router(categories.admin_routes())

PUBLIC_ROUTER = Router(
    {
        ("GET", "/v1/public/category"): list_root_categories,
        ("GET", "/v1/public/category/{id}"): get_public_category,
        ("GET", "/v1/public/category/{id}/children"): list_child_categories,
    }
)


def admin_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/admin/category."""
    return ADMIN_ROUTER.dispatch(get_resources(), event)


def public_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/public/category."""
    return PUBLIC_ROUTER.dispatch(get_resources(), event)
