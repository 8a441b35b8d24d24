"""Lambda handlers for article operations (admin and public APIs)."""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.entity_operations import DEFAULT_PAGE_SIZE, EntityOperations
    from utils.mappers import to_article_entity, to_article_list_item
    from utils.resources import Resources, get_resources
    from utils.responses import ProxyResponse, success
    from utils.routing import Router, path_param, query_int, query_param
    from utils.search_index import build_listing_query
    from utils.validation import validate_article
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.entity_operations import DEFAULT_PAGE_SIZE, EntityOperations
    from ..utils.mappers import to_article_entity, to_article_list_item
    from ..utils.resources import Resources, get_resources
    from ..utils.responses import ProxyResponse, success
    from ..utils.routing import Router, path_param, query_int, query_param
    from ..utils.search_index import build_listing_query
    from ..utils.validation import validate_article

articles = EntityOperations(
    kind="article",
    validate=validate_article,
    to_entity=to_article_entity,
    to_list_item=to_article_list_item,
    name_field="title.pt.keyword",
)


def list_public_articles(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """GET /v1/public/article?skip=&take=&name=&lang="""
    lang = query_param(event, "lang") or "pt"
    query = build_listing_query(
        query_int(event, "skip", 0),
        query_int(event, "take", DEFAULT_PAGE_SIZE),
        f"title.{lang}.keyword",
        query_param(event, "name"),
        active_only=True,
    )
    index = resources.search("article")
    return success(index.search(query))


def get_public_article(resources: Resources, event: Dict[str, Any]) -> ProxyResponse:
    """
    GET /v1/public/article/{id}, where ``id`` is a slug in any language.

    The slug is resolved through the index, the article itself re-read from
    the store. Unknown or inactive articles answer ``data: null``.
    """
    doc = resources.search("article").get_by_slug(path_param(event))
    if doc is None:
        return success(None)
    article = resources.store("article").get(doc["id"])
    if article is None or not article.get("active"):
        return success(None)
    return success(article)


ADMIN_ROUTER = Router(articles.admin_routes())

PUBLIC_ROUTER = Router(
    {
        ("GET", "/v1/public/article"): list_public_articles,
        ("GET", "/v1/public/article/{id}"): get_public_article,
    }
)


def admin_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/admin/article."""
    return ADMIN_ROUTER.dispatch(get_resources(), event)


def public_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/public/article."""
    return PUBLIC_ROUTER.dispatch(get_resources(), event)
