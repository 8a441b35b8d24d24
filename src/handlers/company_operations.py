"""Lambda handler for company operations (admin API)."""

from typing import Any, Dict

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.entity_operations import EntityOperations
    from utils.mappers import to_company_entity, to_company_list_item
    from utils.resources import get_resources
    from utils.responses import ProxyResponse
    from utils.routing import Router
    from utils.validation import validate_company
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.entity_operations import EntityOperations
    from ..utils.mappers import to_company_entity, to_company_list_item
    from ..utils.resources import get_resources
    from ..utils.responses import ProxyResponse
    from ..utils.routing import Router
    from ..utils.validation import validate_company

companies = EntityOperations(
    kind="company",
    validate=validate_company,
    to_entity=to_company_entity,
    to_list_item=to_company_list_item,
    name_field="name.keyword",
)

ADMIN_ROUTER = Router(companies.admin_routes())


def admin_handler(event: Dict[str, Any], context: Any) -> ProxyResponse:
    """API Gateway entrypoint of /v1/admin/company."""
    return ADMIN_ROUTER.dispatch(get_resources(), event)
