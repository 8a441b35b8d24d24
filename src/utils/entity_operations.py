"""
Admin CRUD operations shared by every indexed entity kind.

Reads of a single entity come from the canonical store, listings from the
search index. Writes go through the outbox so the ingestor always hears
about them.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .errors import ValidationError
from .logging import get_correlation_id, get_logger
from .mappers import resolve_entity_id, with_active
from .responses import ProxyResponse, failure, success
from .routing import header, parse_json_body, path_param, query_int, query_param
from .search_index import build_listing_query
from .validation import validate_toggle

if TYPE_CHECKING:  # pragma: no cover
    from .resources import Resources

DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class EntityOperations:
    """
    Admin handlers of one entity kind.

    Attributes:
        kind: Entity kind (``article``, ``category``...)
        validate: Request validator returning error messages
        to_entity: Request (+ stored version) to canonical entity
        to_list_item: Index document to listing row
        name_field: Keyword field the ``name`` listing filter applies to
    """

    kind: str
    validate: Callable[[Dict[str, Any]], List[str]]
    to_entity: Callable[..., Dict[str, Any]]
    to_list_item: Callable[[Dict[str, Any]], Dict[str, Any]]
    name_field: str

    def list_entities(self, resources: "Resources", event: Dict[str, Any]) -> ProxyResponse:
        """GET /v1/admin/{kind}?skip=&take=&name="""
        query = build_listing_query(
            query_int(event, "skip", 0),
            query_int(event, "take", DEFAULT_PAGE_SIZE),
            self.name_field,
            query_param(event, "name"),
        )
        index = resources.search(self.kind)
        return success([self.to_list_item(doc) for doc in index.search(query)])

    def get(self, resources: "Resources", event: Dict[str, Any]) -> ProxyResponse:
        """GET /v1/admin/{kind}/{id}. A missing entity answers ``data: null``."""
        entity_id = path_param(event)
        if not entity_id:
            return failure(["id is required."])
        return success(resources.store(self.kind).get(entity_id))

    def create(self, resources: "Resources", event: Dict[str, Any]) -> ProxyResponse:
        """POST /v1/admin/{kind}: create, or replace the entity with the same id."""
        request = parse_json_body(event)
        self._validate(request)

        stored = resources.store(self.kind).get_versioned(resolve_entity_id(request))
        entity = self.to_entity(request, stored.data if stored else None)
        self._publish(resources, event, entity)
        return success(True)

    def replace(self, resources: "Resources", event: Dict[str, Any]) -> ProxyResponse:
        """PUT /v1/admin/{kind}/{id}: the path id wins over the body."""
        entity_id = path_param(event)
        request = {**parse_json_body(event), "id": entity_id}
        self._validate(request)

        existing = resources.store(self.kind).get(entity_id)
        if existing is None:
            return failure([f"{self.kind} '{entity_id}' not found."])
        self._publish(resources, event, self.to_entity(request, existing))
        return success(True)

    def toggle(self, resources: "Resources", event: Dict[str, Any]) -> ProxyResponse:
        """PATCH /v1/admin/{kind}/{id} with ``{"active": bool}``."""
        entity_id = path_param(event)
        request = parse_json_body(event)
        errors = [] if entity_id else ["id is required."]
        errors.extend(validate_toggle(request))
        if errors:
            raise ValidationError(errors)

        existing = resources.store(self.kind).get(entity_id)
        if existing is None:
            return failure([f"{self.kind} '{entity_id}' not found."])
        self._publish(resources, event, with_active(existing, request["active"]))
        return success(True)

    def _validate(self, request: Dict[str, Any]) -> None:
        errors = self.validate(request)
        if errors:
            raise ValidationError(errors)

    def _publish(self, resources: "Resources", event: Dict[str, Any], entity: Dict[str, Any]) -> None:
        # Unconditional unless the client sent the ETag it read
        if_match: Optional[str] = header(event, "If-Match")
        resources.publish(self.kind, entity, if_match=if_match)
        get_logger(__name__, get_correlation_id(event)).info(
            "Saved entity", kind=self.kind, entity_id=entity["id"], conditional=bool(if_match)
        )

    def admin_routes(self) -> Dict[Any, Callable[["Resources", Dict[str, Any]], ProxyResponse]]:
        """Routing table entries of the admin API for this kind."""
        base = f"/v1/admin/{self.kind}"
        return {
            ("GET", base): self.list_entities,
            ("GET", f"{base}/{{id}}"): self.get,
            ("POST", base): self.create,
            ("PUT", f"{base}/{{id}}"): self.replace,
            ("PATCH", f"{base}/{{id}}"): self.toggle,
        }
