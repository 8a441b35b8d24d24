"""
SQS-triggered ingestors.

Each message carries ``{"id": ...}`` (raw, or wrapped in an SNS envelope).
The id is only a hint: the canonical entity is always re-read from S3, joined
with the entities it references and upserted into its index. Failed records
are reported back to SQS as a partial batch response so only they are
redelivered.
"""

import json
from typing import Any, Callable, Dict, List, Optional

# Handle both Lambda (absolute) and unit test (relative) imports
try:  # pragma: no cover
    from utils.errors import IngestionError
    from utils.ids import normalize_id, occurrence_doc_id
    from utils.logging import StructuredLogger, get_correlation_id, get_logger
    from utils.mappers import (
        to_article_index,
        to_category_index,
        to_company_index,
        to_event_index,
        to_location_index,
    )
    from utils.recurrence import expand_occurrences
    from utils.resources import Resources, get_resources
    from utils.search_index import build_stale_series_query
except ModuleNotFoundError:  # pragma: no cover
    from ..utils.errors import IngestionError
    from ..utils.ids import normalize_id, occurrence_doc_id
    from ..utils.logging import StructuredLogger, get_correlation_id, get_logger
    from ..utils.mappers import (
        to_article_index,
        to_category_index,
        to_company_index,
        to_event_index,
        to_location_index,
    )
    from ..utils.recurrence import expand_occurrences
    from ..utils.resources import Resources, get_resources
    from ..utils.search_index import build_stale_series_query

logger = get_logger(__name__)

IndexFn = Callable[[Resources, str, StructuredLogger], Dict[str, Any]]


def _require(resources: Resources, kind: str, entity_id: str) -> Dict[str, Any]:
    """Re-read the canonical entity; a change for a missing entity is an error."""
    entity = resources.store(kind).get(entity_id)
    if entity is None:
        raise IngestionError(f"{kind} '{entity_id}' not found", {"kind": kind, "id": entity_id})
    return entity


def _resolve(
    resources: Resources, kind: str, ref_id: Optional[str], log: StructuredLogger, referrer: str
) -> Optional[Dict[str, Any]]:
    """Resolve a weak reference. A dangling one is logged and left empty."""
    if not ref_id:
        return None
    entity = resources.store(kind).get(ref_id)
    if entity is None:
        log.warning("Dangling reference", kind=kind, ref_id=ref_id, referrer=referrer)
    return entity


def index_article(resources: Resources, entity_id: str, log: StructuredLogger = logger) -> Dict[str, Any]:
    article = _require(resources, "article", entity_id)
    result = resources.index("article").upsert(to_article_index(article), doc_id=article["id"])
    return {"id": article["id"], "result": result, "documents": 1}


def index_category(resources: Resources, entity_id: str, log: StructuredLogger = logger) -> Dict[str, Any]:
    category = _require(resources, "category", entity_id)
    parent = _resolve(resources, "category", category.get("parent_id"), log, category["id"])
    result = resources.index("category").upsert(to_category_index(category, parent), doc_id=category["id"])
    return {"id": category["id"], "result": result, "documents": 1}


def index_company(resources: Resources, entity_id: str, log: StructuredLogger = logger) -> Dict[str, Any]:
    company = _require(resources, "company", entity_id)
    result = resources.index("company").upsert(to_company_index(company), doc_id=company["id"])
    return {"id": company["id"], "result": result, "documents": 1}


def index_location(resources: Resources, entity_id: str, log: StructuredLogger = logger) -> Dict[str, Any]:
    location = _require(resources, "location", entity_id)
    result = resources.index("location").upsert(to_location_index(location), doc_id=location["id"])
    return {"id": location["id"], "result": result, "documents": 1}


def index_event(resources: Resources, entity_id: str, log: StructuredLogger = logger) -> Dict[str, Any]:
    """
    Index an event as one document, or one document per upcoming occurrence.

    Documents are written first; then every other document of the same event
    is deleted. Readers may briefly see both generations, never neither.
    """
    event = _require(resources, "event", entity_id)
    event_id = event["id"]
    category = _resolve(resources, "category", event.get("category"), log, event_id)
    company = _resolve(resources, "company", event.get("company"), log, event_id)

    index = resources.index("event")

    if event.get("recurrence"):
        occurrences = expand_occurrences(event.get("startDate"), event.get("endDate"), event["recurrence"])
        docs = [
            (occurrence_doc_id(event_id, occ.start), to_event_index(event, category, company, occ))
            for occ in occurrences
        ]
        written = index.bulk_upsert(docs)
        keep_ids = [doc_id for doc_id, _ in docs]
        result = "bulk"
    else:
        result = index.upsert(to_event_index(event, category, company), doc_id=event_id)
        written = 1
        keep_ids = [event_id]

    deleted = index.delete_by_query(build_stale_series_query(event_id, keep_ids))
    log.info("Indexed event", entity_id=event_id, documents=written, stale_deleted=deleted)
    return {"id": event_id, "result": result, "documents": written, "deleted": deleted}


INDEXERS: Dict[str, IndexFn] = {
    "article": index_article,
    "category": index_category,
    "company": index_company,
    "event": index_event,
    "location": index_location,
}


def parse_record_id(record: Dict[str, Any]) -> str:
    """
    Extract the entity id from an SQS record.

    Handles raw ``{"id"}`` bodies and SNS notification envelopes. Anything
    malformed yields an empty id.
    """
    try:
        body = json.loads(record.get("body") or "")
        if isinstance(body, dict) and body.get("Type") == "Notification" and "Message" in body:
            body = json.loads(body["Message"])
    except (TypeError, ValueError):
        body = {}
    if not isinstance(body, dict):
        return ""
    return normalize_id(body.get("id"))


def process_batch(resources: Resources, event: Dict[str, Any], kind: str) -> Dict[str, List[Dict[str, str]]]:
    """
    Ingest every record of an SQS batch.

    One failing record never stops the others; each failure is reported
    under ``batchItemFailures``.

    Args:
        resources: Resource handle
        event: SQS event
        kind: Entity kind of the queue

    Returns:
        Partial batch response
    """
    index_fn = INDEXERS[kind]
    failures: List[Dict[str, str]] = []

    for record in event.get("Records", []):
        message_id = record.get("messageId", "")
        log = get_logger(__name__, get_correlation_id(record))
        entity_id = parse_record_id(record)

        if not entity_id:
            log.error("Message has no entity id", kind=kind, message_id=message_id)
            failures.append({"itemIdentifier": message_id})
            continue

        try:
            result = index_fn(resources, entity_id, log)
            log.info("Ingested change", kind=kind, entity_id=entity_id, result=result.get("result"))
        except Exception as e:
            log.error("Ingestion failed", kind=kind, entity_id=entity_id, error_type=type(e).__name__, error=str(e))
            failures.append({"itemIdentifier": message_id})

    return {"batchItemFailures": failures}


def article_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """SQS entrypoint of the article ingestor."""
    return process_batch(get_resources(), event, "article")


def category_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """SQS entrypoint of the category ingestor."""
    return process_batch(get_resources(), event, "category")


def company_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """SQS entrypoint of the company ingestor."""
    return process_batch(get_resources(), event, "company")


def event_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """SQS entrypoint of the event ingestor."""
    return process_batch(get_resources(), event, "event")


def location_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """SQS entrypoint of the location ingestor."""
    return process_batch(get_resources(), event, "location")
