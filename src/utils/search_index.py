"""
OpenSearch index client.

Every request is signed with SigV4 (service ``es``) and sent over a shared
httpx client. One ``SearchIndexClient`` talks to one index; the query
builders below produce the ``_search`` bodies used by the handlers.
"""

import json
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote

import boto3
import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest

from .errors import SearchIndexError
from .ids import normalize_id
from .logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from botocore.credentials import Credentials

logger = get_logger(__name__)

# Keyword sub-fields of an I18n slug
I18N_SLUG_FIELDS = ("slug.pt.keyword", "slug.en.keyword", "slug.es.keyword")

UPSERT_RESULTS = {"created", "updated"}

_DESC_BY_UPDATED = {"updated_at": {"order": "desc", "unmapped_type": "date"}}


class SigV4Signer:
    """Signs HTTP requests for the managed OpenSearch service."""

    def __init__(self, region: str, credentials: "Optional[Credentials]" = None, service: str = "es") -> None:
        self.region = region
        self.service = service
        self._credentials = credentials

    @property
    def credentials(self) -> "Credentials":
        if self._credentials is None:
            credentials = boto3.Session().get_credentials()
            if credentials is None:
                raise SearchIndexError("No AWS credentials available to sign search requests")
            self._credentials = credentials
        return self._credentials

    def sign(self, method: str, url: str, body: Optional[bytes], headers: Dict[str, str]) -> Dict[str, str]:
        """
        Sign a request.

        Args:
            method: HTTP verb
            url: Full URL, query string included
            body: Exact bytes that will be sent
            headers: Headers to sign along with the request

        Returns:
            Headers to send, including Authorization and X-Amz-Date
        """
        request = AWSRequest(method=method, url=url, data=body or b"", headers=headers)
        SigV4Auth(self.credentials.get_frozen_credentials(), self.service, self.region).add_auth(request)
        return dict(request.headers.items())


class SearchIndexClient:
    """Signed REST calls against a single index."""

    def __init__(
        self,
        http_client: httpx.Client,
        endpoint: str,
        index: str,
        signer: SigV4Signer,
        timeout: float = 10.0,
        deadline: Optional[float] = None,
    ) -> None:
        self.http_client = http_client
        self.endpoint = endpoint.rstrip("/")
        self.index = index
        self.signer = signer
        self.timeout = timeout
        self.deadline = deadline

    @property
    def base_url(self) -> str:
        return f"{self.endpoint}/{self.index}"

    def bounded(self, seconds: float) -> "SearchIndexClient":
        """A copy of this client that gives up once ``seconds`` have elapsed."""
        return SearchIndexClient(
            self.http_client,
            self.endpoint,
            self.index,
            self.signer,
            timeout=self.timeout,
            deadline=time.monotonic() + seconds,
        )

    def _remaining_timeout(self) -> float:
        if self.deadline is None:
            return self.timeout
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise SearchIndexError(f"Deadline exceeded before calling {self.index}")
        return min(self.timeout, remaining)

    def _request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = str(httpx.URL(f"{self.base_url}/{path}", params=params or {}))

        content: Optional[bytes] = None
        headers: Dict[str, str] = {}
        if isinstance(body, str):
            content = body.encode("utf-8")
            headers["Content-Type"] = "application/x-ndjson"
        elif body is not None:
            content = json.dumps(body, default=str).encode("utf-8")
            headers["Content-Type"] = "application/json"

        signed_headers = self.signer.sign(method, url, content, headers)
        try:
            return self.http_client.request(
                method,
                url,
                content=content,
                headers=signed_headers,
                timeout=self._remaining_timeout(),
            )
        except httpx.HTTPError as e:
            logger.error("Search request failed", method=method, index=self.index, path=path, error=str(e))
            raise SearchIndexError(f"{method} {self.index}/{path} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if not response.is_success:
            raise SearchIndexError(
                f"OpenSearch {action} failed: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise SearchIndexError(f"OpenSearch {action} returned invalid JSON", response.status_code) from e
        return data if isinstance(data, dict) else {}

    def upsert(self, doc: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        """
        Index a document under its id, replacing any previous version.

        Args:
            doc: Index document
            doc_id: Document ``_id`` (defaults to ``doc["id"]``)

        Returns:
            ``"created"`` or ``"updated"``

        Raises:
            SearchIndexError: On a non-2xx answer or an unexpected result
        """
        doc_id = doc_id or str(doc.get("id") or "")
        if not doc_id:
            raise ValueError("document id is required")

        response = self._request("PUT", f"_doc/{quote(doc_id, safe='')}", doc)
        self._raise_for_status(response, "index")
        result = self._json(response, "index").get("result")
        if result not in UPSERT_RESULTS:
            raise SearchIndexError(f"OpenSearch index returned unexpected result: {result}", response.status_code)
        return str(result)

    def bulk_upsert(self, docs: Sequence[Tuple[str, Dict[str, Any]]]) -> int:
        """
        Index many documents with one ``_bulk`` call.

        Args:
            docs: ``(doc_id, document)`` pairs

        Returns:
            Number of documents indexed
        """
        if not docs:
            return 0

        lines = []
        for doc_id, doc in docs:
            lines.append(json.dumps({"index": {"_id": doc_id}}))
            lines.append(json.dumps(doc, default=str))
        ndjson = "\n".join(lines) + "\n"

        response = self._request("POST", "_bulk", ndjson)
        self._raise_for_status(response, "bulk upsert")
        data = self._json(response, "bulk upsert")
        if data.get("errors"):
            failed = [item for item in data.get("items", []) if item.get("index", {}).get("error")]
            logger.error("Bulk upsert contained errors", index=self.index, failed=failed)
            raise SearchIndexError(f"OpenSearch bulk upsert rejected {len(failed)} document(s)", response.status_code)
        return len(docs)

    def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return a document's source, or None when it is not indexed."""
        if not doc_id:
            return None
        response = self._request("GET", f"_source/{quote(doc_id, safe='')}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "get")
        return self._json(response, "get")

    def get_by_slug(self, slug: str, fields: Iterable[str] = I18N_SLUG_FIELDS) -> Optional[Dict[str, Any]]:
        """
        Resolve a slug to a document.

        A slug may be shared by several documents over time; the most recently
        updated one wins.
        """
        normalized = normalize_id(slug)
        if not normalized:
            return None
        body = {
            "size": 1,
            "track_total_hits": False,
            "query": {
                "bool": {
                    "should": [{"term": {field: normalized}} for field in fields],
                    "minimum_should_match": 1,
                }
            },
            "sort": [_DESC_BY_UPDATED],
        }
        hits = self.search(body)
        return hits[0] if hits else None

    def search(self, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Run a ``_search`` and return the hit sources in order."""
        response = self._request("POST", "_search", body)
        self._raise_for_status(response, "search")
        hits = self._json(response, "search").get("hits", {}).get("hits", [])
        return [hit["_source"] for hit in hits if hit.get("_source")]

    def delete_by_query(self, query: Dict[str, Any]) -> int:
        """
        Delete every document matching a query.

        Returns:
            Number of deleted documents
        """
        response = self._request(
            "POST",
            "_delete_by_query",
            {"query": query},
            params={"conflicts": "proceed", "refresh": "true"},
        )
        self._raise_for_status(response, "delete-by-query")
        return int(self._json(response, "delete-by-query").get("deleted", 0))


def escape_wildcard(value: str) -> str:
    """Escape the wildcard metacharacters of a user-supplied filter."""
    return value.replace("\\", "\\\\").replace("*", "\\*").replace("?", "\\?")


def _name_clause(name_field: str, name: str) -> Dict[str, Any]:
    value = f"*{escape_wildcard(name.strip().lower())}*"
    return {"wildcard": {name_field: {"value": value, "case_insensitive": True}}}


def _compose(must: List[Dict[str, Any]], filters: List[Dict[str, Any]], must_not: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not (must or filters or must_not):
        return {"match_all": {}}
    bool_query: Dict[str, Any] = {}
    if must:
        bool_query["must"] = must
    if filters:
        bool_query["filter"] = filters
    if must_not:
        bool_query["must_not"] = must_not
    return {"bool": bool_query}


def build_listing_query(
    skip: int,
    take: int,
    name_field: Optional[str] = None,
    name: Optional[str] = None,
    root_only: bool = False,
    active_only: bool = False,
) -> Dict[str, Any]:
    """
    Paged listing of an index.

    Args:
        skip: Documents to skip
        take: Page size
        name_field: Keyword field the name filter applies to
        name: Case-insensitive substring filter
        root_only: Only documents without a ``parent_id``
        active_only: Only documents with ``active: true``

    Examples:
        >>> build_listing_query(0, 10)["query"]
        {'match_all': {}}
    """
    must = []
    filters = []
    must_not = []
    if name_field and name and name.strip():
        must.append(_name_clause(name_field, name))
    if active_only:
        filters.append({"term": {"active": True}})
    if root_only:
        must_not.append({"exists": {"field": "parent_id"}})

    return {
        "from": max(skip, 0),
        "size": max(take, 0),
        "track_total_hits": False,
        "query": _compose(must, filters, must_not),
        "sort": [_DESC_BY_UPDATED],
    }


def build_children_query(parent_id: str, skip: int = 0, take: int = 100, active_only: bool = True) -> Dict[str, Any]:
    """
    Paged listing of the documents whose ``parent_id`` is ``parent_id``.

    Matches the field itself or its ``.keyword`` subfield, whichever the
    index mapping made exact.
    """
    normalized = normalize_id(parent_id)
    filters: List[Dict[str, Any]] = [
        {
            "bool": {
                "should": [
                    {"term": {"parent_id": normalized}},
                    {"term": {"parent_id.keyword": normalized}},
                ],
                "minimum_should_match": 1,
            }
        }
    ]
    if active_only:
        filters.append({"term": {"active": True}})
    return {
        "from": max(skip, 0),
        "size": max(take, 0),
        "track_total_hits": False,
        "query": {"bool": {"filter": filters}},
        "sort": [_DESC_BY_UPDATED],
    }


def _iso(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc).isoformat()
    try:
        return _iso(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None


def build_event_listing_query(
    skip: int,
    take: int,
    name: Optional[str] = None,
    from_date: Any = None,
    category_ids: Optional[Sequence[str]] = None,
    lang: str = "pt",
) -> Dict[str, Any]:
    """
    Upcoming active events, one hit per event id.

    Occurrences of a recurring event are collapsed on ``id`` so each event
    appears once, at its next occurrence. Events are ordered by start date,
    sponsored first on ties.
    """
    must = []
    filters: List[Dict[str, Any]] = []

    if name and name.strip():
        must.append(_name_clause(f"title.{lang}.keyword", name))

    ids = [normalize_id(c) for c in (category_ids or []) if c]
    if ids:
        filters.append(
            {
                "bool": {
                    "should": [
                        {"terms": {"category.keyword": ids}},
                        {"terms": {"parentCategory.keyword": ids}},
                    ],
                    "minimum_should_match": 1,
                }
            }
        )

    gte = _iso(from_date) if from_date else None
    filters.append({"range": {"startDate": {"gte": gte or datetime.now(timezone.utc).isoformat()}}})
    filters.append({"term": {"active": True}})

    return {
        "from": max(skip, 0),
        "size": max(take, 0),
        "track_total_hits": False,
        "query": _compose(must, filters, []),
        "sort": [
            {"startDate": {"order": "asc", "unmapped_type": "date"}},
            {"sponsored": {"order": "desc", "unmapped_type": "boolean"}},
            _DESC_BY_UPDATED,
        ],
        "collapse": {
            "field": "id",
            "inner_hits": {
                "name": "next_occurrence",
                "size": 1,
                "sort": [{"startDate": {"order": "asc"}}],
                "_source": False,
            },
        },
        "_source": True,
    }


def build_related_events_query(base: Dict[str, Any], size: int = 4) -> Optional[Dict[str, Any]]:
    """
    Active events at the same location as ``base``, excluding ``base`` itself.

    Returns None when ``base`` has no location to relate on.
    """
    location = base.get("location")
    if not base.get("id") or not location:
        return None
    return {
        "size": size,
        "track_total_hits": False,
        "query": {
            "bool": {
                "filter": [
                    {"term": {"location.keyword": location}},
                    {"term": {"active": True}},
                ],
                "must_not": [{"term": {"id": base["id"]}}],
            }
        },
        "sort": [
            {"startDate": {"order": "desc", "unmapped_type": "date"}},
            _DESC_BY_UPDATED,
        ],
        "collapse": {"field": "id"},
    }


def build_stale_series_query(event_id: str, keep_ids: Sequence[str]) -> Dict[str, Any]:
    """
    Documents of an event other than the ones in ``keep_ids``.

    ``keep_ids`` are the document ids an ingestion run just wrote. Runs of the
    same event write the same deterministic ids, so overlapping runs never
    delete each other's documents.
    """
    return {
        "bool": {
            "filter": [{"term": {"id": normalize_id(event_id)}}],
            "must_not": [{"ids": {"values": list(keep_ids)}}],
        }
    }
