"""
Entity and index document mappers.

Requests become canonical entities (``to_*_entity``), entities become the
denormalized documents stored in the search index (``to_*_index``), and index
documents become the rows of the admin listings (``to_*_list_item``).

Entity builders take the previously stored version so ``created_at`` is set
once and preserved, while ``updated_at`` moves on every write.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .ids import normalize_id
from .recurrence import Occurrence, parse_datetime

LANGUAGES = ("pt", "en", "es")

ADDRESS_FIELDS = (
    "street",
    "number",
    "complement",
    "district",
    "city",
    "state",
    "state_full",
    "postal_code",
    "country",
    "country_code",
)


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


def to_iso(value: Any) -> Optional[str]:
    """Normalize a timestamp to ISO-8601 UTC, keeping None and unparseable input as given."""
    moment = parse_datetime(value)
    if moment is None:
        return value or None
    return moment.isoformat()


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def to_i18n(value: Any) -> Dict[str, str]:
    """Trimmed ``{pt, en, es}`` triple; missing languages become empty strings."""
    value = value if isinstance(value, dict) else {}
    return {lang: _text(value.get(lang)) for lang in LANGUAGES}


def _object(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _audit(existing: Optional[Dict[str, Any]], now: Optional[str]) -> Dict[str, str]:
    now = now or utc_now()
    created_at = existing.get("created_at") if existing else None
    return {"created_at": created_at or now, "updated_at": now}


def _active(request: Dict[str, Any], existing: Optional[Dict[str, Any]]) -> bool:
    if request.get("active") is not None:
        return bool(request["active"])
    return bool(existing.get("active")) if existing else False


def resolve_entity_id(request: Dict[str, Any]) -> str:
    """
    Entity id of a write request.

    An explicit ``id`` wins; otherwise the Portuguese slug (or the plain slug
    of a company) becomes the id.
    """
    if request.get("id"):
        return normalize_id(request["id"])
    slug = request.get("slug")
    if isinstance(slug, dict):
        return normalize_id(slug.get("pt"))
    return normalize_id(slug)


# ---------------------------------------------------------------------------
# Request -> entity
# ---------------------------------------------------------------------------


def to_article_entity(
    request: Dict[str, Any], existing: Optional[Dict[str, Any]] = None, now: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "id": resolve_entity_id(request),
        "title": to_i18n(request.get("title")),
        "slug": to_i18n(request.get("slug")),
        "body": to_i18n(request.get("body")),
        "heroImage": _text(request.get("heroImage")),
        "thumbnail": _text(request.get("thumbnail")),
        "publicationDate": to_iso(request.get("publicationDate")),
        "active": _active(request, existing),
        **_audit(existing, now),
    }


def to_category_entity(
    request: Dict[str, Any], existing: Optional[Dict[str, Any]] = None, now: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "id": resolve_entity_id(request),
        "name": to_i18n(request.get("name")),
        "slug": to_i18n(request.get("slug")),
        "description": to_i18n(request.get("description")),
        "parent_id": normalize_id(request.get("parent_id")) or None,
        "active": _active(request, existing),
        **_audit(existing, now),
    }


def to_company_entity(
    request: Dict[str, Any], existing: Optional[Dict[str, Any]] = None, now: Optional[str] = None
) -> Dict[str, Any]:
    address = _object(request.get("address"))
    geo = _object(request.get("geo"))
    return {
        "id": resolve_entity_id(request),
        "name": _text(request.get("name")),
        "slug": _text(request.get("slug")).lower(),
        "address": {field: _text(address.get(field)) for field in ADDRESS_FIELDS},
        "geo": {"lat": _float_or_none(geo.get("lat")), "lng": _float_or_none(geo.get("lng"))},
        "location": normalize_id(request.get("location")) or None,
        "active": _active(request, existing),
        **_audit(existing, now),
    }


def _recurrence(value: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(value, dict) or not value.get("rrule"):
        return None
    return {
        "rrule": _text(value.get("rrule")),
        "until": to_iso(value.get("until")),
        "exdates": [to_iso(d) for d in value.get("exdates") or []],
        "rdates": [to_iso(d) for d in value.get("rdates") or []],
    }


def to_event_entity(
    request: Dict[str, Any], existing: Optional[Dict[str, Any]] = None, now: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "id": resolve_entity_id(request),
        "title": to_i18n(request.get("title")),
        "slug": to_i18n(request.get("slug")),
        "body": to_i18n(request.get("body")),
        "category": normalize_id(request.get("category")) or None,
        "company": normalize_id(request.get("company")) or None,
        "heroImage": _text(request.get("heroImage")),
        "thumbnail": _text(request.get("thumbnail")),
        "startDate": to_iso(request.get("startDate")),
        "endDate": to_iso(request.get("endDate")),
        "pricing": request.get("pricing"),
        "externalTicketLink": _text(request.get("externalTicketLink")) or None,
        "facilities": list(request.get("facilities") or []),
        "sponsored": bool(request.get("sponsored", False)),
        "recurrence": _recurrence(request.get("recurrence")),
        "active": _active(request, existing),
        **_audit(existing, now),
    }


def to_location_entity(
    request: Dict[str, Any], existing: Optional[Dict[str, Any]] = None, now: Optional[str] = None
) -> Dict[str, Any]:
    districts = request.get("districtsAndSlugs") or {}
    return {
        "id": normalize_id(request.get("id")),
        "country": _text(request.get("country")),
        "state": _text(request.get("state")),
        "city": _text(request.get("city")),
        "districtsAndSlugs": {_text(name): normalize_id(slug) for name, slug in districts.items()},
        "active": _active(request, existing),
        **_audit(existing, now),
    }


def to_about_entity(
    request: Dict[str, Any], existing: Optional[Dict[str, Any]] = None, now: Optional[str] = None
) -> Dict[str, Any]:
    return {"body": to_i18n(request.get("body")), **_audit(existing, now)}


def with_active(entity: Dict[str, Any], active: bool, now: Optional[str] = None) -> Dict[str, Any]:
    """Copy of an entity with ``active`` toggled and ``updated_at`` moved."""
    return {**entity, "active": bool(active), "updated_at": now or utc_now()}


# ---------------------------------------------------------------------------
# Entity -> index document
# ---------------------------------------------------------------------------


def to_article_index(article: Dict[str, Any]) -> Dict[str, Any]:
    """Everything but the body."""
    return {key: value for key, value in article.items() if key != "body"}


def to_category_index(category: Dict[str, Any], parent: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Category document.

    ``parent_*`` fields are only present for child categories, so an
    ``exists`` query tells roots apart.
    """
    doc = {
        "id": category["id"],
        "name": category.get("name"),
        "slug": category.get("slug"),
        "description": category.get("description"),
        "active": bool(category.get("active")),
        "created_at": category.get("created_at"),
        "updated_at": category.get("updated_at"),
    }
    parent_id = category.get("parent_id")
    if parent_id:
        doc["parent_id"] = parent_id
        doc["parent_name"] = parent.get("name") if parent else None
        doc["parent_slug"] = parent.get("slug") if parent else None
    return doc


def to_geo_point(geo: Optional[Dict[str, Any]]) -> Dict[str, float]:
    """``{lat, lng}`` to an OpenSearch geo point, missing coordinates as 0."""
    geo = _object(geo)
    return {"lat": _float_or_none(geo.get("lat")) or 0.0, "lon": _float_or_none(geo.get("lng")) or 0.0}


def to_company_index(company: Dict[str, Any]) -> Dict[str, Any]:
    address = company.get("address") or {}
    doc = {
        "id": company["id"],
        "name": company.get("name"),
        "slug": company.get("slug"),
        "location": company.get("location"),
    }
    for field in ADDRESS_FIELDS:
        doc[field] = address.get(field)
    doc["country_code"] = (address.get("country_code") or "").upper()
    doc["geo"] = to_geo_point(company.get("geo"))
    doc["active"] = bool(company.get("active"))
    doc["updated_at"] = company.get("updated_at")
    return doc


def to_location_index(location: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": location["id"],
        "country": location.get("country"),
        "state": location.get("state"),
        "city": location.get("city"),
        "districtsAndSlugs": location.get("districtsAndSlugs") or {},
        "active": bool(location.get("active")),
        "updated_at": location.get("updated_at"),
    }


def to_event_index(
    event: Dict[str, Any],
    category: Optional[Dict[str, Any]],
    company: Optional[Dict[str, Any]],
    occurrence: Optional[Occurrence] = None,
) -> Dict[str, Any]:
    """
    Event document, joined with its category and company.

    Args:
        event: Event entity
        category: Resolved category, None when missing
        company: Resolved company, None when missing
        occurrence: Dates of one occurrence of a recurring event
    """
    return {
        "id": event["id"],
        "title": event.get("title"),
        "slug": event.get("slug"),
        "category": event.get("category"),
        "parentCategory": category.get("parent_id") if category else None,
        "company": event.get("company"),
        "location": company.get("location") if company else None,
        "geoLocation": to_geo_point(company.get("geo")) if company else None,
        "heroImage": event.get("heroImage"),
        "thumbnail": event.get("thumbnail"),
        "startDate": occurrence.start.isoformat() if occurrence else event.get("startDate"),
        "endDate": occurrence.end.isoformat() if occurrence else event.get("endDate"),
        "pricing": event.get("pricing"),
        "externalTicketLink": event.get("externalTicketLink"),
        "facilities": event.get("facilities") or [],
        "sponsored": bool(event.get("sponsored")),
        "active": bool(event.get("active")),
        "created_at": event.get("created_at"),
        "updated_at": event.get("updated_at"),
    }


# ---------------------------------------------------------------------------
# Index document -> listing row
# ---------------------------------------------------------------------------


def to_article_list_item(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "title": doc.get("title"),
        "slug": doc.get("slug"),
        "publicationDate": doc.get("publicationDate"),
        "active": doc.get("active"),
    }


def to_category_list_item(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "name": doc.get("name"),
        "slug": doc.get("slug"),
        "parent_id": doc.get("parent_id"),
        "active": doc.get("active"),
    }


def to_company_list_item(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "name": doc.get("name"),
        "slug": doc.get("slug"),
        "location": doc.get("location"),
        "active": doc.get("active"),
    }


def to_event_list_item(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "title": doc.get("title"),
        "slug": doc.get("slug"),
        "startDate": doc.get("startDate"),
        "active": doc.get("active"),
    }


def to_location_list_item(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "country": doc.get("country"),
        "state": doc.get("state"),
        "city": doc.get("city"),
        "active": doc.get("active"),
    }


# ---------------------------------------------------------------------------
# Public projections
# ---------------------------------------------------------------------------


def to_public_event(
    event: Dict[str, Any],
    category: Optional[Dict[str, Any]],
    company: Optional[Dict[str, Any]],
    location: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """Detail page of an event, with its category, venue and neighbourhood."""
    categories: List[Dict[str, Any]] = []
    if category:
        categories.append({"id": category["id"], "name": category.get("name"), "slug": category.get("slug")})

    public_company = None
    district = ""
    if company:
        address = company.get("address") or {}
        district = address.get("district") or ""
        public_company = {
            "id": company["id"],
            "name": company.get("name"),
            "slug": company.get("slug"),
            "address": address,
        }

    public_location = None
    if location:
        districts = location.get("districtsAndSlugs") or {}
        public_location = {
            "id": location["id"],
            "name": location.get("city"),
            "slug": location["id"],
            "district": district,
            "districtSlug": districts.get(district, ""),
        }

    return {
        "id": event["id"],
        "title": event.get("title"),
        "slug": event.get("slug"),
        "categories": categories,
        "company": public_company,
        "location": public_location,
        "heroImage": event.get("heroImage"),
        "thumbnail": event.get("thumbnail"),
        "body": event.get("body"),
        "startDate": event.get("startDate"),
        "endDate": event.get("endDate"),
        "facilities": event.get("facilities") or [],
        "pricing": event.get("pricing"),
        "externalTicketLink": event.get("externalTicketLink"),
        "sponsored": bool(event.get("sponsored")),
        "recurrence": event.get("recurrence"),
        "active": bool(event.get("active")),
        "created_at": event.get("created_at"),
        "updated_at": event.get("updated_at"),
    }
