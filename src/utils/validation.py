"""
Input validation utilities.

Each validator takes a decoded request body and returns every problem it
finds as a human-readable message; an empty list means the request is valid.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .mappers import LANGUAGES, resolve_entity_id
from .recurrence import build_rrule, normalize_rrule, parse_datetime

# Brazilian postal code (CEP), with or without the dash
POSTAL_CODE_PATTERN = re.compile(r"^\d{5}-?\d{3}$")

_RRULE_FREQ = re.compile(r"(^|;)FREQ=", re.IGNORECASE)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_i18n(name: str, value: Any, errors: List[str]) -> None:
    """At least one language of an I18n value must be filled."""
    if not isinstance(value, dict):
        errors.append(f"{name} is required.")
        return
    if all(_is_blank(value.get(lang)) for lang in LANGUAGES):
        errors.append(f"{name} must have at least one language filled.")


def validate_i18n_min_length(name: str, value: Any, min_length: int, errors: List[str]) -> None:
    """Every language of an I18n value must have at least ``min_length`` characters."""
    value = value if isinstance(value, dict) else {}
    for lang in LANGUAGES:
        text = value.get(lang)
        if _is_blank(text) or len(text.strip()) < min_length:
            errors.append(f"{name}.{lang} must have at least {min_length} characters.")


def validate_date(name: str, value: Any, errors: List[str], required: bool = True) -> None:
    if value is None or value == "":
        if required:
            errors.append(f"{name} is required.")
        return
    if parse_datetime(value) is None:
        errors.append(f"{name} is not a valid date.")


def validate_url(name: str, value: Any, errors: List[str]) -> None:
    if not value:
        return
    parsed = urlparse(str(value))
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(f"{name} must be a valid URL.")


def validate_id(request: Dict[str, Any], errors: List[str]) -> None:
    if not resolve_entity_id(request):
        errors.append("id is required (or a slug to derive it from).")


def validate_article(request: Dict[str, Any]) -> List[str]:
    """Validate an article write request."""
    errors: List[str] = []
    validate_i18n("title", request.get("title"), errors)
    validate_i18n("slug", request.get("slug"), errors)
    validate_i18n("body", request.get("body"), errors)
    validate_id(request, errors)
    validate_date("publicationDate", request.get("publicationDate"), errors, required=False)
    return errors


def validate_category(request: Dict[str, Any]) -> List[str]:
    """Validate a category write request."""
    errors: List[str] = []
    validate_i18n_min_length("name", request.get("name"), 2, errors)
    validate_i18n_min_length("slug", request.get("slug"), 3, errors)
    validate_id(request, errors)

    parent_id = request.get("parent_id")
    if parent_id and str(parent_id).strip().lower() == resolve_entity_id(request):
        errors.append("parent_id must not reference the category itself.")
    return errors


def validate_company(request: Dict[str, Any]) -> List[str]:
    """Validate a company write request."""
    errors: List[str] = []

    slug = request.get("slug")
    if _is_blank(slug) or len(slug.strip()) < 3:
        errors.append("slug must be a valid slug (at least 3 characters).")
    name = request.get("name")
    if _is_blank(name) or len(name.strip()) < 2:
        errors.append("name is required.")
    if _is_blank(request.get("location")):
        errors.append("location is required.")

    address = request.get("address")
    if not isinstance(address, dict):
        errors.append("address is required.")
        address = {}
    for field in ("street", "number", "district"):
        if _is_blank(address.get(field)):
            errors.append(f"address.{field} is required.")
    postal_code = address.get("postal_code")
    if postal_code and not POSTAL_CODE_PATTERN.match(str(postal_code).strip()):
        errors.append("address.postal_code must be a valid postal code (e.g. 01310-200).")

    geo = request.get("geo")
    if geo is None:
        geo = {}
    elif not isinstance(geo, dict):
        errors.append("geo must be an object with lat and lng.")
        geo = {}
    for field, limit in (("lat", 90), ("lng", 180)):
        value = geo.get(field)
        if value is None:
            continue
        if not isinstance(value, (int, float)) or isinstance(value, bool) or not -limit <= value <= limit:
            errors.append(f"geo.{field} must be between -{limit} and {limit}.")
    return errors


def validate_recurrence(recurrence: Any, errors: List[str], start: Optional[datetime] = None) -> None:
    """Check the recurrence of an event starting at ``start``."""
    if not isinstance(recurrence, dict):
        errors.append("recurrence must be an object.")
        return

    rrule = recurrence.get("rrule")
    if _is_blank(rrule):
        errors.append("recurrence.rrule is required and must be a string.")
    else:
        try:
            normalized = normalize_rrule(rrule)
        except ValueError as e:
            errors.append(f"recurrence.rrule is invalid: {e}")
        else:
            if not _RRULE_FREQ.search(normalized):
                errors.append("recurrence.rrule must define FREQ.")
            else:
                try:
                    build_rrule(normalized, start or datetime.now(timezone.utc))
                except ValueError as e:
                    errors.append(f"recurrence.rrule is invalid: {e}")

    validate_date("recurrence.until", recurrence.get("until"), errors)
    for field in ("exdates", "rdates"):
        dates = recurrence.get(field)
        if dates is None:
            continue
        if not isinstance(dates, list):
            errors.append(f"recurrence.{field} must be an array of dates.")
            continue
        for value in dates:
            validate_date(f"recurrence.{field}", value, errors)


def validate_event(request: Dict[str, Any]) -> List[str]:
    """Validate an event write request."""
    errors: List[str] = []

    validate_i18n("title", request.get("title"), errors)
    validate_i18n("slug", request.get("slug"), errors)
    validate_i18n("body", request.get("body"), errors)
    validate_id(request, errors)

    if _is_blank(request.get("category")):
        errors.append("category is required.")
    if _is_blank(request.get("company")):
        errors.append("company is required.")
    if _is_blank(request.get("heroImage")):
        errors.append("heroImage is required.")
    if _is_blank(request.get("thumbnail")):
        errors.append("thumbnail is required.")

    validate_date("startDate", request.get("startDate"), errors)
    validate_date("endDate", request.get("endDate"), errors)
    start = parse_datetime(request.get("startDate"))
    end = parse_datetime(request.get("endDate"))
    if start and end and end < start:
        errors.append("endDate must be greater than or equal to startDate.")

    pricing = request.get("pricing")
    if pricing is None:
        errors.append("pricing is required.")
    elif not isinstance(pricing, (int, float)) or isinstance(pricing, bool) or pricing < 0:
        errors.append("pricing must be a number >= 0.")

    validate_url("externalTicketLink", request.get("externalTicketLink"), errors)

    facilities = request.get("facilities")
    if facilities is not None and not isinstance(facilities, list):
        errors.append("facilities must be an array.")

    if request.get("recurrence"):
        validate_recurrence(request["recurrence"], errors, start)
    return errors


def validate_location(request: Dict[str, Any]) -> List[str]:
    """Validate a location write request."""
    errors: List[str] = []
    if _is_blank(request.get("id")):
        errors.append("id is required.")
    for field in ("country", "state", "city"):
        if _is_blank(request.get(field)):
            errors.append(f"{field} is required.")

    districts = request.get("districtsAndSlugs")
    if districts is not None:
        if not isinstance(districts, dict):
            errors.append("districtsAndSlugs must be an object of district name to slug.")
        elif any(_is_blank(slug) for slug in districts.values()):
            errors.append("districtsAndSlugs must map every district to a slug.")
    return errors


def validate_about(request: Dict[str, Any]) -> List[str]:
    """Validate the about page."""
    errors: List[str] = []
    validate_i18n("body", request.get("body"), errors)
    return errors


def validate_toggle(request: Dict[str, Any]) -> List[str]:
    """Validate an ``active`` toggle request."""
    if not isinstance(request.get("active"), bool):
        return ["active is required and must be a boolean."]
    return []
