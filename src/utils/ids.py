"""
ID and object-key utilities.

Entity ids are slugs or UUIDs. They are compared lower-cased and trimmed, and
turned into S3 keys with the same escaping a browser's encodeURIComponent
applies, so keys written by older clients keep resolving.
"""

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

# Characters encodeURIComponent leaves untouched (besides alphanumerics)
_URI_COMPONENT_SAFE = "-_.!~*'()"


def normalize_id(id_value: Optional[str]) -> str:
    """
    Normalize an entity ID for storage and comparison.

    Examples:
        >>> normalize_id('  Festival-De-Jazz ')
        'festival-de-jazz'
        >>> normalize_id(None)
        ''
    """
    if not id_value:
        return ""
    return str(id_value).strip().lower()


def encode_component(value: str) -> str:
    """Percent-encode a single path component (encodeURIComponent semantics)."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def build_key(prefix: str, id_value: str) -> str:
    """
    Build the S3 key of an entity document.

    Args:
        prefix: Entity prefix without trailing slash (e.g., 'articles')
        id_value: Entity ID, normalized before encoding

    Returns:
        Key in format: {prefix}/{encoded-id}.json

    Examples:
        >>> build_key('categories', ' Arte ')
        'categories/arte.json'
        >>> build_key('events', 'show/ao vivo')
        'events/show%2Fao%20vivo.json'
    """
    return f"{prefix.rstrip('/')}/{encode_component(normalize_id(id_value))}.json"


def to_ics_utc(moment: datetime) -> str:
    """
    Format a datetime as an iCalendar UTC timestamp.

    Examples:
        >>> to_ics_utc(datetime(2025, 12, 30, 21, 0, tzinfo=timezone.utc))
        '20251230T210000Z'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def occurrence_doc_id(entity_id: str, start: datetime) -> str:
    """Search-engine document ID of one occurrence of a recurring event."""
    return f"{normalize_id(entity_id)}--{to_ics_utc(start)}"
