"""
Recurring event expansion.

An event's recurrence is an iCalendar RRULE plus optional extra dates
(``rdates``) and excluded dates (``exdates``). Occurrences are materialized
for a bounded window starting now, each keeping the base event's duration.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from dateutil.rrule import rrule, rruleset, rrulestr

from .ids import to_ics_utc

# Occurrences are never materialized further ahead than this
WINDOW_MONTHS = 12

_ICS_UTC = re.compile(r"^\d{8}T\d{6}Z$")
_DTSTART_LINE = re.compile(r"^DTSTART\b", re.IGNORECASE)
_RRULE_PREFIX = re.compile(r"RRULE\s*:\s*(.*)$", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class Occurrence:
    """One materialized occurrence of an event."""

    start: datetime
    end: datetime


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 or iCalendar UTC timestamp into an aware datetime.

    Naive values are taken as UTC. Returns None for anything unparseable.

    Examples:
        >>> parse_datetime('2025-12-30T21:00:00.000Z')
        datetime.datetime(2025, 12, 30, 21, 0, tzinfo=datetime.timezone.utc)
        >>> parse_datetime('not a date') is None
        True
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        try:
            if _ICS_UTC.match(text):
                moment = datetime.strptime(text, "%Y%m%dT%H%M%SZ")
            else:
                moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _pure_rrule(raw: str) -> str:
    lines = [line.strip() for line in raw.splitlines()]
    lines = [line for line in lines if line and not _DTSTART_LINE.match(line)]
    joined = "\n".join(lines)
    match = _RRULE_PREFIX.search(joined)
    if match:
        return match.group(1).strip()
    return re.sub(r"\s*\n\s*", "", joined).strip()


def normalize_rrule(raw: Optional[str]) -> str:
    """
    Reduce RRULE text to its bare rule part.

    Strips a leading ``RRULE:``, drops ``DTSTART`` lines, upper-cases keys and
    converts an ISO ``UNTIL`` into iCalendar UTC form.

    Raises:
        ValueError: If ``UNTIL`` is not a valid timestamp

    Examples:
        >>> normalize_rrule('RRULE:freq=WEEKLY;until=2026-01-31T00:00:00Z')
        'FREQ=WEEKLY;UNTIL=20260131T000000Z'
    """
    pure = _pure_rrule(raw or "")
    if not pure:
        return ""

    parts = []
    for part in (p.strip() for p in pure.split(";")):
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip():
            parts.append(part)
            continue
        key = key.strip().upper()
        value = value.strip()
        if key == "UNTIL" and not _ICS_UTC.match(value):
            until = parse_datetime(value)
            if until is None:
                raise ValueError(f"Invalid UNTIL value in RRULE: {value}")
            value = to_ics_utc(until)
        parts.append(f"{key}={value}")
    return ";".join(parts)


def build_rrule(rule_text: str, start: datetime) -> rrule:
    """
    Build the dateutil rule of normalized RRULE text anchored at ``start``.

    Raises:
        ValueError: If dateutil rejects the rule
    """
    try:
        return rrulestr(f"DTSTART:{to_ics_utc(start)}\nRRULE:{rule_text}")
    except (KeyError, TypeError) as e:
        raise ValueError(f"unsupported value in {rule_text!r}") from e


def expand_occurrences(
    start_date: Any,
    end_date: Any,
    recurrence: Dict[str, Any],
    now: Optional[datetime] = None,
) -> List[Occurrence]:
    """
    Materialize the occurrences of a recurring event.

    Args:
        start_date: Start of the first occurrence (DTSTART)
        end_date: End of the first occurrence, sets the duration of every occurrence
        recurrence: ``{rrule, until, exdates, rdates}``
        now: Window start, defaults to the current time

    Returns:
        Occurrences between ``now`` and ``min(until, now + 12 months)``,
        bounds included, sorted by start. Empty when that window already ended.
    """
    now = now or datetime.now(timezone.utc)
    window_limit = now + relativedelta(months=WINDOW_MONTHS)

    start = parse_datetime(start_date) or now
    end = parse_datetime(end_date) or start
    duration = max(end - start, timedelta(0))

    until = parse_datetime(recurrence.get("until"))
    window_end = min(until, window_limit) if until else window_limit
    if window_end < now:
        return []

    rule_text = normalize_rrule(recurrence.get("rrule"))
    rules = rruleset()
    if rule_text:
        rules.rrule(build_rrule(rule_text, start))
    for rdate in recurrence.get("rdates") or []:
        moment = parse_datetime(rdate)
        if moment:
            rules.rdate(moment)
    for exdate in recurrence.get("exdates") or []:
        moment = parse_datetime(exdate)
        if moment:
            rules.exdate(moment)

    starts = sorted(occ.astimezone(timezone.utc) for occ in rules.between(now, window_end, inc=True))
    return [Occurrence(start=occ, end=occ + duration) for occ in starts]
