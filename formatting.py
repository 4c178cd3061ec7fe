"""
Pure formatting, sorting and date-bucketing helpers shared by the public
renderer and the admin editor.

Month names are spelled out here instead of going through strftime so the
output does not change with the process locale.
"""
from collections import namedtuple
from datetime import date, datetime, tzinfo
from typing import Any, Iterable, List, Optional, Union

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

EN_DASH = "–"

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)

Buckets = namedtuple("Buckets", ["upcoming", "past"])


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def format_time(hhmm: Optional[str]) -> str:
    """'20:05' -> '8:05 PM'. Empty input gives an empty string."""
    if not hhmm:
        return ""
    hours, minutes = (int(part) for part in hhmm.split(":")[:2])
    suffix = "PM" if hours >= 12 else "AM"
    hour = hours % 12 or 12
    return f"{hour}:{minutes:02d} {suffix}"


def escape_html(text: Any) -> str:
    """Escape the five HTML-reserved characters.

    Apply exactly once per render: escaping an already escaped string
    encodes the ampersands a second time.
    """
    if text is None:
        return ""
    out = str(text)
    for char, entity in _HTML_ESCAPES:
        out = out.replace(char, entity)
    return out


def local_time(timestamp: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Shift an aware timestamp into `tz` (the host zone by default).

    Naive values are taken to be local already and come back unchanged.
    """
    if timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone(tz)


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return local_time(value).date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def format_date_short(value: Union[str, date, None]) -> str:
    """'2025-06-01' -> 'Jun 1, 2025'"""
    day = parse_date(value)
    if day is None:
        return ""
    return f"{MONTHS[day.month - 1][:3]} {day.day}, {day.year}"


def format_month(value: Union[str, date, None]) -> str:
    """'2025-06-01' -> 'JUN'"""
    day = parse_date(value)
    return MONTHS[day.month - 1][:3].upper() if day else ""


def format_day(value: Union[str, date, None]) -> str:
    """'2025-06-01' -> '1'"""
    day = parse_date(value)
    return str(day.day) if day else ""


def format_post_date(timestamp: Optional[datetime], tz: Optional[tzinfo] = None) -> str:
    """Long form used on news cards: 'June 1, 2025'."""
    if timestamp is None:
        return ""
    timestamp = local_time(timestamp, tz)
    return f"{MONTHS[timestamp.month - 1]} {timestamp.day}, {timestamp.year}"


def format_competition_range(start: Union[str, date, None], end: Union[str, date, None] = None) -> str:
    start_text = format_date_short(start)
    if not end or parse_date(end) == parse_date(start):
        return start_text
    return f"{start_text} {EN_DASH} {format_date_short(end)}"


def sort_by_order(records: Iterable[Any]) -> List[Any]:
    """Stable ascending sort on the numeric `order` field."""
    return sorted(records, key=lambda r: _field(r, "order", 0) or 0)


def effective_end_date(event: Any) -> date:
    return parse_date(_field(event, "end_date") or _field(event, "endDate") or _field(event, "date"))


def is_past(event: Any, today: Union[date, datetime]) -> bool:
    return effective_end_date(event) < parse_date(today)


def bucket_by_date(events: Iterable[Any], today: Union[date, datetime, None] = None) -> Buckets:
    """Split competition events into upcoming and past.

    `today` is compared as a calendar day, so time of day never matters. An
    event stays upcoming through its last day. Upcoming events are returned
    soonest first, past events most recent first.
    """
    today = parse_date(today) if today is not None else date.today()
    upcoming, past = [], []
    for event in events:
        (past if is_past(event, today) else upcoming).append(event)
    upcoming.sort(key=lambda e: parse_date(_field(e, "date")))
    past.sort(key=effective_end_date, reverse=True)
    return Buckets(upcoming=upcoming, past=past)
