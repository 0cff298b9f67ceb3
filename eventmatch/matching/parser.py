"""Parse event dates from the heterogeneous formats the catalog supplies."""
import re
from datetime import UTC, datetime, time

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
)

_ISO_TIMESTAMP = re.compile(r"\d{4}-\d{2}-\d{2}T")

_TIME_PATTERN = re.compile(
    r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?(?::(?P<second>\d{2}))?\s*(?P<ampm>[AaPp]\.?[Mm]\.?)?$"
)


def parse_event_time(time_text: str | None) -> time | None:
    """
    Parse a wall-clock time.

    Supported formats:
        19:30, 19:30:00, 7:30 PM, 7 pm, 7:30 p.m.
    """
    if not time_text:
        return None

    match = _TIME_PATTERN.match(time_text.strip())
    if not match:
        return None

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    second = int(match.group("second") or 0)
    ampm = match.group("ampm")
    if ampm:
        if not 1 <= hour <= 12:
            return None
        is_pm = ampm.lower().startswith("p")
        hour = hour % 12 + (12 if is_pm else 0)

    if hour > 23 or minute > 59 or second > 59:
        return None
    return time(hour, minute, second)


def parse_event_date(
    date_text: str | None, time_text: str | None = None
) -> datetime | None:
    """
    Parse an event start from date and optional time strings.

    Expected formats:
        2025-11-24T19:30:00Z      (ISO-8601, time_text ignored)
        2025-11-24                 (ISO date)
        11/24/2025                 (US locale date)
        November 24, 2025 / Nov 24, 2025

    Naive values are treated as UTC. Returns None when nothing matches.
    """
    if not date_text:
        return None

    text = date_text.strip()

    # Full ISO timestamps carry their own time of day
    if _ISO_TIMESTAMP.match(text):
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)

    day = None
    for fmt in _DATE_FORMATS:
        try:
            day = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if day is None:
        return None

    clock = parse_event_time(time_text) or time(0, 0)
    return datetime.combine(day.date(), clock, tzinfo=UTC)
