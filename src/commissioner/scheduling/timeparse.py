"""Resolve slate time strings such as "1:45 p.m." into absolute instants."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)?")


def normalize_time_text(text: str) -> str:
    return text.lower().replace(".", "").strip()


def to_24_hour(hours: int, meridian: str | None) -> int:
    if meridian == "pm" and hours < 12:
        return hours + 12
    if meridian == "am" and hours == 12:
        return 0
    return hours


def resolve_match_time(time_string: str, date_string: str, timezone: str) -> int | None:
    """Return the epoch-millisecond instant for a slate time, or ``None``.

    ``None`` means the text could not be turned into an instant; callers keep
    the bet and simply leave it off the automatic schedule. A time without
    am/pm is taken as written.
    """

    match = TIME_PATTERN.search(normalize_time_text(time_string or ""))
    if not match:
        return None
    hours = to_24_hour(int(match.group(1)), match.group(3))
    minutes = int(match.group(2))
    local = f"{date_string}T{hours:02d}:{minutes:02d}:00"
    try:
        naive = datetime.fromisoformat(local)
        aware = naive.replace(tzinfo=ZoneInfo(timezone))
    except (ValueError, ZoneInfoNotFoundError) as exc:
        logger.debug("Could not resolve %r on %s in %s: %s", time_string, date_string, timezone, exc)
        return None
    return int(aware.timestamp() * 1000)


def format_instant(instant: int, timezone: str, fmt: str = "%b %d %I:%M %p") -> str:
    """Render an epoch-millisecond instant as local wall-clock text."""

    return datetime.fromtimestamp(instant / 1000, tz=ZoneInfo(timezone)).strftime(fmt)


def local_to_instant(value: datetime, timezone: str) -> int:
    """Interpret a naive local datetime (e.g. from a date/time picker) in ``timezone``."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(timezone))
    return int(value.timestamp() * 1000)


def timezone_abbreviation(timezone: str, instant: int | None = None) -> str:
    moment = datetime.now(ZoneInfo(timezone)) if instant is None else datetime.fromtimestamp(
        instant / 1000, tz=ZoneInfo(timezone)
    )
    return moment.tzname() or timezone
