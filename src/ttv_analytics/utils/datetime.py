"""Datetime utilities with consistent UTC timezone handling.

All timestamps handled by the analytics engine are timezone-aware and in
UTC. Calendar dates (due dates, target go-live dates) stay plain ``date``
objects so that comparisons never pick up a timezone offset.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def now_utc() -> datetime:
    """Return current datetime in UTC timezone."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt


def start_of_day(day: date) -> datetime:
    """Return midnight UTC of a calendar date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a timestamp leniently.

    Accepts aware or naive datetimes, calendar dates (midnight UTC) and ISO
    8601 strings, including a trailing ``Z`` and date-only strings.

    Returns:
        Timezone-aware datetime, or None when the value is missing or cannot
        be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return start_of_day(value)
    if not isinstance(value, str):
        logger.debug("Ignoring non-string timestamp %r", value)
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None


def parse_date(value: Any) -> Optional[date]:
    """Parse a calendar date leniently.

    Timestamps are reduced to their UTC calendar date.

    Returns:
        Calendar date, or None when the value is missing or cannot be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        logger.debug("Ignoring non-string date %r", value)
        return None

    text = value.strip()
    if len(text) == 10:
        try:
            return date.fromisoformat(text)
        except ValueError:
            logger.debug("Unparseable date %r", value)
            return None

    parsed = parse_datetime(text)
    return parsed.astimezone(timezone.utc).date() if parsed else None


def days_between(start: datetime, end: datetime) -> float:
    """Return the fractional number of days from ``start`` to ``end``."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def add_days(day: date, days: int) -> date:
    """Shift a calendar date by a whole number of days."""
    return day + timedelta(days=days)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to a UTC ISO string with millisecond precision.

    Args:
        dt: Datetime to convert, or None

    Returns:
        String such as ``2025-01-01T09:30:00.000Z``, or None if input was None
    """
    if dt is None:
        return None

    aware_dt = ensure_aware(dt).astimezone(timezone.utc)
    return aware_dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_date_string(day: Optional[date]) -> Optional[str]:
    """Convert a calendar date to ``YYYY-MM-DD``, or None."""
    if day is None:
        return None
    return day.isoformat()
