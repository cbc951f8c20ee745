"""
Timezone Utilities for Tank Analytics

Every timestamp inside the engine is timezone-aware. Naive datetimes coming
from storage or CSV exports are assumed to be UTC.

Usage:
    from tank_analytics.timezone_utils import ensure_utc, parse_timestamp

    ts = parse_timestamp("2025-03-01T06:00:00Z")
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

UTC = timezone.utc


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware UTC

    Args:
        dt: Input datetime (can be naive, UTC, or local)

    Returns:
        Timezone-aware UTC datetime, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive - assume UTC
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime, leave aware ones in their own zone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def parse_timestamp(value: Union[datetime, str, int, float, None]) -> Optional[datetime]:
    """
    Parse a reading timestamp into an aware UTC datetime.

    Accepts datetime objects, ISO-8601 strings (a trailing ``Z`` is allowed)
    and epoch seconds. Returns None when the value cannot be interpreted.

    Examples:
        >>> parse_timestamp("2025-03-01T06:00:00Z").isoformat()
        '2025-03-01T06:00:00+00:00'
        >>> parse_timestamp("yesterday") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            return None

    return None


def start_of_day(dt: datetime) -> datetime:
    """Midnight of ``dt``'s calendar day, in ``dt``'s own timezone."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative if end precedes start)."""
    return (end - start).total_seconds() / 86400.0


def round_to_day(dt: datetime) -> date:
    """Calendar date nearest to ``dt`` (noon rounds up)."""
    return (dt + timedelta(hours=12)).date()
