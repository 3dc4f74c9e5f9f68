"""Timestamp utilities for UTC handling.

Offer timestamps are stored as ISO 8601 strings and compared in UTC. Elapsed
time for escalation is measured in whole minutes, truncated.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Example:
        >>> utc_now().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware datetimes are converted.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 string (with or without 'Z') into a UTC datetime.

    Returns None for empty or unparseable input.

    Example:
        >>> parse_iso_datetime("2025-11-04T12:00:00Z").hour
        12
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        return None


def format_timestamp(dt: Optional[datetime], include_microseconds: bool = False) -> Optional[str]:
    """Format a datetime as an ISO 8601 UTC string with 'Z' suffix.

    Example:
        >>> format_timestamp(datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc), False)
        '2025-11-04T12:00:00Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None

    if include_microseconds:
        return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Look up a display timezone by IANA name; blank or "UTC" gives UTC.

    Raises:
        ValueError: If the name is not a known timezone
    """
    if not name or name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from start to end, truncated and never negative.

    Example:
        >>> a = datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc)
        >>> minutes_between(a, a.replace(minute=14, second=59))
        14
    """
    delta = ensure_utc(end) - ensure_utc(start)
    return max(0, int(delta.total_seconds() // 60))
