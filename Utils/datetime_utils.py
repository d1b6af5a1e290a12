"""
DateTime utility functions - all timestamps are handled in UTC.
Database storage, internal operations, and API responses all use UTC.
"""
from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc
DISPLAY_FORMAT = "%b %d, %Y %H:%M"


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is in UTC.
    Naive datetimes (e.g. read back from SQLite, which drops tzinfo) are assumed to be UTC.

    Args:
        dt: Datetime object (timezone-aware or naive)

    Returns:
        UTC datetime object, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    if dt.tzinfo == UTC:
        return dt

    return dt.astimezone(UTC)


def to_utc_str(dt: Optional[datetime], format_str: str = DISPLAY_FORMAT) -> Optional[str]:
    """
    Convert datetime to UTC and return as formatted display string
    (e.g., "Dec 17, 2024 14:30"), or None if input is None.
    """
    utc_dt = to_utc(dt)
    if utc_dt is None:
        return None
    return utc_dt.strftime(format_str)


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).
    Use this for ALL datetime operations - database storage, internal operations, API responses.
    """
    return datetime.now(UTC)
