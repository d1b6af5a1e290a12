"""
Elapsed-time classification for donation box locations.

Turns the time since a location's last box change into a whole-day count,
a status and a human-readable phrase ("Today", "3 days ago", "1 week ago").
"""
import enum
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from Utils.datetime_utils import now_utc, to_utc

# Locations younger than this many days are fresh, everything else is overdue
FRESH_THRESHOLD_DAYS = 7
# Ages from 7 up to this limit read as weeks ("1 week ago"), older ones as days
WEEK_PHRASE_LIMIT_DAYS = 14

ONE_DAY = timedelta(days=1)
DAYS_PER_WEEK = 7


class LocationStatus(str, enum.Enum):
    """
    Freshness of a location's boxes.
    WARNING is kept for schema compatibility with existing clients but is never produced.
    """
    FRESH = "fresh"
    WARNING = "warning"
    OVERDUE = "overdue"


class ElapsedInfo(NamedTuple):
    days: int
    status: LocationStatus
    formatted: str


def _elapsed_days(since: datetime, now: Optional[datetime]) -> int:
    now = to_utc(now) if now is not None else now_utc()
    # timedelta // timedelta floors, so future timestamps give negative counts
    return (now - to_utc(since)) // ONE_DAY


def classify_days(days: int) -> LocationStatus:
    return LocationStatus.FRESH if days < FRESH_THRESHOLD_DAYS else LocationStatus.OVERDUE


def format_elapsed_days(days: int) -> str:
    if days == 0:
        return "Today"
    if days == 1:
        return "1 day ago"
    if DAYS_PER_WEEK <= days < WEEK_PHRASE_LIMIT_DAYS:
        weeks = days // DAYS_PER_WEEK
        return "1 week ago" if weeks == 1 else f"{weeks} weeks ago"
    return f"{days} days ago"


def calculate_elapsed_days(since: datetime, now: Optional[datetime] = None) -> ElapsedInfo:
    """
    Calculate elapsed whole days since `since` and classify them.

    Args:
        since: Last box change timestamp (naive values are treated as UTC)
        now: Reference instant, defaults to the current UTC time

    Returns:
        ElapsedInfo(days, status, formatted)
    """
    days = _elapsed_days(since, now)
    return ElapsedInfo(days=days, status=classify_days(days), formatted=format_elapsed_days(days))


def get_location_status(last_box_change: datetime, now: Optional[datetime] = None) -> LocationStatus:
    """Get location status based on elapsed days since last box change."""
    return classify_days(_elapsed_days(last_box_change, now))
