"""UTC time helpers.

Timestamps are stored as naive UTC datetimes throughout.
"""

import math
from datetime import datetime, timedelta, timezone

SECONDS_PER_DAY = 24 * 60 * 60


def utcnow() -> datetime:
    """Return the current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative when end is earlier)."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def ceil_days(start: datetime, end: datetime) -> int:
    """Whole days from start to end, rounded up."""
    return math.ceil(days_between(start, end))


def days_before(value: datetime, days: int) -> datetime:
    return value - timedelta(days=days)
