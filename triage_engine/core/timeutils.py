"""
UTC helpers shared by every layer.

SQLite hands back naive datetimes even for `DateTime(timezone=True)`
columns, so everything read from a store goes through `as_utc`.
"""

from datetime import date, datetime, time, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """Last representable instant of a UTC calendar day."""
    return datetime.combine(day, time.max, tzinfo=timezone.utc)
