"""
Digest Value Objects
=====================

Immutable value objects for the digest domain.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from triage_engine.core import as_utc, end_of_day, start_of_day

_WHITESPACE = re.compile(r"\s+")


def truncate(text: Optional[str], max_chars: int) -> str:
    """Collapse whitespace; cut to `max_chars` and mark the cut with an ellipsis."""
    text = _WHITESPACE.sub(" ", text or "").strip()
    return text[:max_chars] + "…" if len(text) > max_chars else text


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of UTC calendar days."""
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")

    @classmethod
    def trailing(cls, days: int, now: datetime) -> "DateRange":
        """
        The last `days` calendar days ending today (UTC).

        days=7 at 2024-03-10T12:00Z gives 2024-03-04 .. 2024-03-10.
        """
        if days < 1:
            raise ValueError("days must be >= 1")
        today = as_utc(now).date()
        return cls(start_date=today - timedelta(days=days - 1), end_date=today)

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def start_instant(self) -> datetime:
        return start_of_day(self.start_date)

    @property
    def end_instant(self) -> datetime:
        return end_of_day(self.end_date)
