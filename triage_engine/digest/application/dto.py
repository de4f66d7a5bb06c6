"""
Digest Application DTOs
========================

Pydantic models for the digest API.
"""

from datetime import date, datetime

from pydantic import BaseModel

from triage_engine.digest.domain import Summary


class SummaryResponse(BaseModel):
    """Response model for a summary request."""
    start_date: date
    end_date: date
    summary_md: str
    message_count: int
    created_at: datetime

    @classmethod
    def from_domain(cls, summary: Summary) -> "SummaryResponse":
        return cls(
            start_date=summary.start_date,
            end_date=summary.end_date,
            summary_md=summary.summary_md,
            message_count=summary.message_count,
            created_at=summary.created_at
        )
