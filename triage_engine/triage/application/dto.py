"""
Triage Application DTOs
========================

Data Transfer Objects for the Triage API layer.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from triage_engine.triage.domain import (
    AuthorIdentity, IncomingMessage, IngestResult, ReviewItem, SearchHit
)


# ========== Request DTOs ==========

class AuthorInfo(BaseModel):
    """Sender identity as reported by the chat transport."""
    external_user_id: str = Field(..., min_length=1, description="Transport user id")
    username: Optional[str] = None
    first_name: Optional[str] = None


class NewMessageRequest(BaseModel):
    """Request model for the new-message event."""
    external_ref: Optional[str] = Field(
        None, max_length=255, description="Source event id used for de-duplication"
    )
    author: Optional[AuthorInfo] = None
    text: str = Field(..., description="Message text")
    created_at: Optional[datetime] = Field(None, description="Send time (UTC if naive)")
    raw_payload: Dict[str, Any] = Field(default_factory=dict)
    enrich: bool = Field(
        default=True, description="Run classification and embedding after ingest"
    )

    @field_validator("text")
    @classmethod
    def validate_text_length(cls, v: str) -> str:
        """Keep single messages within what the classifier is given."""
        if len(v) > 10000:
            raise ValueError("Text too long (max 10000 characters)")
        return v

    def to_domain(self) -> IncomingMessage:
        return IncomingMessage(
            text=self.text,
            created_at=self.created_at,
            external_ref=self.external_ref,
            author=AuthorIdentity(**self.author.model_dump()) if self.author else None,
            raw_payload=self.raw_payload
        )


class SnoozeRequest(BaseModel):
    """Request model for snoozing a follow-up."""
    hours: Optional[float] = Field(None, gt=0, description="Delay in hours (default 24)")


# ========== Response DTOs ==========

class NewMessageResponse(BaseModel):
    """Response model for the new-message event."""
    message_id: str
    was_new: bool
    enrichment: str = Field(..., description="scheduled, skipped or duplicate")

    @classmethod
    def from_result(cls, result: IngestResult, enrichment: str) -> "NewMessageResponse":
        return cls(message_id=result.message_id, was_new=result.was_new, enrichment=enrichment)


class ReviewItemInfo(BaseModel):
    """One ranked review entry."""
    id: str
    created_at: datetime
    short_text: str
    is_question: bool
    followup: bool
    urgency_score: float
    replied: bool
    score: float
    followup_status: Optional[str] = None
    due_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, item: ReviewItem) -> "ReviewItemInfo":
        return cls(**item.__dict__)


class ReviewResponse(BaseModel):
    """Response model for a review request."""
    days: int
    items: List[ReviewItemInfo]


class FollowupActionResponse(BaseModel):
    """Acknowledgement of a resolve or snooze action."""
    message_id: str
    status: str
    due_at: Optional[datetime] = None


class SearchHitInfo(BaseModel):
    """One semantic search match."""
    id: str
    created_at: datetime
    snippet: str
    similarity: float

    @classmethod
    def from_domain(cls, hit: SearchHit) -> "SearchHitInfo":
        return cls(**hit.__dict__)


class SearchResponse(BaseModel):
    """Response model for semantic search."""
    query: str
    hits: List[SearchHitInfo]
