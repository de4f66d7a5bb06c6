"""
Triage Domain Entities
======================

Domain entities for the message triage module.

Contains pure Python business objects for ingested messages, their
AI-derived classification, follow-up state and review output.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from triage_engine.config import FollowupStatus


def _strict_bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _finite_number(value: Any) -> Optional[float]:
    # bool is an int subclass; JSON true is not a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


@dataclass
class Classification:
    """
    Classification metadata for one message.

    Every field has a neutral value so that a failed or malformed
    upstream answer still yields a usable (signal-free) result.
    """
    is_question: bool = False
    needs_reply: bool = False
    followup: bool = False
    urgency_score: float = 0.0
    topics: Optional[List[str]] = None
    entities: Optional[Dict[str, Any]] = None
    sentiment: Optional[float] = None

    @classmethod
    def neutral(cls) -> "Classification":
        return cls()

    @classmethod
    def from_payload(cls, payload: Any) -> "Classification":
        """
        Build a classification from untrusted model output.

        Per field: booleans must be JSON booleans, numbers must be finite
        and not booleans, topics keeps only string items, entities must be
        an object. Anything else falls back to the neutral value. Unknown
        keys are dropped.
        """
        if not isinstance(payload, dict):
            return cls.neutral()

        topics = payload.get("topics")
        entities = payload.get("entities")
        urgency = _finite_number(payload.get("urgency_score"))

        return cls(
            is_question=_strict_bool(payload.get("is_question")),
            needs_reply=_strict_bool(payload.get("needs_reply")),
            followup=_strict_bool(payload.get("followup")),
            urgency_score=urgency if urgency is not None else 0.0,
            topics=[t for t in topics if isinstance(t, str)] if isinstance(topics, list) else None,
            entities=entities if isinstance(entities, dict) else None,
            sentiment=_finite_number(payload.get("sentiment")),
        )

    @classmethod
    def from_json(cls, raw: str) -> "Classification":
        """Parse a model reply, tolerating fenced code blocks."""
        text = (raw or "").strip()
        if "```json" in text:
            text = text.split("```json")[1].split("```")[0].strip()
        elif text.startswith("```"):
            text = text.split("```")[1].split("```")[0].strip()
        try:
            return cls.from_payload(json.loads(text))
        except (ValueError, IndexError, RecursionError):
            return cls.neutral()

    @property
    def needs_followup(self) -> bool:
        """A follow-up is tracked for flagged messages and questions."""
        return self.followup or self.is_question


@dataclass
class AuthorIdentity:
    """Who sent a message, as reported by the transport."""
    external_user_id: str
    username: Optional[str] = None
    first_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or self.first_name or f"user_{self.external_user_id}"


@dataclass
class IncomingMessage:
    """A new-message event, stripped of transport details. No created_at means "now"."""
    text: str
    created_at: Optional[datetime] = None
    external_ref: Optional[str] = None
    author: Optional[AuthorIdentity] = None
    raw_payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Message:
    """
    Stored message entity.

    Classification fields stay None until enrichment has run.
    """
    id: str
    created_at: datetime
    text: str = ""
    external_ref: Optional[str] = None
    author_ref: Optional[str] = None
    is_question: Optional[bool] = None
    needs_reply: Optional[bool] = None
    followup: Optional[bool] = None
    urgency_score: Optional[float] = None
    topics: Optional[List[str]] = None
    entities: Optional[Dict[str, Any]] = None
    sentiment: Optional[float] = None
    replied: bool = False
    enriched_at: Optional[datetime] = None


@dataclass
class Followup:
    """Follow-up tracker row for one message."""
    message_id: str
    status: str = FollowupStatus.OPEN
    due_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @property
    def is_done(self) -> bool:
        return self.status == FollowupStatus.DONE

    def is_snoozed(self, now: datetime) -> bool:
        """Open and hidden until `due_at`."""
        return (
            self.status == FollowupStatus.OPEN
            and self.due_at is not None
            and self.due_at > now
        )


@dataclass
class IngestResult:
    """Outcome of ingesting one message."""
    message_id: str
    was_new: bool
    classification: Optional[Classification] = None
    embedding_stored: bool = False


@dataclass
class ReviewItem:
    """One ranked entry of a review, with enough data to act on it."""
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


@dataclass
class SearchHit:
    """A stored message close to a search phrase."""
    id: str
    created_at: datetime
    snippet: str
    similarity: float


class ClassificationPromptBuilder:
    """
    Builds prompts for message classification.

    All prompt text lives here; the engine only relies on the JSON shape.
    """

    SYSTEM_PROMPT = """You are a passive sorter. Classify the message. Reply with strict JSON only:
{
  "is_question": boolean,
  "needs_reply": boolean,
  "followup": boolean,
  "urgency_score": number,
  "topics": string[],
  "entities": object,
  "sentiment": number
}
Rules:
- Mark "needs_reply" only if an immediate, helpful answer is essential.
- "followup" means it should appear in a review queue for later action.
- Be conservative; prefer not to flag unless clear."""

    @classmethod
    def build_messages(cls, text: str) -> List[dict]:
        return [
            {"role": "system", "content": cls.SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ]
