"""
Triage Domain Layer
===================

Domain layer for the message triage module.

Contains:
- Entities: Message, Classification, Followup, ReviewItem, SearchHit
- Value Objects: PriorityRanker, RankCandidate, text helpers

This layer is framework-agnostic and contains pure business logic.
"""

from triage_engine.triage.domain.entities import (
    AuthorIdentity,
    Classification,
    ClassificationPromptBuilder,
    Followup,
    IncomingMessage,
    IngestResult,
    Message,
    ReviewItem,
    SearchHit,
)
from triage_engine.triage.domain.value_objects import (
    PriorityRanker,
    RankCandidate,
    clamp_days,
    collapse_whitespace,
    cosine_similarity,
    shorten,
)

__all__ = [
    "AuthorIdentity",
    "Classification",
    "ClassificationPromptBuilder",
    "Followup",
    "IncomingMessage",
    "IngestResult",
    "Message",
    "ReviewItem",
    "SearchHit",
    "PriorityRanker",
    "RankCandidate",
    "clamp_days",
    "collapse_whitespace",
    "cosine_similarity",
    "shorten",
]
