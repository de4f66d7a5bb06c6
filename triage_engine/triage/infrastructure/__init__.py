"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the message triage module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations (Message Store, Follow-up Tracker)
- External: LLM adapter used by enrichment
"""

from triage_engine.triage.infrastructure.models import (
    AuthorModel,
    MessageModel,
    EmbeddingModel,
    FollowupModel,
)
from triage_engine.triage.infrastructure.repositories import (
    SQLAlchemyMessageRepository,
    SQLAlchemyAuthorRepository,
    SQLAlchemyEmbeddingRepository,
    SQLAlchemyFollowupRepository,
    build_repositories,
)
from triage_engine.triage.infrastructure.external import LLMClientAdapter

__all__ = [
    "AuthorModel",
    "MessageModel",
    "EmbeddingModel",
    "FollowupModel",
    "SQLAlchemyMessageRepository",
    "SQLAlchemyAuthorRepository",
    "SQLAlchemyEmbeddingRepository",
    "SQLAlchemyFollowupRepository",
    "build_repositories",
    "LLMClientAdapter",
]
