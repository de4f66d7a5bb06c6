"""
Triage Application Layer
=========================

Application layer for the message triage module.

Contains:
- Services: enrichment and the triage coordinator
- DTOs: Data transfer objects for API serialization
"""

from triage_engine.triage.application.dto import (
    AuthorInfo,
    NewMessageRequest,
    NewMessageResponse,
    SnoozeRequest,
    ReviewItemInfo,
    ReviewResponse,
    FollowupActionResponse,
    SearchHitInfo,
    SearchResponse,
)
from triage_engine.triage.application.services import (
    EnrichmentService,
    TriageCoordinator,
    TriageRepositories,
    IMessageRepository,
    IAuthorRepository,
    IEmbeddingRepository,
    IFollowupRepository,
    ILLMClient,
    parse_message_id,
)

__all__ = [
    # DTOs
    "AuthorInfo",
    "NewMessageRequest",
    "NewMessageResponse",
    "SnoozeRequest",
    "ReviewItemInfo",
    "ReviewResponse",
    "FollowupActionResponse",
    "SearchHitInfo",
    "SearchResponse",
    # Services
    "EnrichmentService",
    "TriageCoordinator",
    "TriageRepositories",
    "parse_message_id",
    # Interfaces
    "IMessageRepository",
    "IAuthorRepository",
    "IEmbeddingRepository",
    "IFollowupRepository",
    "ILLMClient",
]
