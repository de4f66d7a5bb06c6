"""
Triage Application Services
============================

Application services for message enrichment and triage orchestration.

Orchestrates business logic between domain entities and repositories.
Every public coordinator method is one independent unit of work; shared
state lives only in the stores, whose idempotent inserts and keyed
upserts make concurrent duplicates safe.
"""

import asyncio
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from triage_engine.config import SortOrder, TriageConfig
from triage_engine.core import (
    ResourceNotFoundException,
    ValidationException,
    LLMException,
    as_utc,
    utc_now,
)
from triage_engine.digest.domain import DateRange
from triage_engine.shared.infrastructure.logging import get_logger, log_latency
from triage_engine.triage.domain import (
    AuthorIdentity,
    Classification,
    ClassificationPromptBuilder,
    Followup,
    IncomingMessage,
    IngestResult,
    Message,
    PriorityRanker,
    RankCandidate,
    ReviewItem,
    SearchHit,
    clamp_days,
    cosine_similarity,
    shorten,
)

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IMessageRepository(ABC):
    """Message Store: append-mostly log with idempotent insert."""

    @abstractmethod
    async def insert(
        self,
        external_ref: Optional[str],
        author_ref: Optional[str],
        text: str,
        created_at: datetime,
        raw_payload: Optional[dict] = None
    ) -> Tuple[str, bool]:
        """Insert a message; return (id, was_new). Duplicates are not errors."""

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Message]:
        """Get a message by id."""

    @abstractmethod
    async def exists(self, message_id: str) -> bool:
        """Check if a message exists."""

    @abstractmethod
    async def update_metadata(
        self,
        message_id: str,
        classification: Classification,
        enriched_at: datetime
    ) -> None:
        """Overwrite the classification fields of a message."""

    @abstractmethod
    async def query_window(
        self,
        start: datetime,
        end: datetime,
        limit: int,
        order: str = SortOrder.DESC,
        fields: Optional[Sequence[str]] = None
    ) -> List[Message]:
        """Messages with start <= created_at <= end, ordered by created_at."""

    @abstractmethod
    async def mark_replied(self, message_id: str) -> None:
        """Set replied = true."""


class IAuthorRepository(ABC):
    """Interface for author upserts."""

    @abstractmethod
    async def upsert(self, author: AuthorIdentity) -> str:
        """Insert or refresh an author; return its id."""


class IEmbeddingRepository(ABC):
    """Interface for embedding storage (owned by the Message Store)."""

    @abstractmethod
    async def upsert(self, message_id: str, vector: List[float], model: Optional[str]) -> None:
        """Store or replace the vector of a message."""

    @abstractmethod
    async def list_recent(self, limit: int) -> List[Tuple[Message, List[float]]]:
        """Most recent messages that have a vector, with the vector."""


class IFollowupRepository(ABC):
    """Follow-up Tracker: keyed upserts only, no read-modify-write."""

    @abstractmethod
    async def open_or_update(self, message_id: str, now: datetime) -> None:
        """Ensure an open, un-snoozed row (reopens done rows)."""

    @abstractmethod
    async def resolve(self, message_id: str, now: datetime) -> None:
        """Mark an existing row done; a done row keeps its resolved_at."""

    @abstractmethod
    async def snooze(self, message_id: str, due_at: datetime, now: datetime) -> None:
        """Keep open and hide until due_at; last snooze wins."""

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Followup]:
        """Get the follow-up of a message."""

    @abstractmethod
    async def get_many(self, message_ids: Sequence[str]) -> Dict[str, Followup]:
        """Follow-ups keyed by message id."""


@dataclass
class TriageRepositories:
    """Repositories bound to one session (one unit of work)."""
    messages: IMessageRepository
    authors: IAuthorRepository
    embeddings: IEmbeddingRepository
    followups: IFollowupRepository


class ILLMClient(ABC):
    """Interface for LLM operations."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        json_mode: bool = False
    ) -> Any:
        """Generate chat completion."""

    @abstractmethod
    async def generate_embedding(self, text: str) -> Any:
        """Generate an embedding; result has `.embedding` and `.model`."""


# ========== Application Services ==========

class EnrichmentService:
    """
    Enrichment Client: classification and embedding for one message.

    Never raises. A failed or malformed classification degrades to the
    neutral classification; a failed or mis-shaped embedding is None.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        embedding_dimension: int,
        classify_model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 500
    ):
        self._llm = llm_client
        self._dimension = embedding_dimension
        self._model = classify_model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self.embedding_model = embedding_model

    async def classify(self, text: str) -> Classification:
        try:
            response = await self._llm.chat_completion(
                messages=ClassificationPromptBuilder.build_messages(text),
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                operation="classification",
                json_mode=True
            )
            return Classification.from_json(getattr(response, "content", "") or "")
        except Exception as e:
            logger.warning("Classification failed, using neutral values", extra={"error": str(e)})
            return Classification.neutral()

    async def embed(self, text: str) -> Optional[List[float]]:
        """Return a vector of exactly the configured dimension, or None."""
        try:
            result = await self._llm.generate_embedding(text)
        except Exception as e:
            logger.warning("Embedding failed", extra={"error": str(e)})
            return None

        raw = getattr(result, "embedding", None)
        if not isinstance(raw, (list, tuple)) or len(raw) != self._dimension:
            logger.warning(
                "Rejected embedding with wrong shape",
                extra={
                    "expected": self._dimension,
                    "actual": len(raw) if isinstance(raw, (list, tuple)) else None
                }
            )
            return None

        try:
            vector = [float(x) for x in raw]
        except (TypeError, ValueError, OverflowError):
            logger.warning("Rejected embedding with non-numeric values")
            return None
        if not all(math.isfinite(x) for x in vector):
            logger.warning("Rejected embedding with non-finite values")
            return None

        return vector


def parse_message_id(message_id: Optional[str]) -> str:
    """Validate an action's message id before any side effect."""
    if message_id is None or not str(message_id).strip():
        raise ValidationException("message id is required")
    try:
        return str(UUID(str(message_id).strip()))
    except ValueError:
        raise ValidationException(
            "message id is not a valid UUID", {"message_id": str(message_id)}
        )


class TriageCoordinator:
    """
    Stitches the stores, enrichment, ranking and summary cache together
    per external event.

    Args:
        config: Immutable engine configuration
        session_factory: Zero-arg callable returning a unit-of-work
            context manager that yields a session
        repositories: Builds the repositories bound to a session
        enrichment: Enrichment client
        summary_cache: Digest summary cache
        summarizer: Summarizer used on cache misses
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        config: TriageConfig,
        session_factory: Callable[[], Any],
        repositories: Callable[[Any], TriageRepositories],
        enrichment: EnrichmentService,
        summary_cache: Any = None,
        summarizer: Any = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._config = config
        self._session_factory = session_factory
        self._repositories = repositories
        self._enrichment = enrichment
        self._summary_cache = summary_cache
        self._summarizer = summarizer
        self._clock = clock
        self._ranker = PriorityRanker(
            weights=config.weights,
            top_k=config.review_top_k,
            hide_snoozed=config.hide_snoozed,
            snippet_chars=config.review_snippet_chars
        )

    @property
    def config(self) -> TriageConfig:
        return self._config

    @property
    def ranker(self) -> PriorityRanker:
        return self._ranker

    def now(self) -> datetime:
        return as_utc(self._clock())

    # ---------- New message ----------

    async def ingest(self, event: IncomingMessage) -> IngestResult:
        """
        Durably store a message (and its author).

        Committed before enrichment is attempted, so enrichment failures
        can never lose it.
        """
        if event.text is None:
            raise ValidationException("message text is required")
        created_at = as_utc(event.created_at) if event.created_at else self.now()

        async with self._session_factory() as session:
            repos = self._repositories(session)
            author_ref = None
            if event.author is not None:
                author_ref = await repos.authors.upsert(event.author)
            message_id, was_new = await repos.messages.insert(
                external_ref=event.external_ref,
                author_ref=author_ref,
                text=event.text,
                created_at=created_at,
                raw_payload=event.raw_payload
            )

        logger.info(
            "Message ingested" if was_new else "Duplicate message ignored",
            extra={"message_id": message_id, "was_new": was_new}
        )
        return IngestResult(message_id=message_id, was_new=was_new)

    async def enrich_message(self, message_id: str) -> IngestResult:
        """
        Classify and embed a stored message, then write the results back.

        The network calls run outside any database session.
        """
        async with self._session_factory() as session:
            message = await self._repositories(session).messages.get(message_id)
        if message is None:
            raise ResourceNotFoundException("Message", message_id)

        with log_latency(logger, "enrichment", message_id=message_id):
            classification, vector = await asyncio.gather(
                self._enrichment.classify(message.text),
                self._enrichment.embed(message.text),
            )

        now = self.now()
        async with self._session_factory() as session:
            repos = self._repositories(session)
            await repos.messages.update_metadata(message_id, classification, now)
            if vector is not None:
                await repos.embeddings.upsert(
                    message_id, vector, self._enrichment.embedding_model
                )
            if classification.needs_followup:
                await repos.followups.open_or_update(message_id, now)

        logger.info(
            "Message enriched",
            extra={
                "message_id": message_id,
                "is_question": classification.is_question,
                "followup": classification.followup,
                "urgency_score": classification.urgency_score,
                "embedding_stored": vector is not None
            }
        )
        return IngestResult(
            message_id=message_id,
            was_new=True,
            classification=classification,
            embedding_stored=vector is not None
        )

    async def handle_new_message(self, event: IncomingMessage) -> IngestResult:
        """Ingest, then enrich inline if the message was new."""
        result = await self.ingest(event)
        if not result.was_new:
            return result
        return await self.enrich_message(result.message_id)

    # ---------- Review ----------

    async def review(self, days: Optional[int] = None) -> List[ReviewItem]:
        days = clamp_days(days, self._config.review_default_days, self._config.max_window_days)
        now = self.now()

        async with self._session_factory() as session:
            repos = self._repositories(session)
            messages = await repos.messages.query_window(
                start=now - timedelta(days=days),
                end=now,
                limit=self._config.review_candidate_limit,
                order=SortOrder.DESC
            )
            followups = await repos.followups.get_many([m.id for m in messages])

        candidates = [RankCandidate(m, followups.get(m.id)) for m in messages]
        items = self._ranker.rank(candidates, now)

        logger.info(
            "Review computed",
            extra={"days": days, "candidates": len(candidates), "returned": len(items)}
        )
        return items

    # ---------- Summary ----------

    async def summary(self, days: Optional[int] = None):
        """Digest of the trailing `days` UTC calendar days (today included)."""
        if self._summary_cache is None or self._summarizer is None:
            raise RuntimeError("Summary cache is not configured")

        days = clamp_days(days, self._config.summary_default_days, self._config.max_window_days)
        now = self.now()
        window = DateRange.trailing(days, now)
        return await self._summary_cache.get_or_create(
            window.start_date,
            window.end_date,
            message_source=self,
            summarizer=self._summarizer,
            now=now
        )

    async def query_window(
        self,
        start: datetime,
        end: datetime,
        limit: int,
        order: str = SortOrder.ASC,
        fields: Optional[Sequence[str]] = None
    ) -> List[Message]:
        """Message window in its own unit of work (summary cache source)."""
        async with self._session_factory() as session:
            return await self._repositories(session).messages.query_window(
                start=start, end=end, limit=limit, order=order, fields=fields
            )

    # ---------- Follow-up actions ----------

    async def resolve(self, message_id: Optional[str]) -> None:
        """Mark the follow-up done and the message replied."""
        message_id = parse_message_id(message_id)
        now = self.now()

        async with self._session_factory() as session:
            repos = self._repositories(session)
            if not await repos.messages.exists(message_id):
                raise ResourceNotFoundException("Message", message_id)
            await repos.followups.resolve(message_id, now)
            await repos.messages.mark_replied(message_id)

        logger.info("Follow-up resolved", extra={"message_id": message_id})

    async def snooze(self, message_id: Optional[str], hours: Optional[float] = None) -> datetime:
        """Hide a follow-up for `hours`; returns the new due time."""
        message_id = parse_message_id(message_id)
        if hours is None:
            hours = self._config.default_snooze_hours
        try:
            hours = float(hours)
        except (TypeError, ValueError):
            raise ValidationException("snooze hours must be a number", {"hours": str(hours)})
        if not math.isfinite(hours) or hours <= 0 or hours > self._config.max_snooze_hours:
            raise ValidationException(
                f"snooze hours must be in (0, {self._config.max_snooze_hours}]",
                {"hours": hours}
            )

        now = self.now()
        due_at = now + timedelta(hours=hours)

        async with self._session_factory() as session:
            repos = self._repositories(session)
            if not await repos.messages.exists(message_id):
                raise ResourceNotFoundException("Message", message_id)
            await repos.followups.snooze(message_id, due_at, now)

        logger.info("Follow-up snoozed", extra={"message_id": message_id, "hours": hours})
        return due_at

    # ---------- Search ----------

    async def search(self, phrase: Optional[str], k: Optional[int] = None) -> List[SearchHit]:
        """Messages whose embeddings are closest to the phrase."""
        phrase = (phrase or "").strip().strip('"').strip()
        if not phrase:
            raise ValidationException("search phrase is required")
        k = k or self._config.search_top_k

        query = await self._enrichment.embed(phrase)
        if query is None:
            raise LLMException("Could not embed search phrase")

        async with self._session_factory() as session:
            rows = await self._repositories(session).embeddings.list_recent(
                self._config.search_candidate_limit
            )

        scored = [
            (cosine_similarity(query, vector), message)
            for message, vector in rows
            if len(vector) == len(query)
        ]
        scored.sort(key=lambda pair: (-pair[0], -as_utc(pair[1].created_at).timestamp()))

        return [
            SearchHit(
                id=message.id,
                created_at=as_utc(message.created_at),
                snippet=shorten(message.text, self._config.review_snippet_chars, "…"),
                similarity=round(similarity, 6)
            )
            for similarity, message in scored[:k]
        ]
