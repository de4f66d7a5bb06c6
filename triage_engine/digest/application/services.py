"""
Digest Application Services
============================

The summary cache: generate-on-miss digests keyed by UTC date range.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Sequence

from triage_engine.config import SortOrder
from triage_engine.core import as_utc, utc_now
from triage_engine.digest.domain import DateRange, Summary
from triage_engine.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Interfaces ==========

class ISummaryRepository(ABC):
    """Interface for cached summaries."""

    @abstractmethod
    async def get(self, start_date: date, end_date: date) -> Optional[Summary]:
        """Exact match on the inclusive date pair."""

    @abstractmethod
    async def insert_if_absent(self, summary: Summary) -> Summary:
        """Store unless the pair exists; return whichever row is stored."""


class ISummarizer(ABC):
    """External summarization capability."""

    @abstractmethod
    async def summarize(self, texts: List[str], days: int) -> str:
        """Markdown digest of chronologically ordered message texts."""


class IMessageSource(ABC):
    """Where the cache reads messages from on a miss."""

    @abstractmethod
    async def query_window(
        self,
        start: datetime,
        end: datetime,
        limit: int,
        order: str = SortOrder.ASC,
        fields: Optional[Sequence[str]] = None
    ) -> List[Any]:
        """Messages (objects with `.text`) created in [start, end]."""


# ========== Application Services ==========

class SummaryCache:
    """
    Summary cache keyed by (start_date, end_date).

    Concurrent misses for one range may both call the summarizer; the
    store keeps the first insert and both callers get that row back.
    """

    def __init__(
        self,
        session_factory: Callable[[], Any],
        repositories: Callable[[Any], ISummaryRepository],
        message_limit: int = 1000,
        clock: Callable[[], datetime] = utc_now
    ):
        self._session_factory = session_factory
        self._repositories = repositories
        self._message_limit = message_limit
        self._clock = clock

    async def lookup(self, start_date: date, end_date: date) -> Optional[Summary]:
        async with self._session_factory() as session:
            return await self._repositories(session).get(start_date, end_date)

    async def get_or_create(
        self,
        start_date: date,
        end_date: date,
        message_source: IMessageSource,
        summarizer: ISummarizer,
        now: Optional[datetime] = None
    ) -> Summary:
        """
        Return the cached digest for the range, generating it on a miss.

        `now` stamps a newly generated summary; the cache clock is used
        when it is omitted.

        Raises:
            LLMException: If the summarizer fails (nothing is cached)
        """
        cached = await self.lookup(start_date, end_date)
        if cached is not None:
            logger.info(
                "Summary cache hit",
                extra={"start_date": str(start_date), "end_date": str(end_date)}
            )
            return cached

        window = DateRange(start_date, end_date)
        messages = await message_source.query_window(
            start=window.start_instant,
            end=window.end_instant,
            limit=self._message_limit,
            order=SortOrder.ASC,
            fields=["text"]
        )
        texts = [m.text or "" for m in messages]

        with log_latency(
            logger, "summary_generation",
            start_date=str(start_date), end_date=str(end_date), messages=len(texts)
        ):
            summary_md = await summarizer.summarize(texts, window.days)

        candidate = Summary(
            start_date=start_date,
            end_date=end_date,
            summary_md=summary_md,
            created_at=as_utc(now) if now else self._clock(),
            message_count=len(texts)
        )
        async with self._session_factory() as session:
            stored = await self._repositories(session).insert_if_absent(candidate)

        if stored.summary_md != summary_md:
            logger.info(
                "Summary written concurrently, keeping first result",
                extra={"start_date": str(start_date), "end_date": str(end_date)}
            )
        return stored
