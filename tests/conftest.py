"""Shared fixtures: a file-backed SQLite store and scripted LLM clients."""

import json
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from triage_engine.config import TriageConfig
from triage_engine.digest.application import ISummarizer, SummaryCache
from triage_engine.digest.infrastructure import SQLAlchemySummaryRepository
from triage_engine.infrastructure.database import (
    build_engine,
    build_session_maker,
    create_tables,
    session_scope,
)
from triage_engine.infrastructure.llm import ChatCompletionResult, EmbeddingResult, ILLMClient
from triage_engine.triage.application import EnrichmentService, TriageCoordinator
from triage_engine.triage.infrastructure import build_repositories

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
DIMENSION = 4


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeLLMClient(ILLMClient):
    """
    Scripted LLM client.

    `classification` is returned as JSON for every classification call
    (`raw_classification`, when set, is returned verbatim instead);
    `vectors` maps exact texts to embeddings, anything else gets
    `default_vector`.
    """

    def __init__(
        self,
        classification: Optional[dict] = None,
        vectors: Optional[Dict[str, List[float]]] = None,
        default_vector: Optional[List[float]] = None,
        summary: str = "### Digest",
        raw_classification: Optional[str] = None,
        fail_chat: bool = False,
        fail_embed: bool = False,
    ):
        self.classification = classification or {}
        self.vectors = vectors or {}
        self.default_vector = default_vector or [1.0, 0.0, 0.0, 0.0]
        self.summary = summary
        self.raw_classification = raw_classification
        self.fail_chat = fail_chat
        self.fail_embed = fail_embed
        self.chat_calls: List[dict] = []
        self.embed_calls: List[str] = []

    async def chat_completion(
        self,
        messages,
        model=None,
        temperature=0.3,
        max_tokens=1000,
        operation="chat_completion",
        json_mode=False
    ):
        self.chat_calls.append({"messages": messages, "operation": operation, "json_mode": json_mode})
        if self.fail_chat:
            raise RuntimeError("upstream unavailable")
        if operation == "classification":
            if self.raw_classification is not None:
                content = self.raw_classification
            else:
                content = json.dumps(self.classification)
        else:
            content = self.summary
        return ChatCompletionResult(content, "fake-chat", 10, 10, 1)

    async def generate_embedding(self, text):
        self.embed_calls.append(text)
        if self.fail_embed:
            raise RuntimeError("upstream unavailable")
        return EmbeddingResult(self.vectors.get(text, self.default_vector), "fake-embed")


class CountingSummarizer(ISummarizer):
    def __init__(self, result: str = "### Week in review"):
        self.result = result
        self.calls: List[tuple] = []

    async def summarize(self, texts, days):
        self.calls.append((list(texts), days))
        return self.result


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'triage.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return session_scope(build_session_maker(engine))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def summarizer():
    return CountingSummarizer()


@pytest.fixture
def config():
    return TriageConfig(embedding_dimension=DIMENSION)


@pytest.fixture
def summary_cache(session_factory, clock):
    return SummaryCache(session_factory, SQLAlchemySummaryRepository, clock=clock)


@pytest.fixture
def coordinator(config, session_factory, llm, summary_cache, summarizer, clock):
    return TriageCoordinator(
        config,
        session_factory,
        build_repositories,
        EnrichmentService(llm, DIMENSION, embedding_model="fake-embed"),
        summary_cache=summary_cache,
        summarizer=summarizer,
        clock=clock,
    )
