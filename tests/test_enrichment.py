import math

import pytest

from triage_engine.triage.application import EnrichmentService
from triage_engine.triage.domain import Classification

from conftest import DIMENSION, FakeLLMClient


@pytest.mark.asyncio
async def test_classify_uses_json_mode():
    llm = FakeLLMClient(classification={"is_question": True, "urgency_score": 0.5})
    service = EnrichmentService(llm, DIMENSION)

    result = await service.classify("are we shipping today?")

    assert result.is_question is True
    assert result.urgency_score == 0.5
    assert llm.chat_calls[0]["operation"] == "classification"
    assert llm.chat_calls[0]["json_mode"] is True
    assert llm.chat_calls[0]["messages"][-1]["content"] == "are we shipping today?"


@pytest.mark.asyncio
async def test_classify_failure_degrades_to_neutral():
    service = EnrichmentService(FakeLLMClient(fail_chat=True), DIMENSION)

    assert await service.classify("hello") == Classification.neutral()


@pytest.mark.asyncio
async def test_embed_returns_vector_of_configured_length():
    service = EnrichmentService(FakeLLMClient(default_vector=[0.1, 0.2, 0.3, 0.4]), DIMENSION)

    assert await service.embed("hello") == [0.1, 0.2, 0.3, 0.4]


@pytest.mark.parametrize("vector", [
    [0.1, 0.2, 0.3],
    [0.1, 0.2, 0.3, 0.4, 0.5],
    [0.1, "x", 0.3, 0.4],
    [0.1, math.inf, 0.3, 0.4],
    [10**400, 0, 0, 0],
])
@pytest.mark.asyncio
async def test_embed_rejects_misshaped_vectors(vector):
    service = EnrichmentService(FakeLLMClient(default_vector=vector), DIMENSION)

    assert await service.embed("hello") is None


@pytest.mark.asyncio
async def test_embed_failure_returns_none():
    service = EnrichmentService(FakeLLMClient(fail_embed=True), DIMENSION)

    assert await service.embed("hello") is None


@pytest.mark.parametrize("reply", [
    '{"followup": true, "urgency_score": 1' + "0" * 400 + "}",
    "[" * 100000 + "]" * 100000,
])
@pytest.mark.asyncio
async def test_classify_never_raises_on_pathological_replies(reply):
    service = EnrichmentService(FakeLLMClient(raw_classification=reply), DIMENSION)

    result = await service.classify("hello")

    assert result.urgency_score == 0.0
