from datetime import timedelta

import pytest

from triage_engine.config import SortOrder
from triage_engine.core import ValidationException
from triage_engine.triage.domain import AuthorIdentity, Classification
from triage_engine.triage.infrastructure import build_repositories

from conftest import NOW


async def _insert(session_factory, text, external_ref=None, created_at=NOW):
    async with session_factory() as session:
        return await build_repositories(session).messages.insert(
            external_ref=external_ref, author_ref=None, text=text, created_at=created_at
        )


@pytest.mark.asyncio
async def test_duplicate_external_ref_returns_first_id(session_factory):
    first_id, first_new = await _insert(session_factory, "hello", "tg:1")
    second_id, second_new = await _insert(session_factory, "hello again", "tg:1")

    assert first_new is True
    assert second_new is False
    assert second_id == first_id

    async with session_factory() as session:
        stored = await build_repositories(session).messages.get(first_id)
    assert stored.text == "hello"


@pytest.mark.asyncio
async def test_messages_without_ref_are_never_deduplicated(session_factory):
    a, _ = await _insert(session_factory, "same text")
    b, was_new = await _insert(session_factory, "same text")

    assert a != b
    assert was_new is True


@pytest.mark.asyncio
async def test_query_window_bounds_and_order(session_factory):
    for hours, text in [(1, "recent"), (30, "yesterday"), (24 * 5, "old")]:
        await _insert(session_factory, text, created_at=NOW - timedelta(hours=hours))

    async with session_factory() as session:
        messages = build_repositories(session).messages
        desc = await messages.query_window(NOW - timedelta(days=3), NOW, limit=10)
        asc = await messages.query_window(
            NOW - timedelta(days=3), NOW, limit=10, order=SortOrder.ASC
        )
        limited = await messages.query_window(NOW - timedelta(days=3), NOW, limit=1)

    assert [m.text for m in desc] == ["recent", "yesterday"]
    assert [m.text for m in asc] == ["yesterday", "recent"]
    assert [m.text for m in limited] == ["recent"]


@pytest.mark.asyncio
async def test_query_window_loads_requested_fields_only(session_factory):
    await _insert(session_factory, "hello", created_at=NOW)

    async with session_factory() as session:
        (message,) = await build_repositories(session).messages.query_window(
            NOW - timedelta(days=1), NOW, limit=10, fields=["text"]
        )

    assert message.text == "hello"
    assert message.id
    assert message.created_at == NOW
    assert message.is_question is None


@pytest.mark.asyncio
async def test_query_window_rejects_bad_arguments(session_factory):
    async with session_factory() as session:
        messages = build_repositories(session).messages
        with pytest.raises(ValidationException):
            await messages.query_window(NOW, NOW, limit=1, order="sideways")
        with pytest.raises(ValidationException):
            await messages.query_window(NOW, NOW, limit=1, fields=["password"])


@pytest.mark.asyncio
async def test_metadata_and_replied_updates(session_factory):
    message_id, _ = await _insert(session_factory, "any news?")

    async with session_factory() as session:
        messages = build_repositories(session).messages
        await messages.update_metadata(
            message_id, Classification(is_question=True, urgency_score=0.4, topics=["news"]), NOW
        )
        await messages.mark_replied(message_id)

    async with session_factory() as session:
        stored = await build_repositories(session).messages.get(message_id)

    assert stored.is_question is True
    assert stored.followup is False
    assert stored.urgency_score == 0.4
    assert stored.topics == ["news"]
    assert stored.enriched_at == NOW
    assert stored.replied is True


@pytest.mark.asyncio
async def test_author_upsert_keeps_one_row_per_user(session_factory):
    async with session_factory() as session:
        authors = build_repositories(session).authors
        first = await authors.upsert(AuthorIdentity("42", username="sam"))
    async with session_factory() as session:
        second = await build_repositories(session).authors.upsert(
            AuthorIdentity("42", first_name="Sam")
        )

    assert first == second
