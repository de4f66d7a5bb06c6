from datetime import timedelta
from uuid import UUID

import pytest
import pytest_asyncio

from triage_engine.config import FollowupStatus
from triage_engine.core import as_utc
from triage_engine.triage.infrastructure import FollowupModel, build_repositories

from conftest import NOW


@pytest_asyncio.fixture
async def message_id(session_factory):
    async with session_factory() as session:
        message_id, _ = await build_repositories(session).messages.insert(
            external_ref=None, author_ref=None, text="can you check?", created_at=NOW
        )
    return message_id


async def _followup(session_factory, message_id):
    async with session_factory() as session:
        return await build_repositories(session).followups.get(message_id)


async def _apply(session_factory, action, *args):
    async with session_factory() as session:
        await getattr(build_repositories(session).followups, action)(*args)


@pytest.mark.asyncio
async def test_open_creates_open_row(session_factory, message_id):
    await _apply(session_factory, "open_or_update", message_id, NOW)
    await _apply(session_factory, "open_or_update", message_id, NOW + timedelta(minutes=1))

    followup = await _followup(session_factory, message_id)
    assert followup.status == FollowupStatus.OPEN
    assert followup.due_at is None
    assert followup.resolved_at is None


@pytest.mark.asyncio
async def test_resolve_twice_keeps_first_resolved_at(session_factory, message_id):
    await _apply(session_factory, "open_or_update", message_id, NOW)
    await _apply(session_factory, "resolve", message_id, NOW + timedelta(hours=1))
    await _apply(session_factory, "resolve", message_id, NOW + timedelta(hours=2))

    followup = await _followup(session_factory, message_id)
    assert followup.status == FollowupStatus.DONE
    assert followup.resolved_at == NOW + timedelta(hours=1)


@pytest.mark.asyncio
async def test_resolve_without_row_creates_nothing(session_factory, message_id):
    await _apply(session_factory, "resolve", message_id, NOW)

    assert await _followup(session_factory, message_id) is None


@pytest.mark.asyncio
async def test_last_snooze_wins(session_factory, message_id):
    await _apply(session_factory, "snooze", message_id, NOW + timedelta(hours=24), NOW)
    await _apply(session_factory, "snooze", message_id, NOW + timedelta(hours=1), NOW)

    followup = await _followup(session_factory, message_id)
    assert followup.due_at == NOW + timedelta(hours=1)
    assert followup.is_snoozed(NOW)
    assert not followup.is_snoozed(NOW + timedelta(hours=2))


@pytest.mark.asyncio
async def test_snooze_reopens_done_row(session_factory, message_id):
    await _apply(session_factory, "open_or_update", message_id, NOW)
    await _apply(session_factory, "resolve", message_id, NOW)
    await _apply(session_factory, "snooze", message_id, NOW + timedelta(hours=3), NOW)

    followup = await _followup(session_factory, message_id)
    assert followup.status == FollowupStatus.OPEN
    assert followup.resolved_at is None
    assert followup.due_at == NOW + timedelta(hours=3)


@pytest.mark.asyncio
async def test_reopen_clears_snooze(session_factory, message_id):
    await _apply(session_factory, "snooze", message_id, NOW + timedelta(hours=3), NOW)
    await _apply(session_factory, "open_or_update", message_id, NOW)

    followup = await _followup(session_factory, message_id)
    assert followup.status == FollowupStatus.OPEN
    assert followup.due_at is None


@pytest.mark.asyncio
async def test_get_many_skips_missing(session_factory, message_id):
    await _apply(session_factory, "open_or_update", message_id, NOW)

    async with session_factory() as session:
        rows = await build_repositories(session).followups.get_many(
            [message_id, "7f9c24e2-5c1a-4c1e-9a3a-0b7e3f4d2a11"]
        )

    assert list(rows) == [message_id]


@pytest.mark.asyncio
async def test_reflagging_reopens_done_row(session_factory, message_id):
    await _apply(session_factory, "open_or_update", message_id, NOW)
    await _apply(session_factory, "resolve", message_id, NOW + timedelta(hours=1))
    await _apply(session_factory, "open_or_update", message_id, NOW + timedelta(hours=2))

    followup = await _followup(session_factory, message_id)
    assert followup.status == FollowupStatus.OPEN
    assert followup.resolved_at is None
    assert followup.due_at is None


@pytest.mark.asyncio
async def test_open_on_open_row_is_a_no_op(session_factory, message_id):
    await _apply(session_factory, "open_or_update", message_id, NOW)
    await _apply(session_factory, "open_or_update", message_id, NOW + timedelta(hours=1))

    async with session_factory() as session:
        row = await session.get(FollowupModel, UUID(message_id))
        assert as_utc(row.updated_at) == NOW
