from datetime import date, datetime, timedelta, timezone

import pytest

from triage_engine.core import LLMException
from triage_engine.digest.domain import DateRange, Summary, SummaryPromptBuilder
from triage_engine.digest.infrastructure import LLMSummarizer, SQLAlchemySummaryRepository
from triage_engine.triage.domain import IncomingMessage

from conftest import NOW, CountingSummarizer, FakeLLMClient

WEEK_START = date(2024, 3, 4)
WEEK_END = date(2024, 3, 10)


def test_trailing_window_includes_today():
    window = DateRange.trailing(7, NOW)

    assert window.start_date == WEEK_START
    assert window.end_date == WEEK_END
    assert window.days == 7
    assert window.start_instant == datetime(2024, 3, 4, tzinfo=timezone.utc)
    assert window.end_instant.date() == WEEK_END


def test_prompt_truncates_each_message():
    prompt = SummaryPromptBuilder.build_prompt(["a" * 500, "short  \n text"], days=7, snippet_chars=10)

    assert "- " + "a" * 10 + "…" in prompt
    assert "- short text" in prompt
    assert "last 7 days" in prompt


@pytest.mark.asyncio
async def test_second_request_is_served_from_cache(coordinator, summarizer):
    await coordinator.ingest(IncomingMessage(text="kickoff", created_at=NOW - timedelta(days=1)))

    first = await coordinator.summary(7)
    second = await coordinator.summary(7)

    assert len(summarizer.calls) == 1
    assert second.summary_md == first.summary_md
    assert (second.start_date, second.end_date) == (WEEK_START, WEEK_END)
    assert second.message_count == 1


@pytest.mark.asyncio
async def test_generated_summary_is_stamped_by_the_coordinator_clock(coordinator, clock, session_factory):
    clock.now = NOW + timedelta(hours=3)

    summary = await coordinator.summary(1)

    assert summary.created_at == clock.now
    async with session_factory() as session:
        stored = await SQLAlchemySummaryRepository(session).get(WEEK_END, WEEK_END)
    assert stored.created_at == clock.now


@pytest.mark.asyncio
async def test_cache_clock_stamps_direct_requests(summary_cache, coordinator, clock):
    summary = await summary_cache.get_or_create(WEEK_START, WEEK_END, coordinator, CountingSummarizer())

    assert summary.created_at == clock()


@pytest.mark.asyncio
async def test_existing_row_is_returned_without_summarizing(coordinator, summarizer, session_factory):
    async with session_factory() as session:
        await SQLAlchemySummaryRepository(session).insert_if_absent(
            Summary(WEEK_START, WEEK_END, "precomputed digest", created_at=NOW)
        )

    summary = await coordinator.summary(7)

    assert summary.summary_md == "precomputed digest"
    assert summarizer.calls == []


@pytest.mark.asyncio
async def test_window_covers_whole_calendar_days(coordinator, summarizer):
    for text, created_at in [
        ("before", datetime(2024, 3, 3, 23, 59, 59, tzinfo=timezone.utc)),
        ("first", datetime(2024, 3, 4, 0, 0, tzinfo=timezone.utc)),
        ("later today", datetime(2024, 3, 10, 23, 30, tzinfo=timezone.utc)),
        ("middle", datetime(2024, 3, 7, 9, 0, tzinfo=timezone.utc)),
    ]:
        await coordinator.ingest(IncomingMessage(text=text, created_at=created_at))

    await coordinator.summary(7)

    texts, days = summarizer.calls[0]
    assert texts == ["first", "middle", "later today"]
    assert days == 7


@pytest.mark.asyncio
async def test_concurrent_writer_keeps_first_summary(summary_cache, session_factory, coordinator):
    class RacingSummarizer(CountingSummarizer):
        async def summarize(self, texts, days):
            async with session_factory() as session:
                await SQLAlchemySummaryRepository(session).insert_if_absent(
                    Summary(WEEK_START, WEEK_END, "written first", created_at=NOW)
                )
            return await super().summarize(texts, days)

    racer = RacingSummarizer(result="written second")
    summary = await summary_cache.get_or_create(WEEK_START, WEEK_END, coordinator, racer)

    assert len(racer.calls) == 1
    assert summary.summary_md == "written first"


@pytest.mark.asyncio
async def test_summarizer_failure_caches_nothing(summary_cache, coordinator):
    failing = LLMSummarizer(FakeLLMClient(fail_chat=True))

    with pytest.raises(LLMException):
        await summary_cache.get_or_create(WEEK_START, WEEK_END, coordinator, failing)

    assert await summary_cache.lookup(WEEK_START, WEEK_END) is None


@pytest.mark.asyncio
async def test_llm_summarizer_sends_summary_prompt():
    llm = FakeLLMClient(summary="### Themes\n- billing")

    result = await LLMSummarizer(llm).summarize(["invoice is late"], 7)

    assert result == "### Themes\n- billing"
    assert llm.chat_calls[0]["operation"] == "summary"
    assert "- invoice is late" in llm.chat_calls[0]["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_llm_summarizer_empty_reply():
    result = await LLMSummarizer(FakeLLMClient(summary="")).summarize([], 1)

    assert result == "_(empty)_"
