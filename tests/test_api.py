from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio

from triage_engine.main import app

from conftest import NOW

MISSING_ID = "7f9c24e2-5c1a-4c1e-9a3a-0b7e3f4d2a11"


@pytest_asyncio.fixture
async def client(coordinator):
    app.state.coordinator = coordinator
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    del app.state.coordinator


def _payload(text, external_ref, **extra):
    return {
        "external_ref": external_ref,
        "author": {"external_user_id": "42", "username": "sam"},
        "text": text,
        "created_at": NOW.isoformat(),
        **extra,
    }


@pytest.mark.asyncio
async def test_ingest_then_review(client, llm):
    llm.classification = {"is_question": True}

    resp = await client.post("/triage/messages", json=_payload("who has the keys?", "tg:1"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["was_new"] is True
    assert body["enrichment"] == "scheduled"
    assert resp.headers["X-Correlation-ID"]

    resp = await client.get("/triage/review", params={"days": 3})
    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [i["id"] for i in items] == [body["message_id"]]
    assert items[0]["is_question"] is True
    assert items[0]["followup_status"] == "open"


@pytest.mark.asyncio
async def test_ingest_without_created_at_uses_the_clock(client, clock, llm):
    llm.classification = {"is_question": True}
    clock.now = NOW + timedelta(minutes=5)
    payload = _payload("anyone around?", "tg:9")
    del payload["created_at"]

    resp = await client.post("/triage/messages", json=payload)
    assert resp.status_code == 200

    items = (await client.get("/triage/review", params={"days": 1})).json()["items"]
    assert datetime.fromisoformat(items[0]["created_at"].replace("Z", "+00:00")) == clock.now


@pytest.mark.asyncio
async def test_duplicate_and_skipped_enrichment(client, llm):
    first = await client.post("/triage/messages", json=_payload("hi", "tg:2", enrich=False))
    second = await client.post("/triage/messages", json=_payload("hi", "tg:2"))

    assert first.json()["enrichment"] == "skipped"
    assert second.json() == {
        "message_id": first.json()["message_id"],
        "was_new": False,
        "enrichment": "duplicate",
    }
    assert llm.chat_calls == []


@pytest.mark.asyncio
async def test_resolve_and_snooze(client):
    created = await client.post("/triage/messages", json=_payload("ping", "tg:3", enrich=False))
    message_id = created.json()["message_id"]

    resp = await client.post(f"/triage/followups/{message_id}/snooze", json={"hours": 2})
    assert resp.status_code == 200
    assert resp.json()["status"] == "open"
    assert datetime.fromisoformat(resp.json()["due_at"].replace("Z", "+00:00")) > NOW

    resp = await client.post(f"/triage/followups/{message_id}/resolve")
    assert resp.status_code == 200
    assert resp.json()["status"] == "done"


@pytest.mark.asyncio
async def test_action_errors_map_to_status_codes(client):
    resp = await client.post("/triage/followups/not-a-uuid/resolve")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "message id is not a valid UUID"

    resp = await client.post(f"/triage/followups/{MISSING_ID}/resolve")
    assert resp.status_code == 404

    resp = await client.post(f"/triage/followups/{MISSING_ID}/snooze", json={"hours": 0})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_summary_is_cached(client, summarizer):
    first = await client.get("/digest/summary", params={"days": 7})
    second = await client.get("/digest/summary", params={"days": 7})

    assert first.status_code == 200
    assert first.json()["start_date"] == "2024-03-04"
    assert first.json()["end_date"] == "2024-03-10"
    assert second.json()["summary_md"] == first.json()["summary_md"]
    assert len(summarizer.calls) == 1


@pytest.mark.asyncio
async def test_out_of_range_days_rejected(client):
    assert (await client.get("/triage/review", params={"days": 0})).status_code == 422
    assert (await client.get("/digest/summary", params={"days": 31})).status_code == 422


@pytest.mark.asyncio
async def test_search(client, llm):
    await client.post("/triage/messages", json=_payload("invoice overdue", "tg:4"))

    resp = await client.get("/triage/search", params={"q": "invoice"})

    assert resp.status_code == 200
    assert resp.json()["hits"][0]["snippet"] == "invoice overdue"


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["checks"]["coordinator"] == "ready"
