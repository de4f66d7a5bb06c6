"""
Triage Controllers (API Routes)
================================

FastAPI routes for the triage events: new message, review, resolve,
snooze, and semantic search.

Controllers are thin - they delegate to the triage coordinator.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from triage_engine.config import FollowupStatus
from triage_engine.shared.infrastructure.logging import get_logger
from triage_engine.triage.application import (
    FollowupActionResponse,
    NewMessageRequest,
    NewMessageResponse,
    ReviewItemInfo,
    ReviewResponse,
    SearchHitInfo,
    SearchResponse,
    SnoozeRequest,
    TriageCoordinator,
)

router = APIRouter(prefix="/triage", tags=["Message Triage"])
logger = get_logger(__name__)


# ========== Example payloads for Swagger ==========

NEW_MESSAGE_EXAMPLE = {
    "external_ref": "tg:update:912345678",
    "author": {"external_user_id": "4242", "username": "sam"},
    "text": "Can you send me the Q3 numbers before Friday?",
    "created_at": "2024-03-10T09:15:00Z",
    "raw_payload": {"update_id": 912345678}
}

REVIEW_RESPONSE_EXAMPLE = {
    "days": 3,
    "items": [
        {
            "id": "123e4567-e89b-12d3-a456-426614174000",
            "created_at": "2024-03-10T09:15:00Z",
            "short_text": "Can you send me the Q3 numbers before Friday?",
            "is_question": True,
            "followup": True,
            "urgency_score": 0.6,
            "replied": False,
            "score": 7.9,
            "followup_status": "open",
            "due_at": None
        }
    ]
}


# ========== Dependencies ==========

def get_coordinator(request: Request) -> TriageCoordinator:
    """Get the triage coordinator built during startup."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(
            status_code=503,
            detail="Triage coordinator not available"
        )
    return coordinator


def _correlation_id(request: Request):
    return getattr(request.state, "correlation_id", None)


# ========== Route Handlers ==========

@router.post(
    "/messages",
    response_model=NewMessageResponse,
    summary="Ingest a message",
    description="""
    Store a message from the chat channel.

    Re-delivering the same `external_ref` returns the stored id with
    `was_new=false` and changes nothing. New messages are classified and
    embedded in the background after the response is sent.
    """,
    responses={200: {"content": {"application/json": {"example": {
        "message_id": "123e4567-e89b-12d3-a456-426614174000",
        "was_new": True,
        "enrichment": "scheduled"
    }}}}}
)
async def ingest_message(
    request: Request,
    payload: NewMessageRequest,
    background_tasks: BackgroundTasks,
    coordinator: TriageCoordinator = Depends(get_coordinator)
):
    result = await coordinator.ingest(payload.to_domain())

    if not result.was_new:
        enrichment = "duplicate"
    elif payload.enrich:
        background_tasks.add_task(coordinator.enrich_message, result.message_id)
        enrichment = "scheduled"
    else:
        enrichment = "skipped"

    logger.info(
        "Message event handled",
        extra={
            "correlation_id": _correlation_id(request),
            "message_id": result.message_id,
            "was_new": result.was_new,
            "enrichment": enrichment
        }
    )
    return NewMessageResponse.from_result(result, enrichment)


@router.get(
    "/review",
    response_model=ReviewResponse,
    summary="Ranked review queue",
    description="""
    Top items of the last `days` days (1-30, default 3), ranked by
    open question, follow-up flag, urgency, reply status and recency.
    """,
    responses={200: {"content": {"application/json": {"example": REVIEW_RESPONSE_EXAMPLE}}}}
)
async def review(
    days: Optional[int] = Query(None, ge=1, le=30),
    coordinator: TriageCoordinator = Depends(get_coordinator)
):
    items = await coordinator.review(days)
    return ReviewResponse(
        days=days or coordinator.config.review_default_days,
        items=[ReviewItemInfo.from_domain(i) for i in items]
    )


@router.post(
    "/followups/{message_id}/resolve",
    response_model=FollowupActionResponse,
    summary="Mark a follow-up done",
)
async def resolve_followup(
    request: Request,
    message_id: str,
    coordinator: TriageCoordinator = Depends(get_coordinator)
):
    await coordinator.resolve(message_id)
    logger.info(
        "Resolve action handled",
        extra={"correlation_id": _correlation_id(request), "message_id": message_id}
    )
    return FollowupActionResponse(message_id=message_id, status=FollowupStatus.DONE)


@router.post(
    "/followups/{message_id}/snooze",
    response_model=FollowupActionResponse,
    summary="Snooze a follow-up",
    description="Hide the follow-up for `hours` (default 24). The last snooze wins.",
)
async def snooze_followup(
    request: Request,
    message_id: str,
    payload: Optional[SnoozeRequest] = None,
    coordinator: TriageCoordinator = Depends(get_coordinator)
):
    due_at = await coordinator.snooze(message_id, payload.hours if payload else None)
    logger.info(
        "Snooze action handled",
        extra={"correlation_id": _correlation_id(request), "message_id": message_id}
    )
    return FollowupActionResponse(
        message_id=message_id, status=FollowupStatus.OPEN, due_at=due_at
    )


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Semantic search over messages",
)
async def search(
    q: str = Query(..., min_length=1, description="Phrase to look for"),
    k: Optional[int] = Query(None, ge=1, le=20),
    coordinator: TriageCoordinator = Depends(get_coordinator)
):
    hits = await coordinator.search(q, k)
    return SearchResponse(query=q, hits=[SearchHitInfo.from_domain(h) for h in hits])


# Export router for inclusion in main app
triage_router = router
