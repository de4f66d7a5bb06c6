"""
Digest Controllers (API Routes)
================================

FastAPI routes for date-range summaries.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from triage_engine.digest.application import SummaryResponse
from triage_engine.triage.application import TriageCoordinator
from triage_engine.triage.interfaces.controllers import get_coordinator

router = APIRouter(prefix="/digest", tags=["Digest"])


SUMMARY_EXAMPLE = {
    "start_date": "2024-03-04",
    "end_date": "2024-03-10",
    "summary_md": "### Key topics\n- Q3 numbers\n\n### Open questions\n- Deadline for the report",
    "message_count": 42,
    "created_at": "2024-03-10T12:00:00Z"
}


@router.get(
    "/summary",
    response_model=SummaryResponse,
    summary="Summary of the trailing days",
    description="""
    Markdown digest of the last `days` UTC calendar days, today included
    (1-30, default 7). The first request for a date range writes the
    summary; later requests for the same range return the stored one.
    """,
    responses={200: {"content": {"application/json": {"example": SUMMARY_EXAMPLE}}}}
)
async def get_summary(
    days: Optional[int] = Query(None, ge=1, le=30),
    coordinator: TriageCoordinator = Depends(get_coordinator)
):
    summary = await coordinator.summary(days)
    return SummaryResponse.from_domain(summary)


# Export router for inclusion in main app
digest_router = router
