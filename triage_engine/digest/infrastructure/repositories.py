"""
Digest Infrastructure Repositories
====================================

SQLAlchemy implementation of the summary repository.
"""

from datetime import date
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from triage_engine.core import as_utc
from triage_engine.digest.application import ISummaryRepository
from triage_engine.digest.domain import Summary
from triage_engine.digest.infrastructure.models import SummaryModel
from triage_engine.infrastructure.database import dialect_insert


def summary_to_domain(model: SummaryModel) -> Summary:
    return Summary(
        id=str(model.id),
        start_date=model.start_date,
        end_date=model.end_date,
        summary_md=model.summary_md,
        message_count=model.message_count,
        created_at=as_utc(model.created_at),
    )


class SQLAlchemySummaryRepository(ISummaryRepository):
    """Summaries keyed by their inclusive date range."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, start_date: date, end_date: date) -> Optional[Summary]:
        stmt = select(SummaryModel).where(
            SummaryModel.start_date == start_date,
            SummaryModel.end_date == end_date,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return summary_to_domain(model) if model else None

    async def insert_if_absent(self, summary: Summary) -> Summary:
        """
        Insert the summary; a duplicate range is a benign race.

        Returns the stored row, which is the first writer's on conflict.
        """
        stmt = (
            dialect_insert(self._session, SummaryModel)
            .values(
                id=uuid4(),
                start_date=summary.start_date,
                end_date=summary.end_date,
                summary_md=summary.summary_md,
                message_count=summary.message_count,
                created_at=as_utc(summary.created_at),
            )
            .on_conflict_do_nothing(index_elements=["start_date", "end_date"])
        )
        await self._session.execute(stmt)

        return await self.get(summary.start_date, summary.end_date)
