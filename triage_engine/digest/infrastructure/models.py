"""
Digest Infrastructure Models
=============================

SQLAlchemy ORM models for the digest module.
"""

from datetime import date, datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from triage_engine.infrastructure.database import Base


class SummaryModel(Base):
    """
    Database model for the Summary entity.

    The unique (start_date, end_date) pair is the cache key.
    """
    __tablename__ = "summaries"
    __table_args__ = (
        UniqueConstraint("start_date", "end_date", name="uq_summaries_range"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    summary_md: Mapped[str] = mapped_column(Text, nullable=False)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
