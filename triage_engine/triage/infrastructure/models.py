"""
Triage Infrastructure Models
=============================

SQLAlchemy ORM models for the triage module.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON, Boolean, DateTime, Float, ForeignKey, String, Text, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column

from triage_engine.config import FollowupStatus
from triage_engine.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthorModel(Base):
    """Sender of messages, keyed by the transport's user id."""
    __tablename__ = "authors"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    external_user_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class MessageModel(Base):
    """
    Database model for the Message entity.

    Append-mostly: rows are only touched again by enrichment and by
    marking them replied.
    """
    __tablename__ = "messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # De-duplication key from the source channel
    external_ref: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    author_ref: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("authors.id", ondelete="SET NULL"), nullable=True
    )

    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    raw_payload: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True, default=_utcnow
    )

    # Enrichment output, NULL until classified
    is_question: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    needs_reply: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    followup: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    urgency_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    topics: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    entities: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    sentiment: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    replied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class EmbeddingModel(Base):
    """One embedding vector per message."""
    __tablename__ = "embeddings"

    message_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    vector: Mapped[list[float]] = mapped_column(JSON, nullable=False)
    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class FollowupModel(Base):
    """Follow-up tracker row; at most one per message."""
    __tablename__ = "followups"

    message_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FollowupStatus.OPEN, index=True
    )
    due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
