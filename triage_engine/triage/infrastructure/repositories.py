"""
Triage Infrastructure Repositories
====================================

SQLAlchemy implementations of the triage repositories.

Every write that can race with a duplicate is a single
`INSERT ... ON CONFLICT` statement; nothing reads a row to decide how to
write it.
"""

from dataclasses import fields as dataclass_fields
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from triage_engine.config import FollowupStatus, SortOrder, VALID_SORT_ORDERS
from triage_engine.core import RepositoryException, ValidationException, as_utc
from triage_engine.infrastructure.database import dialect_insert
from triage_engine.triage.application import (
    IAuthorRepository,
    IEmbeddingRepository,
    IFollowupRepository,
    IMessageRepository,
    TriageRepositories,
)
from triage_engine.triage.domain import AuthorIdentity, Classification, Followup, Message
from triage_engine.triage.infrastructure.models import (
    AuthorModel,
    EmbeddingModel,
    FollowupModel,
    MessageModel,
)

MESSAGE_FIELDS = {f.name for f in dataclass_fields(Message)}
ALWAYS_LOADED = ("id", "created_at")


def _uuid(value: str) -> UUID:
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except ValueError:
        raise RepositoryException(f"Invalid id: {value}")


def message_to_domain(model: MessageModel) -> Message:
    return Message(
        id=str(model.id),
        created_at=as_utc(model.created_at),
        text=model.text,
        external_ref=model.external_ref,
        author_ref=str(model.author_ref) if model.author_ref else None,
        is_question=model.is_question,
        needs_reply=model.needs_reply,
        followup=model.followup,
        urgency_score=model.urgency_score,
        topics=model.topics,
        entities=model.entities,
        sentiment=model.sentiment,
        replied=bool(model.replied),
        enriched_at=as_utc(model.enriched_at),
    )


def followup_to_domain(model: FollowupModel) -> Followup:
    return Followup(
        message_id=str(model.message_id),
        status=model.status,
        due_at=as_utc(model.due_at),
        resolved_at=as_utc(model.resolved_at),
    )


class SQLAlchemyMessageRepository(IMessageRepository):
    """Message Store backed by the `messages` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def insert(
        self,
        external_ref: Optional[str],
        author_ref: Optional[str],
        text: str,
        created_at: datetime,
        raw_payload: Optional[dict] = None
    ) -> Tuple[str, bool]:
        """
        Insert a message, or return the id already stored for `external_ref`.

        Returns:
            (message id, was_new)
        """
        values = dict(
            id=uuid4(),
            external_ref=external_ref,
            author_ref=_uuid(author_ref) if author_ref else None,
            text=text,
            raw_payload=raw_payload or {},
            created_at=as_utc(created_at),
            replied=False,
        )

        if external_ref is None:
            await self._session.execute(insert(MessageModel).values(**values))
            return str(values["id"]), True

        stmt = (
            dialect_insert(self._session, MessageModel)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["external_ref"])
            .returning(MessageModel.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        if inserted is not None:
            return str(inserted), True

        existing = await self._session.execute(
            select(MessageModel.id).where(MessageModel.external_ref == external_ref)
        )
        return str(existing.scalar_one()), False

    async def get(self, message_id: str) -> Optional[Message]:
        model = await self._session.get(MessageModel, _uuid(message_id))
        return message_to_domain(model) if model else None

    async def exists(self, message_id: str) -> bool:
        stmt = select(MessageModel.id).where(MessageModel.id == _uuid(message_id))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def update_metadata(
        self,
        message_id: str,
        classification: Classification,
        enriched_at: datetime
    ) -> None:
        await self._session.execute(
            update(MessageModel)
            .where(MessageModel.id == _uuid(message_id))
            .values(
                is_question=classification.is_question,
                needs_reply=classification.needs_reply,
                followup=classification.followup,
                urgency_score=classification.urgency_score,
                topics=classification.topics,
                entities=classification.entities,
                sentiment=classification.sentiment,
                enriched_at=as_utc(enriched_at),
            )
        )

    async def query_window(
        self,
        start: datetime,
        end: datetime,
        limit: int,
        order: str = SortOrder.DESC,
        fields: Optional[Sequence[str]] = None
    ) -> List[Message]:
        """
        Messages created in [start, end], bounded by `limit`.

        Args:
            order: "asc" for chronological, "desc" for newest first
            fields: Message attributes to load; id and created_at always are
        """
        if order not in VALID_SORT_ORDERS:
            raise ValidationException(f"Invalid order: {order}")

        ordering = (
            MessageModel.created_at.asc() if order == SortOrder.ASC
            else MessageModel.created_at.desc()
        )
        window = (
            MessageModel.created_at >= as_utc(start),
            MessageModel.created_at <= as_utc(end),
        )

        if not fields:
            stmt = select(MessageModel).where(*window).order_by(ordering).limit(limit)
            result = await self._session.execute(stmt)
            return [message_to_domain(m) for m in result.scalars().all()]

        unknown = set(fields) - MESSAGE_FIELDS
        if unknown:
            raise ValidationException(f"Unknown message fields: {sorted(unknown)}")
        names = list(ALWAYS_LOADED) + [f for f in fields if f not in ALWAYS_LOADED]

        stmt = (
            select(*[getattr(MessageModel, name) for name in names])
            .where(*window)
            .order_by(ordering)
            .limit(limit)
        )
        result = await self._session.execute(stmt)

        messages = []
        for row in result.all():
            data = dict(row._mapping)
            data["id"] = str(data["id"])
            data["created_at"] = as_utc(data["created_at"])
            if data.get("author_ref") is not None:
                data["author_ref"] = str(data["author_ref"])
            if "enriched_at" in data:
                data["enriched_at"] = as_utc(data["enriched_at"])
            if "replied" in data:
                data["replied"] = bool(data["replied"])
            messages.append(Message(**data))
        return messages

    async def mark_replied(self, message_id: str) -> None:
        await self._session.execute(
            update(MessageModel)
            .where(MessageModel.id == _uuid(message_id))
            .values(replied=True)
        )


class SQLAlchemyAuthorRepository(IAuthorRepository):
    """Authors keyed by transport user id."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def upsert(self, author: AuthorIdentity) -> str:
        stmt = dialect_insert(self._session, AuthorModel).values(
            id=uuid4(),
            external_user_id=str(author.external_user_id),
            display_name=author.display_name,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["external_user_id"],
            set_={
                "display_name": stmt.excluded.display_name,
                "updated_at": stmt.excluded.created_at,
            },
        ).returning(AuthorModel.id)
        result = await self._session.execute(stmt)
        return str(result.scalar_one())


class SQLAlchemyEmbeddingRepository(IEmbeddingRepository):
    """Embedding vectors, one row per message."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def upsert(self, message_id: str, vector: List[float], model: Optional[str]) -> None:
        stmt = dialect_insert(self._session, EmbeddingModel).values(
            message_id=_uuid(message_id),
            vector=list(vector),
            model=model,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["message_id"],
            set_={
                "vector": stmt.excluded.vector,
                "model": stmt.excluded.model,
                "created_at": stmt.excluded.created_at,
            },
        )
        await self._session.execute(stmt)

    async def list_recent(self, limit: int) -> List[Tuple[Message, List[float]]]:
        stmt = (
            select(MessageModel, EmbeddingModel.vector)
            .join(EmbeddingModel, EmbeddingModel.message_id == MessageModel.id)
            .order_by(MessageModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [(message_to_domain(model), vector) for model, vector in result.all()]


class SQLAlchemyFollowupRepository(IFollowupRepository):
    """
    Follow-up Tracker backed by the `followups` table.

    The final state of a row depends only on the last statement applied
    to it, so concurrent actions on one message need no locking.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    def _insert(self, message_id: str, now: datetime, **values):
        return dialect_insert(self._session, FollowupModel).values(
            message_id=_uuid(message_id),
            created_at=as_utc(now),
            updated_at=as_utc(now),
            **values
        )

    async def open_or_update(self, message_id: str, now: datetime) -> None:
        stmt = self._insert(
            message_id, now, status=FollowupStatus.OPEN, due_at=None, resolved_at=None
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["message_id"],
            set_={
                "status": FollowupStatus.OPEN,
                "due_at": None,
                "resolved_at": None,
                "updated_at": stmt.excluded.updated_at,
            },
            # already open and not snoozed: leave the row alone
            where=or_(
                FollowupModel.status != FollowupStatus.OPEN,
                FollowupModel.due_at.is_not(None),
            ),
        )
        await self._session.execute(stmt)

    async def resolve(self, message_id: str, now: datetime) -> None:
        # no row means the message was never flagged; nothing to close
        await self._session.execute(
            update(FollowupModel)
            .where(
                FollowupModel.message_id == _uuid(message_id),
                FollowupModel.status != FollowupStatus.DONE,
            )
            .values(
                status=FollowupStatus.DONE,
                resolved_at=as_utc(now),
                updated_at=as_utc(now),
            )
        )

    async def snooze(self, message_id: str, due_at: datetime, now: datetime) -> None:
        stmt = self._insert(
            message_id, now, status=FollowupStatus.OPEN, due_at=as_utc(due_at)
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["message_id"],
            set_={
                "status": FollowupStatus.OPEN,
                "due_at": stmt.excluded.due_at,
                "resolved_at": None,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)

    async def get(self, message_id: str) -> Optional[Followup]:
        model = await self._session.get(FollowupModel, _uuid(message_id))
        return followup_to_domain(model) if model else None

    async def get_many(self, message_ids: Sequence[str]) -> Dict[str, Followup]:
        if not message_ids:
            return {}
        stmt = select(FollowupModel).where(
            FollowupModel.message_id.in_([_uuid(m) for m in message_ids])
        )
        result = await self._session.execute(stmt)
        return {
            str(model.message_id): followup_to_domain(model)
            for model in result.scalars().all()
        }


def build_repositories(session: AsyncSession) -> TriageRepositories:
    """Repositories sharing one session (one unit of work)."""
    return TriageRepositories(
        messages=SQLAlchemyMessageRepository(session),
        authors=SQLAlchemyAuthorRepository(session),
        embeddings=SQLAlchemyEmbeddingRepository(session),
        followups=SQLAlchemyFollowupRepository(session),
    )
