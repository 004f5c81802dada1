"""
SQLite implementation of the chat message log.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, func, select, update

from app.core.exceptions import SessionNotFoundError
from app.infrastructure.local.chat_session_repository import apply_session_patch, session_orm_to_model
from app.infrastructure.local.database import ChatMessageORM, ChatSessionORM, get_session_factory
from app.interfaces.chat_message_repository import IChatMessageRepository
from app.models.chat_session import ChatMessage, ChatMessageCreate, ChatSession, ChatSessionPatch
from app.models.enums import MessageType, SenderType
from app.utils.datetime_utils import ensure_utc


def message_orm_to_model(orm: ChatMessageORM) -> ChatMessage:
    """Convert message ORM object to Pydantic model."""
    return ChatMessage(
        id=UUID(orm.id),
        session_id=UUID(orm.session_id),
        seq=orm.seq,
        sender_type=SenderType(orm.sender_type),
        sender_id=orm.sender_id,
        message_type=MessageType(orm.message_type),
        body=orm.body,
        file_url=orm.file_url,
        file_name=orm.file_name,
        file_size=orm.file_size,
        created_at=ensure_utc(orm.created_at),
        read_at=ensure_utc(orm.read_at),
    )


class SqliteChatMessageRepository(IChatMessageRepository):
    """SQLite implementation of the message log."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def append(
        self,
        session_id: UUID,
        messages: list[ChatMessageCreate],
        created_at: datetime,
        session_patch: Optional[ChatSessionPatch] = None,
    ) -> tuple[ChatSession, list[ChatMessage]]:
        """Append messages and apply the session patch in one transaction."""
        async with self._session_factory() as session:
            async with session.begin():
                session_orm = await session.get(ChatSessionORM, str(session_id))
                if not session_orm:
                    raise SessionNotFoundError(session_id)

                result = await session.execute(
                    select(func.max(ChatMessageORM.seq)).where(
                        ChatMessageORM.session_id == str(session_id)
                    )
                )
                next_seq = (result.scalar() or 0) + 1

                orms = []
                for offset, data in enumerate(messages):
                    orm = ChatMessageORM(
                        id=str(uuid4()),
                        session_id=str(session_id),
                        seq=next_seq + offset,
                        sender_type=data.sender_type.value,
                        sender_id=data.sender_id,
                        message_type=data.message_type.value,
                        body=data.body,
                        file_url=data.file_url,
                        file_name=data.file_name,
                        file_size=data.file_size,
                        created_at=created_at,
                    )
                    session.add(orm)
                    orms.append(orm)

                if session_patch is not None:
                    apply_session_patch(session_orm, session_patch)
                session_orm.updated_at = created_at

            return session_orm_to_model(session_orm), [message_orm_to_model(orm) for orm in orms]

    async def list_for_session(
        self,
        session_id: UUID,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ChatMessage]:
        """List messages ordered by (created_at, seq)."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatMessageORM)
                .where(ChatMessageORM.session_id == str(session_id))
                .order_by(ChatMessageORM.created_at.asc(), ChatMessageORM.seq.asc())
                .limit(limit)
                .offset(offset)
            )
            return [message_orm_to_model(orm) for orm in result.scalars().all()]

    async def mark_read(self, session_id: UUID, sender_type: SenderType, read_at: datetime) -> int:
        """Mark unread messages from ``sender_type`` as read."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(ChatMessageORM)
                .where(
                    and_(
                        ChatMessageORM.session_id == str(session_id),
                        ChatMessageORM.sender_type == sender_type.value,
                        ChatMessageORM.read_at.is_(None),
                    )
                )
                .values(read_at=read_at)
            )
            await session.commit()
            return result.rowcount or 0

    async def has_sender(self, session_id: UUID, sender_type: SenderType) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatMessageORM.id)
                .where(
                    and_(
                        ChatMessageORM.session_id == str(session_id),
                        ChatMessageORM.sender_type == sender_type.value,
                    )
                )
                .limit(1)
            )
            return result.first() is not None

    async def count_for_sessions(self, session_ids: list[UUID]) -> dict[UUID, int]:
        if not session_ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatMessageORM.session_id, func.count(ChatMessageORM.id))
                .where(ChatMessageORM.session_id.in_([str(sid) for sid in session_ids]))
                .group_by(ChatMessageORM.session_id)
            )
            counts = {sid: 0 for sid in session_ids}
            for session_id, count in result.all():
                counts[UUID(session_id)] = count
            return counts

    async def count_unread_for_sessions(
        self,
        session_ids: list[UUID],
        sender_type: SenderType,
    ) -> dict[UUID, int]:
        if not session_ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatMessageORM.session_id, func.count(ChatMessageORM.id))
                .where(
                    and_(
                        ChatMessageORM.session_id.in_([str(sid) for sid in session_ids]),
                        ChatMessageORM.sender_type == sender_type.value,
                        ChatMessageORM.read_at.is_(None),
                    )
                )
                .group_by(ChatMessageORM.session_id)
            )
            counts = {sid: 0 for sid in session_ids}
            for session_id, count in result.all():
                counts[UUID(session_id)] = count
            return counts

    async def last_for_sessions(self, session_ids: list[UUID]) -> dict[UUID, ChatMessage]:
        if not session_ids:
            return {}
        async with self._session_factory() as session:
            latest = (
                select(
                    ChatMessageORM.session_id.label("session_id"),
                    func.max(ChatMessageORM.seq).label("max_seq"),
                )
                .where(ChatMessageORM.session_id.in_([str(sid) for sid in session_ids]))
                .group_by(ChatMessageORM.session_id)
                .subquery()
            )
            result = await session.execute(
                select(ChatMessageORM).join(
                    latest,
                    and_(
                        ChatMessageORM.session_id == latest.c.session_id,
                        ChatMessageORM.seq == latest.c.max_seq,
                    ),
                )
            )
            return {UUID(orm.session_id): message_orm_to_model(orm) for orm in result.scalars().all()}
