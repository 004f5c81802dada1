"""
SQLite implementation of Chat session repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, exists, func, or_, select, update

from app.core.exceptions import SessionNotFoundError
from app.infrastructure.local.database import (
    ChatMessageORM,
    ChatSessionORM,
    SNAPSHOT_READ,
    DepartmentORM,
    get_session_factory,
)
from app.infrastructure.local.department_repository import department_orm_to_model
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.models.analytics import AnalyticsSnapshot, SessionMessageStats
from app.models.chat_session import ChatSession, ChatSessionPatch, VisitorInfo
from app.models.enums import OPEN_STATUSES, ChatNotice, SenderType, SessionStatus
from app.utils.datetime_utils import ensure_utc

_NOTICE_COLUMNS = {
    ChatNotice.NEW_CHAT: ChatSessionORM.new_chat_notified,
    ChatNotice.OFFLINE_MESSAGE: ChatSessionORM.offline_notified,
}


def session_orm_to_model(orm: ChatSessionORM) -> ChatSession:
    """Convert session ORM object to Pydantic model."""
    return ChatSession(
        id=UUID(orm.id),
        visitor_name=orm.visitor_name,
        visitor_email=orm.visitor_email,
        visitor_phone=orm.visitor_phone,
        visitor_id=orm.visitor_id,
        status=SessionStatus(orm.status),
        requested_department=orm.requested_department,
        department_id=UUID(orm.department_id) if orm.department_id else None,
        assigned_agent_id=orm.assigned_agent_id,
        rating=orm.rating,
        rating_comment=orm.rating_comment,
        metadata=orm.extra,
        created_at=ensure_utc(orm.created_at),
        last_message_at=ensure_utc(orm.last_message_at),
        resolved_at=ensure_utc(orm.resolved_at),
        ended_at=ensure_utc(orm.ended_at),
        is_offline_message=bool(orm.is_offline_message),
        new_chat_notified=bool(orm.new_chat_notified),
        offline_notified=bool(orm.offline_notified),
        updated_at=ensure_utc(orm.updated_at),
    )


def apply_session_patch(orm: ChatSessionORM, patch: ChatSessionPatch) -> None:
    """Copy explicitly-set patch fields onto an ORM row."""
    for key, value in patch.model_dump(exclude_unset=True).items():
        if key == "status" and value is not None:
            value = SessionStatus(value).value
        elif key == "department_id" and value is not None:
            value = str(value)
        setattr(orm, key, value)


class SqliteChatSessionRepository(IChatSessionRepository):
    """SQLite implementation of chat session repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def create(self, visitor: VisitorInfo, created_at: datetime) -> ChatSession:
        """Create a session in WAITING."""
        async with self._session_factory() as session:
            orm = ChatSessionORM(
                id=str(uuid4()),
                visitor_name=visitor.visitor_name,
                visitor_email=str(visitor.visitor_email) if visitor.visitor_email else None,
                visitor_phone=visitor.visitor_phone,
                visitor_id=visitor.visitor_id,
                status=SessionStatus.WAITING.value,
                requested_department=visitor.department,
                extra=visitor.metadata,
                created_at=created_at,
                last_message_at=created_at,
                updated_at=created_at,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return session_orm_to_model(orm)

    async def get(self, session_id: UUID) -> Optional[ChatSession]:
        """Get a session by ID."""
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, str(session_id))
            return session_orm_to_model(orm) if orm else None

    async def list(
        self,
        status: Optional[SessionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChatSession]:
        """List sessions, most recent activity first."""
        async with self._session_factory() as session:
            query = select(ChatSessionORM)
            if status:
                query = query.where(ChatSessionORM.status == status.value)
            query = (
                query.order_by(ChatSessionORM.last_message_at.desc(), ChatSessionORM.id)
                .limit(limit)
                .offset(offset)
            )
            result = await session.execute(query)
            return [session_orm_to_model(orm) for orm in result.scalars().all()]

    async def count(self, status: Optional[SessionStatus] = None) -> int:
        """Count sessions, optionally by status."""
        async with self._session_factory() as session:
            query = select(func.count(ChatSessionORM.id))
            if status:
                query = query.where(ChatSessionORM.status == status.value)
            result = await session.execute(query)
            return result.scalar() or 0

    async def update(self, session_id: UUID, patch: ChatSessionPatch) -> ChatSession:
        """Apply a patch to a session."""
        async with self._session_factory() as session:
            orm = await session.get(ChatSessionORM, str(session_id))
            if not orm:
                raise SessionNotFoundError(session_id)
            apply_session_patch(orm, patch)
            await session.commit()
            await session.refresh(orm)
            return session_orm_to_model(orm)

    async def set_rating(
        self,
        session_id: UUID,
        rating: int,
        comment: Optional[str],
    ) -> bool:
        """Store a rating if none exists yet (check-and-set)."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(ChatSessionORM)
                .where(
                    and_(
                        ChatSessionORM.id == str(session_id),
                        ChatSessionORM.rating.is_(None),
                    )
                )
                .values(rating=rating, rating_comment=comment)
            )
            await session.commit()
            return result.rowcount == 1

    async def claim_notice(self, session_id: UUID, notice: ChatNotice) -> bool:
        """Flip a notice flag from False to True (check-and-set)."""
        column = _NOTICE_COLUMNS[notice]
        async with self._session_factory() as session:
            result = await session.execute(
                update(ChatSessionORM)
                .where(and_(ChatSessionORM.id == str(session_id), column.is_(False)))
                .values({column: True})
            )
            await session.commit()
            return result.rowcount == 1

    async def release_notice(self, session_id: UUID, notice: ChatNotice) -> None:
        """Clear a claimed notice flag after a failed send."""
        column = _NOTICE_COLUMNS[notice]
        async with self._session_factory() as session:
            await session.execute(
                update(ChatSessionORM)
                .where(ChatSessionORM.id == str(session_id))
                .values({column: False})
            )
            await session.commit()

    async def count_open_by_agent(self, agent_ids: list[str]) -> dict[str, int]:
        """Count WAITING/ASSIGNED/ACTIVE sessions per agent."""
        if not agent_ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM.assigned_agent_id, func.count(ChatSessionORM.id))
                .where(
                    and_(
                        ChatSessionORM.assigned_agent_id.in_(agent_ids),
                        ChatSessionORM.status.in_([s.value for s in OPEN_STATUSES]),
                    )
                )
                .group_by(ChatSessionORM.assigned_agent_id)
            )
            counts = {agent_id: 0 for agent_id in agent_ids}
            for agent_id, count in result.all():
                counts[agent_id] = count
            return counts

    async def count_for_department(self, department_id: UUID) -> int:
        """Count sessions referencing a department."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(ChatSessionORM.id)).where(
                    ChatSessionORM.department_id == str(department_id)
                )
            )
            return result.scalar() or 0

    async def list_idle_pending(self, before: datetime, limit: int = 100) -> list[ChatSession]:
        """
        List cancellable sessions idle since before ``before``.

        WAITING sessions, plus ASSIGNED/ACTIVE ones no agent has answered yet.
        """
        answered = exists().where(
            and_(
                ChatMessageORM.session_id == ChatSessionORM.id,
                ChatMessageORM.sender_type == SenderType.ADMIN.value,
            )
        )
        async with self._session_factory() as session:
            result = await session.execute(
                select(ChatSessionORM)
                .where(
                    and_(
                        ChatSessionORM.last_message_at < before,
                        or_(
                            ChatSessionORM.status == SessionStatus.WAITING.value,
                            and_(
                                ChatSessionORM.status.in_([s.value for s in OPEN_STATUSES]),
                                ~answered,
                            ),
                        ),
                    )
                )
                .order_by(ChatSessionORM.last_message_at.asc())
                .limit(limit)
            )
            return [session_orm_to_model(orm) for orm in result.scalars().all()]

    async def load_analytics_snapshot(self, since: datetime, as_of: datetime) -> AnalyticsSnapshot:
        """Read sessions, message stats and departments in one transaction."""
        async with self._session_factory() as session:
            async with session.begin():
                await session.connection(execution_options={SNAPSHOT_READ: True})
                sessions_result = await session.execute(
                    select(ChatSessionORM).where(
                        and_(
                            ChatSessionORM.created_at >= since,
                            ChatSessionORM.created_at <= as_of,
                        )
                    )
                )
                sessions = [session_orm_to_model(orm) for orm in sessions_result.scalars().all()]

                in_window = select(ChatSessionORM.id).where(
                    and_(
                        ChatSessionORM.created_at >= since,
                        ChatSessionORM.created_at <= as_of,
                    )
                )
                bounded = and_(
                    ChatMessageORM.session_id.in_(in_window),
                    ChatMessageORM.created_at <= as_of,
                )
                counts_result = await session.execute(
                    select(ChatMessageORM.session_id, func.count(ChatMessageORM.id))
                    .where(bounded)
                    .group_by(ChatMessageORM.session_id)
                )
                first_admin_result = await session.execute(
                    select(ChatMessageORM.session_id, func.min(ChatMessageORM.created_at))
                    .where(and_(bounded, ChatMessageORM.sender_type == SenderType.ADMIN.value))
                    .group_by(ChatMessageORM.session_id)
                )
                departments_result = await session.execute(select(DepartmentORM))

                stats: dict[UUID, SessionMessageStats] = {}
                for session_id, count in counts_result.all():
                    stats[UUID(session_id)] = SessionMessageStats(message_count=count)
                for session_id, first_at in first_admin_result.all():
                    entry = stats.setdefault(UUID(session_id), SessionMessageStats())
                    entry.first_admin_at = ensure_utc(first_at)

                departments = {
                    UUID(orm.id): department_orm_to_model(orm)
                    for orm in departments_result.scalars().all()
                }

        return AnalyticsSnapshot(
            as_of=as_of,
            sessions=sessions,
            message_stats=stats,
            departments=departments,
        )
