"""
SQLite implementation of department repository.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import DepartmentNotFoundError, DuplicateSlugError
from app.infrastructure.local.database import (
    ChatSessionORM,
    DepartmentAgentORM,
    DepartmentORM,
    get_session_factory,
)
from app.interfaces.department_repository import IDepartmentRepository
from app.models.department import Department, DepartmentAgent, DepartmentCreate, DepartmentUpdate
from app.utils.datetime_utils import ensure_utc, now_utc


def department_orm_to_model(orm: DepartmentORM) -> Department:
    """Convert department ORM object to Pydantic model."""
    return Department(
        id=UUID(orm.id),
        name=orm.name,
        slug=orm.slug,
        description=orm.description,
        contact_email=orm.contact_email,
        is_active=bool(orm.is_active),
        sort_order=orm.sort_order or 0,
        created_at=ensure_utc(orm.created_at),
        updated_at=ensure_utc(orm.updated_at),
    )


def _agent_orm_to_model(orm: DepartmentAgentORM) -> DepartmentAgent:
    return DepartmentAgent(
        department_id=UUID(orm.department_id),
        agent_id=orm.agent_id,
        is_available=bool(orm.is_available),
        last_assigned_at=ensure_utc(orm.last_assigned_at),
        created_at=ensure_utc(orm.created_at),
    )


class SqliteDepartmentRepository(IDepartmentRepository):
    """SQLite implementation of department repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    async def create(self, data: DepartmentCreate) -> Department:
        async with self._session_factory() as session:
            now = now_utc()
            orm = DepartmentORM(
                id=str(uuid4()),
                name=data.name,
                slug=data.slug,
                description=data.description,
                contact_email=str(data.contact_email) if data.contact_email else None,
                is_active=data.is_active,
                sort_order=data.sort_order,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateSlugError(data.slug) from exc
            await session.refresh(orm)
            return department_orm_to_model(orm)

    async def get(self, department_id: UUID) -> Optional[Department]:
        async with self._session_factory() as session:
            orm = await session.get(DepartmentORM, str(department_id))
            return department_orm_to_model(orm) if orm else None

    async def get_by_slug(self, slug: str) -> Optional[Department]:
        async with self._session_factory() as session:
            result = await session.execute(select(DepartmentORM).where(DepartmentORM.slug == slug))
            orm = result.scalar_one_or_none()
            return department_orm_to_model(orm) if orm else None

    async def list(self, active_only: bool = False) -> list[Department]:
        async with self._session_factory() as session:
            query = select(DepartmentORM)
            if active_only:
                query = query.where(DepartmentORM.is_active == True)  # noqa: E712
            query = query.order_by(DepartmentORM.sort_order.asc(), DepartmentORM.name.asc())
            result = await session.execute(query)
            return [department_orm_to_model(orm) for orm in result.scalars().all()]

    async def update(self, department_id: UUID, data: DepartmentUpdate) -> Department:
        async with self._session_factory() as session:
            orm = await session.get(DepartmentORM, str(department_id))
            if not orm:
                raise DepartmentNotFoundError(f"Department {department_id} not found")

            for key, value in data.model_dump(exclude_unset=True).items():
                if key == "contact_email" and value is not None:
                    value = str(value)
                setattr(orm, key, value)
            orm.updated_at = now_utc()

            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateSlugError(data.slug or orm.slug) from exc
            await session.refresh(orm)
            return department_orm_to_model(orm)

    async def delete(self, department_id: UUID) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                orm = await session.get(DepartmentORM, str(department_id))
                if not orm:
                    raise DepartmentNotFoundError(f"Department {department_id} not found")

                detached = await session.execute(
                    update(ChatSessionORM)
                    .where(ChatSessionORM.department_id == str(department_id))
                    .values(department_id=None)
                )
                await session.execute(
                    delete(DepartmentAgentORM).where(
                        DepartmentAgentORM.department_id == str(department_id)
                    )
                )
                await session.delete(orm)
            return detached.rowcount or 0

    async def add_agent(self, department_id: UUID, agent_id: str) -> DepartmentAgent:
        async with self._session_factory() as session:
            department = await session.get(DepartmentORM, str(department_id))
            if not department:
                raise DepartmentNotFoundError(f"Department {department_id} not found")

            orm = await session.get(DepartmentAgentORM, (str(department_id), agent_id))
            if orm:
                return _agent_orm_to_model(orm)

            orm = DepartmentAgentORM(
                department_id=str(department_id),
                agent_id=agent_id,
                is_available=True,
                created_at=now_utc(),
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return _agent_orm_to_model(orm)

    async def remove_agent(self, department_id: UUID, agent_id: str) -> bool:
        async with self._session_factory() as session:
            orm = await session.get(DepartmentAgentORM, (str(department_id), agent_id))
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True

    async def set_agent_availability(
        self,
        department_id: UUID,
        agent_id: str,
        is_available: bool,
    ) -> Optional[DepartmentAgent]:
        async with self._session_factory() as session:
            orm = await session.get(DepartmentAgentORM, (str(department_id), agent_id))
            if not orm:
                return None
            orm.is_available = is_available
            await session.commit()
            await session.refresh(orm)
            return _agent_orm_to_model(orm)

    async def list_agents(self, department_id: UUID, available_only: bool = False) -> list[DepartmentAgent]:
        async with self._session_factory() as session:
            query = select(DepartmentAgentORM).where(
                DepartmentAgentORM.department_id == str(department_id)
            )
            if available_only:
                query = query.where(DepartmentAgentORM.is_available == True)  # noqa: E712
            # Never-assigned agents first, then oldest assignment.
            query = query.order_by(
                DepartmentAgentORM.last_assigned_at.is_not(None),
                DepartmentAgentORM.last_assigned_at.asc(),
                DepartmentAgentORM.agent_id.asc(),
            )
            result = await session.execute(query)
            return [_agent_orm_to_model(orm) for orm in result.scalars().all()]

    async def mark_agent_assigned(self, department_id: UUID, agent_id: str, at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(DepartmentAgentORM)
                .where(
                    and_(
                        DepartmentAgentORM.department_id == str(department_id),
                        DepartmentAgentORM.agent_id == agent_id,
                    )
                )
                .values(last_assigned_at=at)
            )
            await session.commit()

    async def has_available_agent(self) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DepartmentAgentORM.agent_id)
                .where(DepartmentAgentORM.is_available == True)  # noqa: E712
                .limit(1)
            )
            return result.first() is not None
