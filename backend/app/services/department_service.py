"""
Department registry service.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from app.core.exceptions import DepartmentNotFoundError, DuplicateSlugError, SlugLockedError
from app.core.logger import setup_logger
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.department_repository import IDepartmentRepository
from app.models.department import Department, DepartmentAgent, DepartmentCreate, DepartmentUpdate

logger = setup_logger(__name__)


class DepartmentService:
    """Department CRUD and agent pool management."""

    def __init__(
        self,
        department_repo: IDepartmentRepository,
        session_repo: IChatSessionRepository,
    ):
        self.department_repo = department_repo
        self.session_repo = session_repo

    async def list(self, active_only: bool = False) -> list[Department]:
        return await self.department_repo.list(active_only=active_only)

    async def get(self, department_id: UUID) -> Department:
        department = await self.department_repo.get(department_id)
        if department is None:
            raise DepartmentNotFoundError(f"Department {department_id} not found")
        return department

    async def create(self, data: DepartmentCreate) -> Department:
        """
        Create a department.

        Raises:
            DuplicateSlugError: If the slug is taken
        """
        if await self.department_repo.get_by_slug(data.slug):
            raise DuplicateSlugError(data.slug)
        department = await self.department_repo.create(data)
        logger.info(f"Department '{department.slug}' created")
        return department

    async def update(self, department_id: UUID, data: DepartmentUpdate) -> Department:
        """
        Update a department.

        The slug is frozen once any session references the department.

        Raises:
            DepartmentNotFoundError: If the department does not exist
            SlugLockedError: If the slug changes while sessions reference it
            DuplicateSlugError: If the new slug is taken
        """
        current = await self.get(department_id)
        if data.slug is not None and data.slug != current.slug:
            referencing = await self.session_repo.count_for_department(department_id)
            if referencing:
                raise SlugLockedError(
                    f"Department '{current.slug}' is referenced by {referencing} sessions; its slug cannot change",
                    details={"slug": current.slug, "sessions": referencing},
                )
            existing = await self.department_repo.get_by_slug(data.slug)
            if existing and existing.id != department_id:
                raise DuplicateSlugError(data.slug)
        return await self.department_repo.update(department_id, data)

    async def delete(self, department_id: UUID) -> int:
        """
        Delete a department. Sessions are kept and become unassigned.

        Returns:
            Number of sessions detached
        """
        detached = await self.department_repo.delete(department_id)
        logger.info(f"Department {department_id} deleted; {detached} sessions now unassigned")
        return detached

    # ===========================================
    # Agent pool
    # ===========================================

    async def list_agents(self, department_id: UUID, available_only: bool = False) -> list[DepartmentAgent]:
        await self.get(department_id)
        return await self.department_repo.list_agents(department_id, available_only=available_only)

    async def add_agent(self, department_id: UUID, agent_id: str) -> DepartmentAgent:
        return await self.department_repo.add_agent(department_id, agent_id)

    async def remove_agent(self, department_id: UUID, agent_id: str) -> bool:
        return await self.department_repo.remove_agent(department_id, agent_id)

    async def set_agent_availability(
        self,
        department_id: UUID,
        agent_id: str,
        is_available: bool,
    ) -> Optional[DepartmentAgent]:
        return await self.department_repo.set_agent_availability(department_id, agent_id, is_available)
