"""
Department repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.models.department import Department, DepartmentAgent, DepartmentCreate, DepartmentUpdate


class IDepartmentRepository(ABC):
    """Abstract interface for the department registry."""

    @abstractmethod
    async def create(self, data: DepartmentCreate) -> Department:
        """
        Create a department.

        Raises:
            DuplicateSlugError: If the slug is taken
        """
        pass

    @abstractmethod
    async def get(self, department_id: UUID) -> Optional[Department]:
        """Get a department by ID."""
        pass

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Optional[Department]:
        """Get a department by slug."""
        pass

    @abstractmethod
    async def list(self, active_only: bool = False) -> list[Department]:
        """List departments ordered by sort_order, then name."""
        pass

    @abstractmethod
    async def update(self, department_id: UUID, data: DepartmentUpdate) -> Department:
        """
        Update a department.

        Raises:
            DepartmentNotFoundError: If the department does not exist
            DuplicateSlugError: If the new slug is taken
        """
        pass

    @abstractmethod
    async def delete(self, department_id: UUID) -> int:
        """
        Delete a department.

        Sessions referencing it get department_id = NULL in the same
        transaction; pool memberships are removed.

        Returns:
            Number of sessions detached

        Raises:
            DepartmentNotFoundError: If the department does not exist
        """
        pass

    @abstractmethod
    async def add_agent(self, department_id: UUID, agent_id: str) -> DepartmentAgent:
        """Add an agent to a department pool (idempotent)."""
        pass

    @abstractmethod
    async def remove_agent(self, department_id: UUID, agent_id: str) -> bool:
        """Remove an agent from a pool. Returns False if not a member."""
        pass

    @abstractmethod
    async def set_agent_availability(
        self,
        department_id: UUID,
        agent_id: str,
        is_available: bool,
    ) -> Optional[DepartmentAgent]:
        """Toggle whether the router may pick an agent."""
        pass

    @abstractmethod
    async def list_agents(self, department_id: UUID, available_only: bool = False) -> list[DepartmentAgent]:
        """List pool members, least recently assigned first."""
        pass

    @abstractmethod
    async def mark_agent_assigned(self, department_id: UUID, agent_id: str, at: datetime) -> None:
        """Record that the router just handed a session to an agent."""
        pass

    @abstractmethod
    async def has_available_agent(self) -> bool:
        """Whether any pool member in any department is marked available."""
        pass
