"""
Chat session repository interface.

Defines the contract for the session store. Status changes go through
ChatService, which validates them against the transition table before
calling update().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.models.analytics import AnalyticsSnapshot
from app.models.chat_session import ChatSession, ChatSessionPatch, VisitorInfo
from app.models.enums import ChatNotice, SessionStatus


class IChatSessionRepository(ABC):
    """Abstract interface for chat session persistence."""

    @abstractmethod
    async def create(self, visitor: VisitorInfo, created_at: datetime) -> ChatSession:
        """
        Create a session in WAITING.

        Args:
            visitor: Visitor details from the widget
            created_at: Creation timestamp, also the initial last_message_at

        Returns:
            Created ChatSession
        """
        pass

    @abstractmethod
    async def get(self, session_id: UUID) -> Optional[ChatSession]:
        """Get a session by ID."""
        pass

    @abstractmethod
    async def list(
        self,
        status: Optional[SessionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChatSession]:
        """
        List sessions, most recent activity first.

        Args:
            status: Optional status filter
            limit: Max sessions
            offset: Pagination offset

        Returns:
            List of sessions
        """
        pass

    @abstractmethod
    async def count(self, status: Optional[SessionStatus] = None) -> int:
        """Count sessions, optionally by status."""
        pass

    @abstractmethod
    async def update(self, session_id: UUID, patch: ChatSessionPatch) -> ChatSession:
        """
        Apply a patch to a session.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def set_rating(
        self,
        session_id: UUID,
        rating: int,
        comment: Optional[str],
    ) -> bool:
        """
        Store a rating if none exists yet.

        Returns:
            True if this call stored the rating, False if one was already set
        """
        pass

    @abstractmethod
    async def claim_notice(self, session_id: UUID, notice: ChatNotice) -> bool:
        """
        Mark a staff notice as sent, once.

        Returns:
            True if this call claimed the notice, False if it was already sent
        """
        pass

    @abstractmethod
    async def release_notice(self, session_id: UUID, notice: ChatNotice) -> None:
        """Undo a claim so a later message can retry the notice."""
        pass

    @abstractmethod
    async def count_open_by_agent(self, agent_ids: list[str]) -> dict[str, int]:
        """Count WAITING/ASSIGNED/ACTIVE sessions per agent."""
        pass

    @abstractmethod
    async def count_for_department(self, department_id: UUID) -> int:
        """Count sessions referencing a department, in any status."""
        pass

    @abstractmethod
    async def list_idle_pending(self, before: datetime, limit: int = 100) -> list[ChatSession]:
        """List WAITING or unanswered ASSIGNED/ACTIVE sessions idle since before ``before``."""
        pass

    @abstractmethod
    async def load_analytics_snapshot(self, since: datetime, as_of: datetime) -> AnalyticsSnapshot:
        """
        Read everything the analytics fold needs in one consistent read.

        Args:
            since: Window start (sessions created at or after)
            as_of: Snapshot point; later sessions and messages are ignored

        Returns:
            AnalyticsSnapshot
        """
        pass
