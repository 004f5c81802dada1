"""
Chat message repository interface.

The message log is append-only. The only mutation is read_at moving from
null to a timestamp.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.models.chat_session import ChatMessage, ChatMessageCreate, ChatSession, ChatSessionPatch
from app.models.enums import SenderType


class IChatMessageRepository(ABC):
    """Abstract interface for the message log."""

    @abstractmethod
    async def append(
        self,
        session_id: UUID,
        messages: list[ChatMessageCreate],
        created_at: datetime,
        session_patch: Optional[ChatSessionPatch] = None,
    ) -> tuple[ChatSession, list[ChatMessage]]:
        """
        Append messages to a session.

        Messages receive consecutive per-session sequence numbers. The session
        patch is applied in the same transaction so the store and the log
        never disagree.

        Args:
            session_id: Owning session
            messages: Messages in append order
            created_at: Timestamp for the appended messages
            session_patch: Optional session changes to apply atomically

        Returns:
            Updated session and the stored messages

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        pass

    @abstractmethod
    async def list_for_session(
        self,
        session_id: UUID,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ChatMessage]:
        """List messages ordered by (created_at, seq)."""
        pass

    @abstractmethod
    async def mark_read(self, session_id: UUID, sender_type: SenderType, read_at: datetime) -> int:
        """
        Mark unread messages from ``sender_type`` as read.

        Already-read messages are left untouched.

        Returns:
            Number of messages that changed
        """
        pass

    @abstractmethod
    async def has_sender(self, session_id: UUID, sender_type: SenderType) -> bool:
        """Check whether a session has any message from ``sender_type``."""
        pass

    @abstractmethod
    async def count_for_sessions(self, session_ids: list[UUID]) -> dict[UUID, int]:
        """Count messages per session."""
        pass

    @abstractmethod
    async def count_unread_for_sessions(
        self,
        session_ids: list[UUID],
        sender_type: SenderType,
    ) -> dict[UUID, int]:
        """Count unread messages from ``sender_type`` per session."""
        pass

    @abstractmethod
    async def last_for_sessions(self, session_ids: list[UUID]) -> dict[UUID, ChatMessage]:
        """Get the latest message per session."""
        pass
