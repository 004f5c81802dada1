"""
Chat session and message models.

A session is one continuous visitor support conversation. Messages belong
to exactly one session and are only ever appended.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import MessageType, SenderType, SessionStatus


class VisitorInfo(BaseModel):
    """Details a visitor supplies when opening a session."""

    visitor_name: Optional[str] = Field(None, max_length=200, description="Visitor display name")
    visitor_email: Optional[EmailStr] = Field(None, description="Visitor email (optional)")
    visitor_phone: Optional[str] = Field(None, max_length=50, description="Visitor phone (optional)")
    visitor_id: Optional[str] = Field(None, max_length=255, description="Principal id of the visitor")
    department: Optional[str] = Field(None, max_length=100, description="Requested department slug")
    metadata: Optional[dict[str, Any]] = Field(None, description="Free-form widget metadata")


class ChatSession(BaseModel):
    """Chat session model."""

    id: UUID
    visitor_name: Optional[str] = None
    visitor_email: Optional[str] = None
    visitor_phone: Optional[str] = None
    visitor_id: Optional[str] = None
    status: SessionStatus
    requested_department: Optional[str] = None
    department_id: Optional[UUID] = None
    assigned_agent_id: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    rating_comment: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime
    last_message_at: datetime
    resolved_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    is_offline_message: bool = False
    new_chat_notified: bool = False
    offline_notified: bool = False
    updated_at: datetime

    @property
    def is_open(self) -> bool:
        return self.status in (SessionStatus.WAITING, SessionStatus.ASSIGNED, SessionStatus.ACTIVE)


class ChatSessionSummary(ChatSession):
    """Session with message count and latest message, for admin listings."""

    message_count: int = 0
    unread_count: int = 0
    last_message: Optional["ChatMessage"] = None


class ChatMessageCreate(BaseModel):
    """Schema for appending a message."""

    sender_type: SenderType
    body: str = Field(..., min_length=1, max_length=10000)
    sender_id: Optional[str] = Field(None, max_length=255)
    message_type: MessageType = MessageType.TEXT
    file_url: Optional[str] = Field(None, max_length=1000)
    file_name: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)


class ChatMessage(BaseModel):
    """Chat message model."""

    id: UUID
    session_id: UUID
    seq: int
    sender_type: SenderType
    sender_id: Optional[str] = None
    message_type: MessageType = MessageType.TEXT
    body: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    created_at: datetime
    read_at: Optional[datetime] = None


class Transcript(BaseModel):
    """A session together with its ordered messages."""

    session: ChatSession
    messages: list[ChatMessage]


ChatSessionSummary.model_rebuild()


class ChatSessionPatch(BaseModel):
    """
    Internal session changes.

    Only fields explicitly set are written, so assigned_agent_id=None clears
    the agent while an omitted field leaves it alone.
    """

    status: Optional[SessionStatus] = None
    department_id: Optional[UUID] = None
    assigned_agent_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    is_offline_message: Optional[bool] = None
