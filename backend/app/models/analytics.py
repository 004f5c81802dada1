"""
Analytics summary models for the admin dashboard.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.chat_session import ChatSession
from app.models.department import Department

UNASSIGNED_BUCKET = "unassigned"


class DepartmentStat(BaseModel):
    """Per-department session counts."""

    department_id: Optional[UUID] = None
    name: str
    count: int = 0
    resolved: int = 0


class TopRatedChat(BaseModel):
    """A highly rated session."""

    session_id: UUID
    visitor_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    last_message_at: datetime


class AnalyticsSummary(BaseModel):
    """Point-in-time summary over a trailing window."""

    since: datetime
    generated_at: datetime
    total_chats: int = 0
    active_chats: int = 0
    resolved_chats: int = 0
    resolution_rate: float = Field(0.0, ge=0.0, le=1.0)
    avg_rating: float = 0.0
    avg_response_time: float = Field(0.0, description="Seconds until first agent reply")
    avg_resolution_time: float = Field(0.0, description="Seconds until resolved")
    avg_messages_per_chat: float = 0.0
    department_stats: dict[str, DepartmentStat] = Field(default_factory=dict)
    daily_volume: dict[str, int] = Field(default_factory=dict)
    rating_distribution: dict[int, int] = Field(default_factory=dict)
    top_rated_chats: list[TopRatedChat] = Field(default_factory=list)


@dataclass
class SessionMessageStats:
    """Per-session message facts within a snapshot."""

    message_count: int = 0
    first_admin_at: Optional[datetime] = None


@dataclass
class AnalyticsSnapshot:
    """Consistent point-in-time read of the store for the analytics fold."""

    as_of: datetime
    sessions: list[ChatSession] = field(default_factory=list)
    message_stats: dict[UUID, SessionMessageStats] = field(default_factory=dict)
    departments: dict[UUID, Department] = field(default_factory=dict)
