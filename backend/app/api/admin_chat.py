"""
Admin chat API endpoints.

Agent-side view of sessions: inbox, transcripts, replies, status changes,
hand-offs and the analytics dashboard.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field, field_validator, model_validator

from app.api.deps import AnalyticsSvc, ChatSvc, StaffUser
from app.api.errors import http_error
from app.core.exceptions import LivedeskError
from app.models.analytics import AnalyticsSummary
from app.models.chat_session import (
    ChatMessage,
    ChatMessageCreate,
    ChatSession,
    ChatSessionSummary,
    Transcript,
)
from app.models.enums import AUTHORED_MESSAGE_TYPES, MessageType, SenderType, SessionStatus

router = APIRouter()


# ===========================================
# Request / Response Models
# ===========================================


class SessionListResponse(BaseModel):
    """Paginated session listing."""

    sessions: list[ChatSessionSummary]
    total: int
    page: int
    limit: int
    pages: int


class AgentMessageRequest(BaseModel):
    """Agent reply. ``article_id`` sends a knowledge base article instead of text."""

    chat_id: UUID
    message: Optional[str] = Field(None, min_length=1, max_length=10000)
    message_type: MessageType = MessageType.TEXT
    article_id: Optional[UUID] = None
    file_url: Optional[str] = Field(None, max_length=1000)
    file_name: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)

    @field_validator("message_type")
    @classmethod
    def _authored_type(cls, value: MessageType) -> MessageType:
        if value not in AUTHORED_MESSAGE_TYPES:
            raise ValueError(f"message_type {value.value} is not allowed; use article_id to share an article")
        return value

    @model_validator(mode="after")
    def _require_content(self):
        if self.article_id is None and not self.message:
            raise ValueError("message or article_id is required")
        return self


class AgentMessageResponse(BaseModel):
    session: ChatSession
    message: ChatMessage


class StatusUpdateRequest(BaseModel):
    chat_id: UUID
    status: SessionStatus


class ReassignRequest(BaseModel):
    chat_id: UUID
    department_id: Optional[UUID] = None
    agent_id: Optional[str] = Field(None, max_length=255)


# ===========================================
# Endpoints
# ===========================================


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    staff: StaffUser,
    chat_service: ChatSvc,
    status: Optional[SessionStatus] = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """List sessions, most recent activity first."""
    sessions, total = await chat_service.list_sessions(
        status=status,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return SessionListResponse(
        sessions=sessions,
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit,
    )


@router.get("/analytics", response_model=AnalyticsSummary)
async def get_analytics(
    staff: StaffUser,
    analytics_service: AnalyticsSvc,
    days: Optional[int] = Query(None, ge=1, le=365, description="Trailing window in days"),
):
    """Dashboard summary over the trailing window."""
    return await analytics_service.summarize(days=days)


@router.get("/{chat_id}", response_model=Transcript)
async def get_session_transcript(
    chat_id: UUID,
    staff: StaffUser,
    chat_service: ChatSvc,
):
    """Get a transcript. Marks visitor messages as read."""
    try:
        return await chat_service.get_transcript(chat_id, staff.role)
    except LivedeskError as e:
        raise http_error(e)


@router.post("", response_model=AgentMessageResponse)
async def send_agent_message(
    request: AgentMessageRequest,
    staff: StaffUser,
    chat_service: ChatSvc,
):
    """Reply to a visitor. Replying to a waiting session claims it."""
    try:
        if request.article_id is not None:
            result = await chat_service.send_article(request.chat_id, request.article_id, agent_id=staff.id)
        else:
            result = await chat_service.append_message(
                request.chat_id,
                ChatMessageCreate(
                    sender_type=SenderType.ADMIN,
                    sender_id=staff.id,
                    message_type=request.message_type,
                    body=request.message,
                    file_url=request.file_url,
                    file_name=request.file_name,
                    file_size=request.file_size,
                ),
            )
    except LivedeskError as e:
        raise http_error(e)
    return AgentMessageResponse(session=result.session, message=result.message)


@router.patch("", response_model=ChatSession)
async def update_session_status(
    request: StatusUpdateRequest,
    staff: StaffUser,
    chat_service: ChatSvc,
):
    """Change a session's status along the allowed transitions."""
    try:
        return await chat_service.set_status(request.chat_id, request.status, actor_id=staff.id)
    except LivedeskError as e:
        raise http_error(e)


@router.post("/reassign", response_model=ChatSession)
async def reassign_session(
    request: ReassignRequest,
    staff: StaffUser,
    chat_service: ChatSvc,
):
    """Hand a session to another department or agent."""
    try:
        return await chat_service.reassign(
            request.chat_id,
            department_id=request.department_id,
            agent_id=request.agent_id,
            actor_id=staff.id,
        )
    except LivedeskError as e:
        raise http_error(e)
