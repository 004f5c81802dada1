"""
Visitor chat API endpoints.

Entry point for the chat widget: open or continue a conversation, read the
transcript, rate it, abandon it, and search the public knowledge base.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.api.deps import ChatSvc, KnowledgeRepo, OptionalUser
from app.api.errors import http_error
from app.core.config import get_settings
from app.core.exceptions import LivedeskError
from app.models.chat_session import ChatMessage, ChatMessageCreate, VisitorInfo
from app.models.enums import AUTHORED_MESSAGE_TYPES, MessageType, PrincipalRole, SenderType, SessionStatus
from app.models.knowledge import KnowledgeArticle

router = APIRouter()


# ===========================================
# Request / Response Models
# ===========================================


class VisitorMessageRequest(BaseModel):
    """Open a session (no session_id) or append to an existing one."""

    session_id: Optional[UUID] = None
    message: str = Field(..., min_length=1, max_length=10000)
    message_type: MessageType = MessageType.TEXT
    file_url: Optional[str] = Field(None, max_length=1000)
    file_name: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)
    visitor_name: Optional[str] = Field(None, max_length=200)
    visitor_email: Optional[EmailStr] = None
    visitor_phone: Optional[str] = Field(None, max_length=50)
    department: Optional[str] = Field(None, max_length=100)
    metadata: Optional[dict[str, Any]] = None

    @field_validator("message_type")
    @classmethod
    def _authored_type(cls, value: MessageType) -> MessageType:
        if value not in AUTHORED_MESSAGE_TYPES:
            raise ValueError(f"message_type {value.value} cannot be sent by a visitor")
        return value


class VisitorMessageResponse(BaseModel):
    session_id: UUID
    status: SessionStatus
    message: ChatMessage
    reopened: bool = False
    is_offline_message: bool = False


class VisitorSessionResponse(BaseModel):
    """Session fields a visitor may see."""

    session_id: UUID
    status: SessionStatus
    visitor_name: Optional[str]
    department_id: Optional[UUID]
    rating: Optional[int]
    created_at: datetime
    last_message_at: datetime


class VisitorTranscriptResponse(BaseModel):
    session: VisitorSessionResponse
    messages: list[ChatMessage]


class RateRequest(BaseModel):
    session_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class CancelRequest(BaseModel):
    session_id: UUID


class RatingResponse(BaseModel):
    session_id: UUID
    rating: int
    comment: Optional[str]


class SessionStatusResponse(BaseModel):
    session_id: UUID
    status: SessionStatus


class FeedbackRequest(BaseModel):
    helpful: bool


class PublicArticleResponse(BaseModel):
    """Article as shown to visitors (no counters)."""

    id: UUID
    title: str
    content: str
    category: Optional[str]
    keywords: list[str]

    @classmethod
    def from_model(cls, article: KnowledgeArticle) -> "PublicArticleResponse":
        return cls(
            id=article.id,
            title=article.title,
            content=article.content,
            category=article.category,
            keywords=article.keywords,
        )


# ===========================================
# Endpoints
# ===========================================


@router.post("", response_model=VisitorMessageResponse)
async def send_visitor_message(
    request: VisitorMessageRequest,
    chat_service: ChatSvc,
    principal: OptionalUser,
):
    """
    Send a visitor message.

    Without ``session_id`` a new session is opened (and routed). Writing to
    a resolved or closed session reopens it.
    """
    message = ChatMessageCreate(
        sender_type=SenderType.VISITOR,
        sender_id=principal.id if principal else None,
        message_type=request.message_type,
        body=request.message,
        file_url=request.file_url,
        file_name=request.file_name,
        file_size=request.file_size,
    )
    try:
        if request.session_id is None:
            visitor = VisitorInfo(
                visitor_name=request.visitor_name,
                visitor_email=request.visitor_email,
                visitor_phone=request.visitor_phone,
                visitor_id=principal.id if principal else None,
                department=request.department,
                metadata=request.metadata,
            )
            result = await chat_service.start_conversation(visitor, message)
        else:
            result = await chat_service.append_message(request.session_id, message)
    except LivedeskError as e:
        raise http_error(e)

    return VisitorMessageResponse(
        session_id=result.session.id,
        status=result.session.status,
        message=result.message,
        reopened=result.reopened,
        is_offline_message=result.session.is_offline_message,
    )


@router.get("", response_model=VisitorTranscriptResponse)
async def get_visitor_transcript(
    chat_service: ChatSvc,
    session_id: UUID = Query(..., description="Chat session ID"),
):
    """Get the transcript. Marks agent messages as read."""
    try:
        transcript = await chat_service.get_transcript(session_id, PrincipalRole.VISITOR)
    except LivedeskError as e:
        raise http_error(e)

    session = transcript.session
    return VisitorTranscriptResponse(
        session=VisitorSessionResponse(
            session_id=session.id,
            status=session.status,
            visitor_name=session.visitor_name,
            department_id=session.department_id,
            rating=session.rating,
            created_at=session.created_at,
            last_message_at=session.last_message_at,
        ),
        messages=transcript.messages,
    )


@router.post("/rate", response_model=RatingResponse)
async def rate_session(
    request: RateRequest,
    chat_service: ChatSvc,
):
    """Rate a resolved or closed session. Only the first rating is kept."""
    try:
        session = await chat_service.rate(request.session_id, request.rating, request.comment)
    except LivedeskError as e:
        raise http_error(e)
    return RatingResponse(session_id=session.id, rating=session.rating, comment=session.rating_comment)


@router.post("/cancel", response_model=SessionStatusResponse)
async def cancel_session(
    request: CancelRequest,
    chat_service: ChatSvc,
):
    """Visitor leaves before an agent has answered."""
    try:
        session = await chat_service.cancel(request.session_id)
    except LivedeskError as e:
        raise http_error(e)
    return SessionStatusResponse(session_id=session.id, status=session.status)


@router.get("/knowledge-base", response_model=list[PublicArticleResponse])
async def search_knowledge_base(
    knowledge_repo: KnowledgeRepo,
    q: str = Query("", description="Search text (min 2 characters)"),
    category: Optional[str] = Query(None),
):
    """Search active articles."""
    articles = await knowledge_repo.search(
        q,
        category=category,
        limit=get_settings().KNOWLEDGE_SEARCH_LIMIT,
    )
    return [PublicArticleResponse.from_model(a) for a in articles]


@router.post("/knowledge-base/{article_id}/feedback", status_code=status.HTTP_204_NO_CONTENT)
async def article_feedback(
    article_id: UUID,
    request: FeedbackRequest,
    knowledge_repo: KnowledgeRepo,
):
    """Record whether an article helped."""
    article = await knowledge_repo.record_feedback(article_id, request.helpful)
    if article is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Article {article_id} not found",
        )
