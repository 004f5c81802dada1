"""Pydantic models (schemas) for the application."""

from app.models.enums import (
    ChatNotice,
    MessageType,
    PrincipalRole,
    SenderType,
    SessionEvent,
    SessionStatus,
)
from app.models.chat_session import (
    ChatMessage,
    ChatMessageCreate,
    ChatSession,
    ChatSessionPatch,
    ChatSessionSummary,
    Transcript,
    VisitorInfo,
)
from app.models.department import Department, DepartmentAgent, DepartmentCreate, DepartmentUpdate
from app.models.knowledge import KnowledgeArticle, KnowledgeArticleCreate, KnowledgeArticleUpdate
from app.models.analytics import AnalyticsSummary, DepartmentStat, TopRatedChat
from app.models.principal import Principal

__all__ = [
    # Enums
    "SessionStatus",
    "SessionEvent",
    "SenderType",
    "MessageType",
    "PrincipalRole",
    "ChatNotice",
    # Chat
    "VisitorInfo",
    "ChatSession",
    "ChatSessionSummary",
    "ChatSessionPatch",
    "ChatMessage",
    "ChatMessageCreate",
    "Transcript",
    # Department
    "Department",
    "DepartmentCreate",
    "DepartmentUpdate",
    "DepartmentAgent",
    # Knowledge base
    "KnowledgeArticle",
    "KnowledgeArticleCreate",
    "KnowledgeArticleUpdate",
    # Analytics
    "AnalyticsSummary",
    "DepartmentStat",
    "TopRatedChat",
    # Auth
    "Principal",
]
