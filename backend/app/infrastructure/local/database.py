"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings
from app.utils.datetime_utils import now_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class ChatSessionORM(Base):
    """Chat session ORM model."""

    __tablename__ = "chat_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    visitor_name = Column(String(200), nullable=True)
    visitor_email = Column(String(255), nullable=True)
    visitor_phone = Column(String(50), nullable=True)
    visitor_id = Column(String(255), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="WAITING", index=True)
    requested_department = Column(String(100), nullable=True)
    # Weak reference: departments may be deleted, sessions never are.
    department_id = Column(String(36), nullable=True, index=True)
    assigned_agent_id = Column(String(255), nullable=True, index=True)
    rating = Column(Integer, nullable=True)
    rating_comment = Column(Text, nullable=True)
    extra = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, index=True)
    last_message_at = Column(DateTime(timezone=True), default=now_utc, index=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    is_offline_message = Column(Boolean, nullable=False, default=False)
    new_chat_notified = Column(Boolean, nullable=False, default=False)
    offline_notified = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class ChatMessageORM(Base):
    """Chat message ORM model."""

    __tablename__ = "chat_messages"
    __table_args__ = (UniqueConstraint("session_id", "seq", name="uq_chat_messages_session_seq"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    session_id = Column(String(36), ForeignKey("chat_sessions.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    sender_type = Column(String(20), nullable=False, index=True)
    sender_id = Column(String(255), nullable=True)
    message_type = Column(String(20), nullable=False, default="TEXT")
    body = Column(Text, nullable=False, default="")
    file_url = Column(String(1000), nullable=True)
    file_name = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)


class DepartmentORM(Base):
    """Department ORM model."""

    __tablename__ = "chat_departments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    contact_email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class DepartmentAgentORM(Base):
    """Agent pool membership ORM model."""

    __tablename__ = "chat_department_agents"

    department_id = Column(String(36), ForeignKey("chat_departments.id"), primary_key=True)
    agent_id = Column(String(255), primary_key=True)
    is_available = Column(Boolean, default=True)
    last_assigned_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)


class KnowledgeArticleORM(Base):
    """Knowledge base article ORM model."""

    __tablename__ = "chat_knowledge_articles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    keywords = Column(JSON, nullable=True, default=list)
    category = Column(String(100), nullable=True, index=True)
    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    views = Column(Integer, default=0)
    helpful = Column(Integer, default=0)
    not_helpful = Column(Integer, default=0)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


# ===========================================
# Database Session Management
# ===========================================

SNAPSHOT_READ = "livedesk_snapshot_read"


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine.

    On SQLite, SQLAlchemy emits BEGIN itself when a transaction starts; the
    driver on its own only begins before DML, so SELECTs would autocommit
    one by one. Transactions begin IMMEDIATE and wait on the busy timeout
    for other writers. Connections carrying the ``SNAPSHOT_READ`` execution
    option begin deferred: a read-only snapshot that does not hold the
    write lock.
    """
    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    engine = create_async_engine(url, echo=echo, connect_args={"timeout": 15})

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        if conn.get_execution_options().get(SNAPSHOT_READ):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


@lru_cache()
def get_engine() -> AsyncEngine:
    """Get async engine instance."""
    settings = get_settings()
    return create_engine_for_url(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get async session factory."""
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine | None = None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
