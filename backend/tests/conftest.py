"""
Shared fixtures: a throwaway SQLite database per test and the services
wired on top of it.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.core.exceptions import NotificationError
from app.infrastructure.local.chat_message_repository import SqliteChatMessageRepository
from app.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
from app.infrastructure.local.database import create_engine_for_url, init_db
from app.infrastructure.local.department_repository import SqliteDepartmentRepository
from app.infrastructure.local.knowledge_repository import SqliteKnowledgeRepository
from app.interfaces.notifier import INotifier
from app.services.chat_service import ChatService
from app.services.router_service import RouterService
from app.services.session_lock import SessionLockManager


@pytest.fixture
def settings():
    """Settings with routing on open disabled so tests drive assignment explicitly."""
    return Settings(
        AUTO_ROUTE_ON_OPEN=False,
        DEFAULT_DEPARTMENT_SLUG="general",
        AGENT_MAX_CONCURRENT_CHATS=5,
        SESSION_LOCK_TIMEOUT_SECONDS=1.0,
        SESSION_LOCK_RETRY_BACKOFF_SECONDS=0.01,
        ABANDON_AFTER_MINUTES=30,
        ANALYTICS_TOP_RATED_LIMIT=10,
    )


@pytest.fixture
async def session_factory(tmp_path):
    """File-backed SQLite so concurrent connections see the same data."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'livedesk_test.db'}")
    await init_db(engine)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def session_repo(session_factory):
    return SqliteChatSessionRepository(session_factory=session_factory)


@pytest.fixture
def message_repo(session_factory):
    return SqliteChatMessageRepository(session_factory=session_factory)


@pytest.fixture
def department_repo(session_factory):
    return SqliteDepartmentRepository(session_factory=session_factory)


@pytest.fixture
def knowledge_repo(session_factory):
    return SqliteKnowledgeRepository(session_factory=session_factory)


@pytest.fixture
def locks(settings):
    return SessionLockManager(
        timeout=settings.SESSION_LOCK_TIMEOUT_SECONDS,
        retry_backoff=settings.SESSION_LOCK_RETRY_BACKOFF_SECONDS,
    )


@pytest.fixture
def router_service(department_repo, session_repo, message_repo, settings):
    return RouterService(
        department_repo=department_repo,
        session_repo=session_repo,
        message_repo=message_repo,
        settings=settings,
    )


@pytest.fixture
def chat_service(session_repo, message_repo, router_service, knowledge_repo, locks, settings):
    return ChatService(
        session_repo=session_repo,
        message_repo=message_repo,
        router=router_service,
        knowledge_repo=knowledge_repo,
        locks=locks,
        settings=settings,
    )


class RecordingNotifier(INotifier):
    """Keeps every notice in memory; ``fail`` makes the next sends raise."""

    def __init__(self):
        self.sent: list[tuple[list[str], str, str]] = []
        self.fail = False

    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        if self.fail:
            raise NotificationError("mail server unreachable")
        self.sent.append((list(recipients), subject, body))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def notifying_chat_service(session_repo, message_repo, router_service, locks, settings, notifier):
    settings.CHAT_NOTIFY_EMAILS = ["support@example.com"]
    return ChatService(
        session_repo=session_repo,
        message_repo=message_repo,
        router=router_service,
        locks=locks,
        settings=settings,
        notifier=notifier,
    )
