"""
Chat service.

Owns the session lifecycle: every status change and append goes through
here, under the per-session lock, after the transition table has approved
it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AlreadyRatedError,
    ArticleNotFoundError,
    InvalidTransitionError,
    NotResolvedError,
    SessionNotFoundError,
    ValidationError,
)
from app.core.logger import setup_logger
from app.interfaces.chat_message_repository import IChatMessageRepository
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.knowledge_repository import IKnowledgeRepository
from app.interfaces.notifier import INotifier
from app.models.chat_session import (
    ChatMessage,
    ChatMessageCreate,
    ChatSession,
    ChatSessionPatch,
    ChatSessionSummary,
    Transcript,
    VisitorInfo,
)
from app.models.enums import (
    TERMINAL_STATUSES,
    MessageType,
    PrincipalRole,
    SenderType,
    SessionEvent,
    SessionStatus,
)
from app.services import notification_service as notify
from app.services.chat_state import event_for_target, transition
from app.services.router_service import RouterService
from app.services.session_lock import SessionLockManager, session_locks
from app.utils.datetime_utils import now_utc

logger = setup_logger(__name__)

REOPEN_NOTE = "Conversation reopened by visitor"
CANCEL_NOTE = "Visitor left before an agent responded"


@dataclass
class AppendResult:
    """Outcome of appending to a session."""

    session: ChatSession
    message: ChatMessage
    reopened: bool = False
    system_messages: list[ChatMessage] = field(default_factory=list)


class ChatService:
    """Service for the live chat session lifecycle."""

    def __init__(
        self,
        session_repo: IChatSessionRepository,
        message_repo: IChatMessageRepository,
        router: RouterService,
        knowledge_repo: Optional[IKnowledgeRepository] = None,
        locks: Optional[SessionLockManager] = None,
        settings: Optional[Settings] = None,
        notifier: Optional[INotifier] = None,
    ):
        self.session_repo = session_repo
        self.message_repo = message_repo
        self.router = router
        self.knowledge_repo = knowledge_repo
        self.locks = locks if locks is not None else session_locks
        self.settings = settings or get_settings()
        self.notifier = notifier

    # ===========================================
    # Lookup
    # ===========================================

    async def get_session(self, session_id: UUID) -> ChatSession:
        session = await self.session_repo.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    # ===========================================
    # Opening
    # ===========================================

    async def open(self, visitor: VisitorInfo) -> ChatSession:
        """Create a session in WAITING."""
        transition(None, SessionEvent.OPEN)
        session = await self.session_repo.create(visitor, created_at=now_utc())
        logger.info(f"Session {session.id} opened for {visitor.visitor_name or 'anonymous visitor'}")
        return session

    async def start_conversation(
        self,
        visitor: VisitorInfo,
        first_message: ChatMessageCreate,
    ) -> AppendResult:
        """
        Open a session with the visitor's first message and route it.

        Routing runs synchronously when AUTO_ROUTE_ON_OPEN is set.
        """
        session = await self.open(visitor)
        result = await self.append_message(session.id, first_message)
        if self.settings.AUTO_ROUTE_ON_OPEN:
            result.session = await self.assign(session.id)
        if self.notifier is not None:
            await notify.notify_new_chat(
                self.session_repo,
                self.router.department_repo,
                self.notifier,
                result.session,
                result.message,
                fallback=self.settings.CHAT_NOTIFY_EMAILS,
            )
        return result

    # ===========================================
    # Routing
    # ===========================================

    async def assign(self, session_id: UUID) -> ChatSession:
        """Route a WAITING session to a department (and agent)."""
        async with self.locks.hold(session_id):
            session = await self.get_session(session_id)
            return await self.router.assign(session)

    async def reassign(
        self,
        session_id: UUID,
        department_id: Optional[UUID] = None,
        agent_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> ChatSession:
        """Explicit admin hand-off to another department or agent."""
        async with self.locks.hold(session_id):
            session = await self.get_session(session_id)
            return await self.router.reassign(
                session,
                department_id=department_id,
                agent_id=agent_id,
                actor_id=actor_id,
            )

    # ===========================================
    # Messages
    # ===========================================

    async def append_message(self, session_id: UUID, data: ChatMessageCreate) -> AppendResult:
        """
        Append a message and apply the status effect of sending it.

        - Visitor on RESOLVED/CLOSED: reopens to WAITING (agent cleared,
          department, transcript and rating kept).
        - Agent on WAITING: claims the session (ASSIGNED to the sender).
        - Agent on RESOLVED/CLOSED: rejected.
        - Visitor messages record whether any agent was available; while
          none is, staff get one offline notice per session.

        Raises:
            SessionNotFoundError: If the session does not exist
            InvalidTransitionError: If an agent writes to a finished session
        """
        async with self.locks.hold(session_id):
            session = await self.get_session(session_id)
            created_at = max(now_utc(), session.last_message_at)
            patch = ChatSessionPatch(last_message_at=created_at)
            preamble: list[ChatMessageCreate] = []
            reopened = False
            offline = False

            if data.sender_type == SenderType.VISITOR:
                offline = not await self.router.agents_online()
                patch.is_offline_message = offline
                if session.status in TERMINAL_STATUSES:
                    patch.status = transition(session.status, SessionEvent.REOPEN)
                    patch.assigned_agent_id = None
                    preamble.append(_system_message(REOPEN_NOTE))
                    reopened = True
                else:
                    transition(session.status, SessionEvent.MESSAGE)
            elif data.sender_type == SenderType.ADMIN:
                if session.status == SessionStatus.WAITING:
                    patch.status = transition(session.status, SessionEvent.ASSIGN)
                    patch.assigned_agent_id = data.sender_id
                else:
                    transition(session.status, SessionEvent.MESSAGE)

            updated, stored = await self.message_repo.append(
                session_id,
                preamble + [data],
                created_at=created_at,
                session_patch=patch,
            )

        if reopened:
            logger.info(f"Session {session_id} reopened from {session.status.value}")
        # The first message of a conversation is covered by the new chat notice.
        if offline and self.notifier is not None and stored[-1].seq > 1:
            await notify.notify_offline_message(
                self.session_repo,
                self.router.department_repo,
                self.notifier,
                updated,
                stored[-1],
                fallback=self.settings.CHAT_NOTIFY_EMAILS,
            )
        return AppendResult(
            session=updated,
            message=stored[-1],
            reopened=reopened,
            system_messages=stored[:-1],
        )

    async def send_article(
        self,
        session_id: UUID,
        article_id: UUID,
        agent_id: Optional[str] = None,
    ) -> AppendResult:
        """Share a knowledge base article into a session and count the view."""
        if self.knowledge_repo is None:
            raise ValidationError("Knowledge base is not configured")
        article = await self.knowledge_repo.get(article_id)
        if article is None or not article.is_active:
            raise ArticleNotFoundError(f"Article {article_id} not found")

        result = await self.append_message(
            session_id,
            ChatMessageCreate(
                sender_type=SenderType.ADMIN,
                sender_id=agent_id,
                message_type=MessageType.KNOWLEDGE_BASE,
                body=f"{article.title}\n\n{article.content}",
            ),
        )
        await self.knowledge_repo.record_view(article_id)
        return result

    async def get_transcript(
        self,
        session_id: UUID,
        reader_role: PrincipalRole,
        limit: int = 500,
        offset: int = 0,
    ) -> Transcript:
        """
        Read a session's messages in (created_at, seq) order.

        The other party's unread messages are marked read; repeated reads
        change nothing.
        """
        session = await self.get_session(session_id)
        counterpart = SenderType.VISITOR if reader_role.is_staff else SenderType.ADMIN
        await self.message_repo.mark_read(session_id, counterpart, now_utc())
        messages = await self.message_repo.list_for_session(session_id, limit=limit, offset=offset)
        return Transcript(session=session, messages=messages)

    # ===========================================
    # Status
    # ===========================================

    async def set_status(
        self,
        session_id: UUID,
        target: SessionStatus,
        actor_id: Optional[str] = None,
    ) -> ChatSession:
        """
        Move a session to ``target`` if the transition table allows it.

        Raises:
            InvalidTransitionError: For any transition outside the table
        """
        async with self.locks.hold(session_id):
            session = await self.get_session(session_id)
            event = event_for_target(session.status, target)
            new_status = transition(session.status, event)
            now = now_utc()

            patch = ChatSessionPatch(status=new_status)
            if event == SessionEvent.ASSIGN:
                patch.assigned_agent_id = actor_id
            elif event == SessionEvent.RESOLVE:
                patch.resolved_at = now
            elif event == SessionEvent.CLOSE:
                patch.ended_at = now

            updated = await self.session_repo.update(session_id, patch)

        logger.info(
            f"Session {session_id} {session.status.value} -> {new_status.value} "
            f"by {actor_id or 'system'}"
        )
        return updated

    async def cancel(self, session_id: UUID, reason: str = CANCEL_NOTE) -> ChatSession:
        """
        Close a pending session the visitor abandoned.

        Allowed while WAITING, or assigned with no agent reply yet. Leaves a
        SYSTEM message in the transcript.

        Raises:
            InvalidTransitionError: If the session is finished or an agent has replied
        """
        async with self.locks.hold(session_id):
            session = await self.get_session(session_id)
            target = transition(session.status, SessionEvent.CANCEL)
            if session.status != SessionStatus.WAITING:
                if await self.message_repo.has_sender(session_id, SenderType.ADMIN):
                    raise InvalidTransitionError(session.status, SessionEvent.CANCEL)

            created_at = max(now_utc(), session.last_message_at)
            updated, _ = await self.message_repo.append(
                session_id,
                [_system_message(reason)],
                created_at=created_at,
                session_patch=ChatSessionPatch(
                    status=target,
                    last_message_at=created_at,
                    ended_at=created_at,
                ),
            )

        logger.info(f"Session {session_id} cancelled: {reason}")
        return updated

    # ===========================================
    # Rating
    # ===========================================

    async def rate(
        self,
        session_id: UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> ChatSession:
        """
        Store the visitor's rating. Single assignment.

        Raises:
            ValidationError: If rating is outside 1-5
            NotResolvedError: If the session is not RESOLVED or CLOSED
            AlreadyRatedError: If a rating already exists
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer between 1 and 5", details={"rating": rating})

        async with self.locks.hold(session_id):
            session = await self.get_session(session_id)
            if session.status not in TERMINAL_STATUSES:
                raise NotResolvedError(
                    f"Session {session_id} is {session.status.value}; only resolved or closed sessions can be rated"
                )
            if session.rating is not None:
                raise AlreadyRatedError(f"Session {session_id} has already been rated")
            if not await self.session_repo.set_rating(session_id, rating, comment):
                raise AlreadyRatedError(f"Session {session_id} has already been rated")
            updated = await self.get_session(session_id)

        logger.info(f"Session {session_id} rated {rating}")
        return updated

    # ===========================================
    # Listing
    # ===========================================

    async def list_sessions(
        self,
        status: Optional[SessionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ChatSessionSummary], int]:
        """List sessions with message counts, latest message and unread visitor messages."""
        sessions = await self.session_repo.list(status=status, limit=limit, offset=offset)
        total = await self.session_repo.count(status=status)
        ids = [s.id for s in sessions]
        counts = await self.message_repo.count_for_sessions(ids)
        unread = await self.message_repo.count_unread_for_sessions(ids, SenderType.VISITOR)
        latest = await self.message_repo.last_for_sessions(ids)
        summaries = [
            ChatSessionSummary(
                **s.model_dump(),
                message_count=counts.get(s.id, 0),
                unread_count=unread.get(s.id, 0),
                last_message=latest.get(s.id),
            )
            for s in sessions
        ]
        return summaries, total


def _system_message(body: str) -> ChatMessageCreate:
    return ChatMessageCreate(
        sender_type=SenderType.SYSTEM,
        message_type=MessageType.SYSTEM,
        body=body,
    )
