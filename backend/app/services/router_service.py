"""
Department router.

Picks a department for a session and, when the department has an agent
pool, the least recently assigned free agent. Callers hold the session lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from app.core.config import Settings, get_settings
from app.core.exceptions import DepartmentNotFoundError, InvalidTransitionError
from app.core.logger import setup_logger
from app.interfaces.chat_message_repository import IChatMessageRepository
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.department_repository import IDepartmentRepository
from app.models.chat_session import ChatMessageCreate, ChatSession, ChatSessionPatch
from app.models.department import Department
from app.models.enums import MessageType, SenderType, SessionEvent, SessionStatus
from app.services.chat_state import transition
from app.utils.datetime_utils import now_utc

logger = setup_logger(__name__)


@dataclass
class RoutingDecision:
    """Where a session goes. agent_id None means the department inbox."""

    department: Department
    agent_id: Optional[str] = None


class RouterService:
    """Assigns sessions to departments and agents."""

    def __init__(
        self,
        department_repo: IDepartmentRepository,
        session_repo: IChatSessionRepository,
        message_repo: IChatMessageRepository,
        settings: Optional[Settings] = None,
    ):
        self.department_repo = department_repo
        self.session_repo = session_repo
        self.message_repo = message_repo
        self.settings = settings or get_settings()

    async def select_department(self, requested_slug: Optional[str]) -> Optional[Department]:
        """
        Resolve the routing target.

        Order: the visitor's requested department, the configured default,
        then the first active department by sort order.
        """
        if requested_slug:
            department = await self.department_repo.get_by_slug(requested_slug)
            if department and department.is_active:
                return department
            logger.info(f"Requested department '{requested_slug}' unavailable, using fallback")

        default_slug = self.settings.DEFAULT_DEPARTMENT_SLUG
        if default_slug:
            department = await self.department_repo.get_by_slug(default_slug)
            if department and department.is_active:
                return department

        active = await self.department_repo.list(active_only=True)
        return active[0] if active else None

    async def select_agent(self, department: Department) -> Optional[str]:
        """Least recently assigned available agent below the concurrency cap."""
        pool = await self.department_repo.list_agents(department.id, available_only=True)
        if not pool:
            return None

        loads = await self.session_repo.count_open_by_agent([member.agent_id for member in pool])
        capacity = self.settings.AGENT_MAX_CONCURRENT_CHATS
        for member in pool:
            if loads.get(member.agent_id, 0) < capacity:
                return member.agent_id
        return None

    async def agents_online(self) -> bool:
        """Whether any agent is taking chats right now."""
        return await self.department_repo.has_available_agent()

    async def decide(self, session: ChatSession) -> Optional[RoutingDecision]:
        department = await self.select_department(session.requested_department)
        if department is None:
            return None
        agent_id = await self.select_agent(department)
        return RoutingDecision(department=department, agent_id=agent_id)

    async def assign(self, session: ChatSession) -> ChatSession:
        """
        Route a WAITING session.

        With no active department the session stays WAITING.

        Raises:
            InvalidTransitionError: If the session is not WAITING
        """
        target = transition(session.status, SessionEvent.ASSIGN)
        decision = await self.decide(session)
        if decision is None:
            logger.warning(f"No active department for session {session.id}; left WAITING")
            return session

        updated = await self.session_repo.update(
            session.id,
            ChatSessionPatch(
                status=target,
                department_id=decision.department.id,
                assigned_agent_id=decision.agent_id,
            ),
        )
        if decision.agent_id:
            await self.department_repo.mark_agent_assigned(
                decision.department.id, decision.agent_id, now_utc()
            )
        logger.info(
            f"Session {session.id} routed to {decision.department.slug} "
            f"(agent={decision.agent_id or 'inbox'})"
        )
        return updated

    async def reassign(
        self,
        session: ChatSession,
        department_id: Optional[UUID] = None,
        agent_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> ChatSession:
        """
        Hand a session to another department and/or agent.

        Without an explicit agent the target department's pool is consulted.

        Raises:
            InvalidTransitionError: If the session is RESOLVED or CLOSED
            DepartmentNotFoundError: If the target department does not exist
        """
        if not session.is_open:
            raise InvalidTransitionError(session.status, SessionEvent.ASSIGN)

        department: Optional[Department] = None
        if department_id is not None:
            department = await self.department_repo.get(department_id)
            if department is None:
                raise DepartmentNotFoundError(f"Department {department_id} not found")
        elif session.department_id is not None:
            department = await self.department_repo.get(session.department_id)

        if agent_id is None and department is not None:
            agent_id = await self.select_agent(department)

        status = session.status
        if status == SessionStatus.WAITING:
            status = transition(status, SessionEvent.ASSIGN)

        target_label = department.name if department else "inbox"
        note = f"Conversation transferred to {target_label}"
        if agent_id:
            note += f" (agent {agent_id})"

        created_at = max(now_utc(), session.last_message_at)
        updated, _ = await self.message_repo.append(
            session.id,
            [
                ChatMessageCreate(
                    sender_type=SenderType.SYSTEM,
                    sender_id=actor_id,
                    message_type=MessageType.SYSTEM,
                    body=note,
                )
            ],
            created_at=created_at,
            session_patch=ChatSessionPatch(
                status=status,
                last_message_at=created_at,
                department_id=department.id if department else session.department_id,
                assigned_agent_id=agent_id,
            ),
        )
        if agent_id and department is not None:
            await self.department_repo.mark_agent_assigned(department.id, agent_id, now_utc())
        logger.info(f"Session {session.id} reassigned to {target_label} by {actor_id}")
        return updated
