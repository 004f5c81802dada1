"""
Staff notice helpers.

Each function sends one kind of notice about a chat session and makes
sure it goes out at most once per session. Delivery failures are logged
and never reach the visitor.
"""

from typing import Optional

from app.core.config import get_settings
from app.core.exceptions import NotificationError
from app.core.logger import setup_logger
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.department_repository import IDepartmentRepository
from app.interfaces.notifier import INotifier
from app.models.chat_session import ChatMessage, ChatSession
from app.models.enums import ChatNotice

logger = setup_logger(__name__)


async def _recipients(
    department_repo: IDepartmentRepository,
    session: ChatSession,
    fallback: Optional[list[str]],
) -> tuple[list[str], Optional[str]]:
    """Department contact address if set, else the configured fallback list."""
    department = None
    if session.department_id:
        department = await department_repo.get(session.department_id)
    if department and department.contact_email:
        return [str(department.contact_email)], department.name
    if fallback is None:
        fallback = get_settings().CHAT_NOTIFY_EMAILS
    return list(fallback), department.name if department else None


def _visitor_lines(session: ChatSession) -> list[str]:
    return [
        f"Session: {session.id}",
        f"Name: {session.visitor_name or 'anonymous'}",
        f"Email: {session.visitor_email or '-'}",
        f"Phone: {session.visitor_phone or '-'}",
    ]


async def _send_once(
    session_repo: IChatSessionRepository,
    notifier: INotifier,
    session: ChatSession,
    notice: ChatNotice,
    recipients: list[str],
    subject: str,
    body: str,
) -> bool:
    if not recipients:
        logger.warning(f"No recipients for {notice.value} notice on session {session.id}")
        return False
    if not await session_repo.claim_notice(session.id, notice):
        return False

    try:
        await notifier.send(recipients, subject, body)
    except NotificationError as e:
        logger.error(f"{notice.value} notice for session {session.id} failed: {e.message}")
        await session_repo.release_notice(session.id, notice)
        return False

    logger.info(f"{notice.value} notice for session {session.id} sent to {len(recipients)} recipient(s)")
    return True


async def notify_new_chat(
    session_repo: IChatSessionRepository,
    department_repo: IDepartmentRepository,
    notifier: INotifier,
    session: ChatSession,
    first_message: ChatMessage,
    fallback: Optional[list[str]] = None,
) -> bool:
    """Tell staff a visitor started a conversation."""
    recipients, department_name = await _recipients(department_repo, session, fallback)
    body = "\n".join(
        _visitor_lines(session)
        + [f"Department: {department_name or 'unassigned'}", "", first_message.body]
    )
    return await _send_once(
        session_repo,
        notifier,
        session,
        ChatNotice.NEW_CHAT,
        recipients,
        f"New chat from {session.visitor_name or 'a visitor'}",
        body,
    )


async def notify_offline_message(
    session_repo: IChatSessionRepository,
    department_repo: IDepartmentRepository,
    notifier: INotifier,
    session: ChatSession,
    message: ChatMessage,
    fallback: Optional[list[str]] = None,
) -> bool:
    """Tell staff a visitor wrote while no agent was available."""
    recipients, _ = await _recipients(department_repo, session, fallback)
    body = "\n".join(_visitor_lines(session) + ["", message.body])
    return await _send_once(
        session_repo,
        notifier,
        session,
        ChatNotice.OFFLINE_MESSAGE,
        recipients,
        f"Offline message from {session.visitor_name or 'a visitor'}",
        body,
    )
