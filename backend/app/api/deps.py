"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from app.core.config import get_settings
from app.interfaces.auth_provider import IAuthProvider
from app.interfaces.chat_message_repository import IChatMessageRepository
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.department_repository import IDepartmentRepository
from app.interfaces.knowledge_repository import IKnowledgeRepository
from app.interfaces.notifier import INotifier
from app.models.enums import PrincipalRole
from app.models.principal import Principal
from app.services.analytics_service import AnalyticsService
from app.services.chat_service import ChatService
from app.services.department_service import DepartmentService
from app.services.router_service import RouterService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_chat_session_repository() -> IChatSessionRepository:
    """Get chat session repository instance."""
    from app.infrastructure.local.chat_session_repository import SqliteChatSessionRepository
    return SqliteChatSessionRepository()


@lru_cache()
def get_chat_message_repository() -> IChatMessageRepository:
    """Get chat message repository instance."""
    from app.infrastructure.local.chat_message_repository import SqliteChatMessageRepository
    return SqliteChatMessageRepository()


@lru_cache()
def get_department_repository() -> IDepartmentRepository:
    """Get department repository instance."""
    from app.infrastructure.local.department_repository import SqliteDepartmentRepository
    return SqliteDepartmentRepository()


@lru_cache()
def get_knowledge_repository() -> IKnowledgeRepository:
    """Get knowledge base repository instance."""
    from app.infrastructure.local.knowledge_repository import SqliteKnowledgeRepository
    return SqliteKnowledgeRepository()


@lru_cache()
def get_notifier() -> INotifier:
    """Get staff notifier instance."""
    settings = get_settings()
    if settings.NOTIFIER == "smtp":
        from app.infrastructure.local.smtp_notifier import SmtpNotifier

        return SmtpNotifier(settings)

    from app.infrastructure.local.log_notifier import LogNotifier
    return LogNotifier()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_chat_service_instance() -> ChatService:
    """Process-wide chat service, shared with the background scheduler."""
    session_repo = get_chat_session_repository()
    message_repo = get_chat_message_repository()
    router = RouterService(
        department_repo=get_department_repository(),
        session_repo=session_repo,
        message_repo=message_repo,
    )
    return ChatService(
        session_repo=session_repo,
        message_repo=message_repo,
        router=router,
        knowledge_repo=get_knowledge_repository(),
        notifier=get_notifier(),
    )


def get_chat_service() -> ChatService:
    return get_chat_service_instance()


def get_analytics_service(
    session_repo: IChatSessionRepository = Depends(get_chat_session_repository),
) -> AnalyticsService:
    return AnalyticsService(session_repo)


def get_department_service(
    department_repo: IDepartmentRepository = Depends(get_department_repository),
    session_repo: IChatSessionRepository = Depends(get_chat_session_repository),
) -> DepartmentService:
    return DepartmentService(department_repo, session_repo)


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    settings = get_settings()
    if settings.AUTH_PROVIDER == "local":
        from app.infrastructure.auth.local_auth import LocalAuthProvider

        return LocalAuthProvider(settings)

    from app.infrastructure.local.mock_auth import MockAuthProvider
    return MockAuthProvider(enabled=True)


# ===========================================
# Principal Authentication
# ===========================================


def _extract_token(authorization: str) -> str:
    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )
    return token


async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> Principal:
    """
    Get the authenticated caller.

    With auth disabled, every caller is the development admin.
    """
    if not auth_provider.is_enabled():
        return Principal(id="dev_admin", role=PrincipalRole.ADMIN, display_name="Developer")

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    token = _extract_token(authorization)
    try:
        return await auth_provider.verify_token(token)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


async def get_optional_principal(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> Optional[Principal]:
    """Visitor endpoints accept anonymous callers; a bad token is still rejected."""
    if not authorization:
        return None
    return await get_current_principal(authorization, auth_provider)


async def require_staff(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Agents and admins only."""
    if not principal.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Support staff access required",
        )
    return principal


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Admins only."""
    if principal.role != PrincipalRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

KnowledgeRepo = Annotated[IKnowledgeRepository, Depends(get_knowledge_repository)]
ChatSvc = Annotated[ChatService, Depends(get_chat_service)]
AnalyticsSvc = Annotated[AnalyticsService, Depends(get_analytics_service)]
DepartmentSvc = Annotated[DepartmentService, Depends(get_department_service)]
OptionalUser = Annotated[Optional[Principal], Depends(get_optional_principal)]
StaffUser = Annotated[Principal, Depends(require_staff)]
AdminUser = Annotated[Principal, Depends(require_admin)]
