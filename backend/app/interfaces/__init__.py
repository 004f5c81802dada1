"""Abstract interfaces for infrastructure abstraction."""

from app.interfaces.auth_provider import IAuthProvider
from app.interfaces.chat_message_repository import IChatMessageRepository
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.interfaces.department_repository import IDepartmentRepository
from app.interfaces.knowledge_repository import IKnowledgeRepository
from app.interfaces.notifier import INotifier

__all__ = [
    "IAuthProvider",
    "IChatSessionRepository",
    "IChatMessageRepository",
    "IDepartmentRepository",
    "IKnowledgeRepository",
    "INotifier",
]
