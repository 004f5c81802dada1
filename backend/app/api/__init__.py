"""API routers."""

from app.api import (
    admin_chat,
    chat,
    departments,
    knowledge_base,
)

__all__ = [
    "admin_chat",
    "chat",
    "departments",
    "knowledge_base",
]
