"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class SessionStatus(str, Enum):
    """
    Chat session status.

    ACTIVE is the engaged sub-state of ASSIGNED. WAITING sessions have not
    been picked up yet. RESOLVED and CLOSED are terminal until the visitor
    writes again.
    """

    ACTIVE = "ACTIVE"
    WAITING = "WAITING"
    ASSIGNED = "ASSIGNED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


OPEN_STATUSES = frozenset({SessionStatus.WAITING, SessionStatus.ASSIGNED, SessionStatus.ACTIVE})
TERMINAL_STATUSES = frozenset({SessionStatus.RESOLVED, SessionStatus.CLOSED})


class SessionEvent(str, Enum):
    """Events driving the session state machine."""

    OPEN = "OPEN"
    ASSIGN = "ASSIGN"
    MESSAGE = "MESSAGE"
    ACTIVATE = "ACTIVATE"
    RESOLVE = "RESOLVE"
    CLOSE = "CLOSE"
    REOPEN = "REOPEN"
    CANCEL = "CANCEL"


class SenderType(str, Enum):
    """Who wrote a message."""

    VISITOR = "VISITOR"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class MessageType(str, Enum):
    """Message payload kind."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"
    KNOWLEDGE_BASE = "KNOWLEDGE_BASE"
    SYSTEM = "SYSTEM"


# Payload kinds a visitor or agent may type. KNOWLEDGE_BASE goes through the
# article endpoint, SYSTEM is written by the service only.
AUTHORED_MESSAGE_TYPES = frozenset({MessageType.TEXT, MessageType.IMAGE, MessageType.FILE})


class PrincipalRole(str, Enum):
    """Role of an authenticated caller."""

    VISITOR = "VISITOR"
    AGENT = "AGENT"
    ADMIN = "ADMIN"

    @property
    def is_staff(self) -> bool:
        return self in (PrincipalRole.AGENT, PrincipalRole.ADMIN)


class ChatNotice(str, Enum):
    """Staff email notices, each sent at most once per session."""

    NEW_CHAT = "NEW_CHAT"
    OFFLINE_MESSAGE = "OFFLINE_MESSAGE"
