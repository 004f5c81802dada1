"""
Staff notifier interface.

Delivers short plain-text notices to support staff outside the chat
itself, typically by email.
"""

from abc import ABC, abstractmethod


class INotifier(ABC):
    """Abstract interface for staff notices."""

    @abstractmethod
    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        """
        Deliver a notice.

        Args:
            recipients: Email addresses
            subject: Subject line
            body: Plain-text body

        Raises:
            NotificationError: If delivery fails
        """
        pass
