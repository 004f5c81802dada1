"""
Notifier that writes notices to the application log.
"""

from app.core.logger import setup_logger
from app.interfaces.notifier import INotifier

logger = setup_logger(__name__)


class LogNotifier(INotifier):
    """Development notifier; nothing leaves the process."""

    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        logger.info(f"Notice to {', '.join(recipients)}: {subject}\n{body}")
