"""
SMTP implementation of the staff notifier.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText

from app.core.config import Settings
from app.core.exceptions import NotificationError
from app.interfaces.notifier import INotifier


class SmtpNotifier(INotifier):
    """Send notices as plain-text email."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def _send_sync(self, recipients: list[str], subject: str, body: str) -> None:
        message = MIMEText(body, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = self._settings.SMTP_FROM
        message["To"] = ", ".join(recipients)

        with smtplib.SMTP(self._settings.SMTP_HOST, self._settings.SMTP_PORT, timeout=15) as smtp:
            if self._settings.SMTP_USE_TLS:
                smtp.starttls()
            if self._settings.SMTP_USERNAME:
                smtp.login(self._settings.SMTP_USERNAME, self._settings.SMTP_PASSWORD)
            smtp.sendmail(self._settings.SMTP_FROM, recipients, message.as_string())

    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        try:
            await asyncio.to_thread(self._send_sync, recipients, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery failed: {e}") from e
