"""
Email senders.

settings.email_backend picks the transport:
  - "log" (default): writes the message to the log
  - "smtp": sends through smtplib in a worker thread

A failed send raises EmailDeliveryError so the caller's transaction, which
holds the Email Send Record, rolls back and a later run can try again.
"""

import asyncio
import smtplib
from email.mime.text import MIMEText
from typing import Optional, Protocol

from sharpstack.config import Settings, get_settings
from sharpstack.engines.notifications.content import EmailMessage
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


class EmailDeliveryError(Exception):
    """The transport refused or failed to deliver a message."""


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> None:
        ...


class LogEmailSender:
    async def send(self, message: EmailMessage) -> None:
        logger.info(
            "EMAIL",
            extra={
                "to": message.to,
                "subject": message.subject,
                "email_type": message.email_type.value,
                "body": message.body,
            },
        )


class SmtpEmailSender:
    def __init__(self, settings: Settings):
        self.settings = settings

    def _do_send(self, message: EmailMessage) -> None:
        msg = MIMEText(message.body, "plain", "utf-8")
        msg["Subject"] = message.subject
        msg["From"] = self.settings.smtp_from_email
        msg["To"] = message.to

        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as smtp:
            if self.settings.smtp_use_tls:
                smtp.starttls()
            if self.settings.smtp_user and self.settings.smtp_password:
                smtp.login(self.settings.smtp_user, self.settings.smtp_password)
            smtp.send_message(msg)

    async def send(self, message: EmailMessage) -> None:
        try:
            await asyncio.to_thread(self._do_send, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "SMTP send failed",
                extra={"to": message.to, "email_type": message.email_type.value, "error": str(exc)},
            )
            raise EmailDeliveryError(str(exc)) from exc


def build_email_sender(settings: Optional[Settings] = None) -> EmailSender:
    settings = settings or get_settings()
    if settings.email_backend == "smtp":
        return SmtpEmailSender(settings)
    return LogEmailSender()
