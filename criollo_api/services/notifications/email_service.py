"""
Transactional email over SMTP.

Delivery happens in FastAPI background tasks, after the response is sent.
Every attempt is recorded in ``email_transaction``; failures are logged and
never propagate to the caller.
"""

import smtplib
from collections.abc import Callable
from dataclasses import dataclass
from email import policy
from email.message import EmailMessage
from email.utils import formataddr

from fastapi import BackgroundTasks, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from criollo_api.models import EmailTransaction
from criollo_shared.config.constants import EmailStatus, EmailType
from criollo_shared.config.logging import email_logger as logger
from criollo_shared.config.logging import mask_email
from criollo_shared.config.settings import settings
from criollo_shared.infrastructure.db import get_session_factory
from criollo_shared.utils.clock import now_local


@dataclass(frozen=True)
class EmailContent:
    """A fully rendered message, safe to hand to a background task."""

    recipient: str
    subject: str
    html: str
    email_type: EmailType
    reference: str | None = None


Transport = Callable[[EmailMessage], None]


def smtp_transport(message: EmailMessage) -> None:
    """Deliver one message through the configured SMTP server."""
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(message)


class EmailService:

    def __init__(
        self,
        session_factory: sessionmaker,
        transport: Transport = smtp_transport,
        enabled: bool | None = None,
    ):
        self._session_factory = session_factory
        self._transport = transport
        self._enabled = settings.email_enabled if enabled is None else enabled

    def queue(self, background_tasks: BackgroundTasks, content: EmailContent | None) -> None:
        """Schedule delivery after the response. ``None`` (no recipient) is ignored."""
        if content is None:
            return
        background_tasks.add_task(self.send, content)

    def send(self, content: EmailContent) -> bool:
        """
        Deliver ``content`` and record the attempt.

        Returns True only when the SMTP server accepted the message.
        """
        status = EmailStatus.SKIPPED
        error: str | None = None
        attempts = 0

        if self._enabled:
            attempts = 1
            try:
                self._transport(self._build_message(content))
                status = EmailStatus.SENT
                logger.info(
                    "Email sent",
                    email_type=content.email_type.value,
                    recipient=mask_email(content.recipient),
                    reference=content.reference,
                )
            except (smtplib.SMTPException, OSError, ValueError) as e:
                status = EmailStatus.FAILED
                error = str(e)
                logger.error(
                    "Email delivery failed",
                    email_type=content.email_type.value,
                    recipient=mask_email(content.recipient),
                    reference=content.reference,
                    error=error,
                )
        else:
            logger.debug(
                "Email disabled, message skipped",
                email_type=content.email_type.value,
                reference=content.reference,
            )

        self._record(content, status, error, attempts)
        return status == EmailStatus.SENT

    def _build_message(self, content: EmailContent) -> EmailMessage:
        # Rejects header values containing line breaks with ValueError
        message = EmailMessage(policy=policy.SMTP)
        message["From"] = formataddr((settings.email_from_name, settings.email_from))
        message["To"] = content.recipient
        message["Subject"] = content.subject
        message.set_content("Este mensaje requiere un cliente de correo con soporte HTML.")
        message.add_alternative(content.html, subtype="html")
        return message

    def _record(
        self,
        content: EmailContent,
        status: EmailStatus,
        error: str | None,
        attempts: int,
    ) -> None:
        db = self._session_factory()
        try:
            db.add(
                EmailTransaction(
                    recipient=content.recipient,
                    subject=content.subject[:255],
                    email_type=content.email_type,
                    reference=content.reference,
                    status=status,
                    error_message=error,
                    attempts=attempts,
                    sent_at=now_local() if status == EmailStatus.SENT else None,
                )
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Could not record email transaction", reference=content.reference, exc_info=True)
        finally:
            db.close()


def get_email_service(session_factory: sessionmaker = Depends(get_session_factory)) -> EmailService:
    """FastAPI dependency."""
    return EmailService(session_factory)
