"""
Tests for EmailService delivery bookkeeping.
"""

from sqlalchemy import select

from criollo_api.models import EmailTransaction
from criollo_api.services.notifications import EmailContent, EmailService
from criollo_shared.config.constants import EmailStatus, EmailType


def _content(**overrides) -> EmailContent:
    values = {
        "recipient": "maria.rodriguez@gmail.com",
        "subject": "Su reservación en El Criollo",
        "html": "<p>Le esperamos.</p>",
        "email_type": EmailType.RESERVATION_CONFIRMATION,
        "reference": "RES-1",
    }
    values.update(overrides)
    return EmailContent(**values)


class TestEmailDelivery:

    def test_sent_message_is_recorded(self, db_session, session_factory, mail_transport):
        service = EmailService(session_factory, transport=mail_transport, enabled=True)

        assert service.send(_content()) is True

        assert mail_transport.recipients == ["maria.rodriguez@gmail.com"]
        logged = db_session.scalars(select(EmailTransaction)).all()
        assert [t.status for t in logged] == [EmailStatus.SENT]

    def test_malformed_header_is_recorded_as_failed(self, db_session, session_factory, mail_transport):
        service = EmailService(session_factory, transport=mail_transport, enabled=True)

        delivered = service.send(_content(subject="Reservación\r\nBcc: otro@ejemplo.com"))

        assert delivered is False
        assert mail_transport.messages == []
        logged = db_session.scalars(select(EmailTransaction)).all()
        assert [t.status for t in logged] == [EmailStatus.FAILED]
        assert logged[0].error_message

    def test_transport_error_does_not_propagate(self, db_session, session_factory):
        def refuse(message):
            raise ConnectionRefusedError("smtp down")

        service = EmailService(session_factory, transport=refuse, enabled=True)

        assert service.send(_content()) is False
        logged = db_session.scalars(select(EmailTransaction)).all()
        assert [t.status for t in logged] == [EmailStatus.FAILED]

    def test_disabled_service_skips(self, db_session, session_factory, mail_transport):
        service = EmailService(session_factory, transport=mail_transport, enabled=False)

        assert service.send(_content()) is False
        assert mail_transport.messages == []
        logged = db_session.scalars(select(EmailTransaction)).all()
        assert [t.status for t in logged] == [EmailStatus.SKIPPED]
