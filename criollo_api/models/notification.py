"""
Outbound email log.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from criollo_shared.config.constants import EmailStatus, EmailType
from criollo_shared.utils.clock import now_local

from .base import Base, IdType


class EmailTransaction(Base):
    """One row per delivery attempt batch of a transactional email."""

    __tablename__ = "email_transaction"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    email_type: Mapped[EmailType] = mapped_column(
        Enum(EmailType, native_enum=False, length=40), nullable=False, index=True
    )
    reference: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[EmailStatus] = mapped_column(
        Enum(EmailStatus, native_enum=False, length=20), nullable=False, index=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    def __repr__(self) -> str:
        return f"<EmailTransaction(id={self.id}, type={self.email_type.value}, status={self.status.value})>"
