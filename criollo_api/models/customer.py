"""
Client model (CRM).
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .billing import Invoice
    from .order import Order
    from .reservation import Reservation


class Client(AuditMixin, Base):
    """Restaurant customer. Cedula and email are optional but unique."""

    __tablename__ = "client"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    cedula: Mapped[Optional[str]] = mapped_column(String(13), unique=True, nullable=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text)
    birth_date: Mapped[Optional[date]] = mapped_column(Date)
    category: Mapped[str] = mapped_column(String(20), default="Regular", nullable=False)

    orders: Mapped[list["Order"]] = relationship(back_populates="client")
    reservations: Mapped[list["Reservation"]] = relationship(back_populates="client")
    invoices: Mapped[list["Invoice"]] = relationship(back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
