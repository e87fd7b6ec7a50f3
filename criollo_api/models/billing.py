"""
Invoice model.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from criollo_shared.config.constants import InvoiceStatus, PaymentMethod
from criollo_shared.utils.clock import now_local

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .customer import Client
    from .order import Order
    from .user import Employee


class Invoice(AuditMixin, Base):
    """
    Bill for exactly one order.

    Amounts are frozen at generation time:
    total = subtotal - discount + tax + tip. Immutable once PAID.
    """

    __tablename__ = "invoice"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    order_id: Mapped[int] = mapped_column(IdType, ForeignKey("customer_order.id"), unique=True, nullable=False)
    client_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("client.id"), index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("employee.id"), index=True)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tip: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False, length=20), default=PaymentMethod.CASH, nullable=False
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, native_enum=False, length=20),
        default=InvoiceStatus.PENDING,
        nullable=False,
        index=True,
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    payment_notes: Mapped[Optional[str]] = mapped_column(Text)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_invoice_subtotal_non_negative"),
        CheckConstraint("discount >= 0", name="ck_invoice_discount_non_negative"),
        CheckConstraint("tip >= 0", name="ck_invoice_tip_non_negative"),
        Index("ix_invoice_issued_at", "issued_at"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    order: Mapped["Order"] = relationship(back_populates="invoice")
    client: Mapped[Optional["Client"]] = relationship(back_populates="invoices")
    employee: Mapped[Optional["Employee"]] = relationship()

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, total={self.total})>"
