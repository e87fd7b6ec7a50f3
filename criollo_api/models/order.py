"""
Order models: Order, OrderItem.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from criollo_shared.config.constants import OrderStatus, OrderType
from criollo_shared.utils.money import money

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .billing import Invoice
    from .catalog import Combo, Product
    from .customer import Client
    from .table import Table
    from .user import Employee


class Order(AuditMixin, Base):
    """
    Customer order. Dine-in orders always reference a table.
    Immutable once INVOICED.
    """

    # "order" is a reserved SQL keyword
    __tablename__ = "customer_order"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    order_type: Mapped[OrderType] = mapped_column(
        Enum(OrderType, native_enum=False, length=20), default=OrderType.DINE_IN, nullable=False
    )
    table_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("restaurant_table.id"), index=True)
    client_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("client.id"), index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("employee.id"), index=True)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=20),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    status_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(
            "order_type <> 'DINE_IN' OR table_id IS NOT NULL",
            name="ck_order_dine_in_requires_table",
        ),
        Index("ix_order_table_status", "table_id", "status"),
        Index("ix_order_created_at", "created_at"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    table: Mapped[Optional["Table"]] = relationship(back_populates="orders")
    client: Mapped[Optional["Client"]] = relationship(back_populates="orders")
    employee: Mapped[Optional["Employee"]] = relationship(back_populates="orders")
    invoice: Mapped[Optional["Invoice"]] = relationship(back_populates="order", uselist=False)

    @property
    def subtotal(self) -> Decimal:
        return money(sum((item.subtotal for item in self.items), Decimal("0")))

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number={self.order_number}, status={self.status.value})>"


class OrderItem(Base):
    """
    Order line. References exactly one of product / combo.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    order_id: Mapped[int] = mapped_column(IdType, ForeignKey("customer_order.id"), nullable=False, index=True)
    product_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("product.id"), index=True)
    combo_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("combo.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(
            "(product_id IS NULL AND combo_id IS NOT NULL) OR (product_id IS NOT NULL AND combo_id IS NULL)",
            name="ck_order_item_product_xor_combo",
        ),
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
        CheckConstraint("discount >= 0", name="ck_order_item_discount_non_negative"),
    )

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped[Optional["Product"]] = relationship(lazy="joined")
    combo: Mapped[Optional["Combo"]] = relationship(lazy="joined")

    @property
    def subtotal(self) -> Decimal:
        return money(self.quantity * self.unit_price - (self.discount or 0))

    @property
    def name(self) -> str:
        if self.product is not None:
            return self.product.name
        if self.combo is not None:
            return self.combo.name
        return ""

    def __repr__(self) -> str:
        target = f"product={self.product_id}" if self.product_id else f"combo={self.combo_id}"
        return f"<OrderItem(id={self.id}, {target}, qty={self.quantity})>"
