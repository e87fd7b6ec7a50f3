"""
Stock models: Inventory (one row per product) and InventoryMovement (ledger).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from criollo_shared.config.constants import MovementType
from criollo_shared.utils.clock import now_local

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .catalog import Product


class Inventory(AuditMixin, Base):
    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    product_id: Mapped[int] = mapped_column(IdType, ForeignKey("product.id"), unique=True, nullable=False)
    available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minimum: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="unidad", nullable=False)
    last_restocked_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (CheckConstraint("minimum >= 0", name="ck_inventory_minimum_non_negative"),)

    product: Mapped["Product"] = relationship(back_populates="inventory")

    @property
    def is_low(self) -> bool:
        return self.available < self.minimum


class InventoryMovement(Base):
    """Append-only record of every stock change."""

    __tablename__ = "inventory_movement"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    product_id: Mapped[int] = mapped_column(IdType, ForeignKey("product.id"), nullable=False)
    movement_type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, native_enum=False, length=20), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_before: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(50))
    reason: Mapped[Optional[str]] = mapped_column(Text)
    user_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("app_user.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, nullable=False)

    __table_args__ = (Index("ix_inventory_movement_product_created", "product_id", "created_at"),)

    product: Mapped["Product"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement(id={self.id}, product={self.product_id}, "
            f"{self.movement_type.value} {self.quantity})>"
        )
