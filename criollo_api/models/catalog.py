"""
Catalog models: Category, Product, Combo, ComboProduct.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from criollo_shared.utils.money import money

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .inventory import Inventory


class Category(AuditMixin, Base):
    __tablename__ = "category"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    products: Mapped[list["Product"]] = relationship(back_populates="category")


class Product(AuditMixin, Base):
    """
    Menu item sold on its own or as part of a combo.
    ``is_available`` is the kitchen switch; ``is_active`` is the soft delete flag.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[int] = mapped_column(IdType, ForeignKey("category.id"), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    preparation_minutes: Mapped[int] = mapped_column(Integer, default=15, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (CheckConstraint("price >= 0", name="ck_product_price_non_negative"),)

    category: Mapped["Category"] = relationship(back_populates="products", lazy="joined")
    inventory: Mapped[Optional["Inventory"]] = relationship(back_populates="product", uselist=False)


class Combo(AuditMixin, Base):
    """Bundle of products sold at ``price - discount``."""

    __tablename__ = "combo"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_combo_price_non_negative"),
        CheckConstraint("discount >= 0 AND discount <= price", name="ck_combo_discount_range"),
    )

    items: Mapped[list["ComboProduct"]] = relationship(
        back_populates="combo", cascade="all, delete-orphan"
    )

    @property
    def final_price(self) -> Decimal:
        return money(self.price - (self.discount or 0))


class ComboProduct(Base):
    __tablename__ = "combo_product"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    combo_id: Mapped[int] = mapped_column(IdType, ForeignKey("combo.id"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(IdType, ForeignKey("product.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (UniqueConstraint("combo_id", "product_id", name="uq_combo_product"),)

    combo: Mapped["Combo"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<ComboProduct(combo={self.combo_id}, product={self.product_id}, qty={self.quantity})>"
