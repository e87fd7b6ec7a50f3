"""
Dining table model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from criollo_shared.config.constants import TableStatus

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .order import Order
    from .reservation import Reservation


class Table(AuditMixin, Base):
    """
    Physical table in the dining room.

    Status only changes through TableService. The version column makes a
    concurrent status write fail with StaleDataError instead of silently
    overwriting.
    """

    # "table" is a reserved SQL keyword
    __tablename__ = "restaurant_table"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(100))  # "Salón", "Terraza"
    status: Mapped[TableStatus] = mapped_column(
        Enum(TableStatus, native_enum=False, length=20),
        default=TableStatus.FREE,
        nullable=False,
        index=True,
    )
    status_reason: Mapped[Optional[str]] = mapped_column(Text)
    # Reservation whose party holds the table (RESERVED) or sits at it (OCCUPIED)
    held_by_reservation_id: Mapped[Optional[int]] = mapped_column(Integer)
    status_changed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_cleaned_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_table_capacity_positive"),
        Index("ix_table_status_capacity", "status", "capacity"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    orders: Mapped[list["Order"]] = relationship(back_populates="table")
    reservations: Mapped[list["Reservation"]] = relationship(back_populates="table")

    def __repr__(self) -> str:
        return f"<Table(id={self.id}, number={self.number}, status={self.status.value})>"
