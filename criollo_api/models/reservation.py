"""
Reservation model.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from criollo_shared.config.constants import ReservationStatus

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .customer import Client
    from .table import Table


class Reservation(AuditMixin, Base):
    """
    Table booking for a client over [start_at, start_at + duration_minutes).
    """

    __tablename__ = "reservation"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    table_id: Mapped[int] = mapped_column(IdType, ForeignKey("restaurant_table.id"), nullable=False)
    client_id: Mapped[int] = mapped_column(IdType, ForeignKey("client.id"), nullable=False, index=True)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=120, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, native_enum=False, length=20),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True,
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    arrived_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("party_size > 0", name="ck_reservation_party_size_positive"),
        CheckConstraint("duration_minutes > 0", name="ck_reservation_duration_positive"),
        Index("ix_reservation_table_start", "table_id", "start_at"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    table: Mapped["Table"] = relationship(back_populates="reservations", lazy="joined")
    client: Mapped["Client"] = relationship(back_populates="reservations", lazy="joined")

    @property
    def end_at(self) -> datetime:
        return self.start_at + timedelta(minutes=self.duration_minutes)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval overlap with [start, end)."""
        return self.start_at < end and self.end_at > start

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, table={self.table_id}, "
            f"start={self.start_at:%Y-%m-%d %H:%M}, status={self.status.value})>"
        )
