"""
Reservation Repository - Data access for reservations.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy import Select, select

from criollo_api.models import Reservation
from criollo_shared.config.constants import ACTIVE_RESERVATION_STATUSES, ReservationStatus

from .base import BaseRepository, RepositoryFilters


@dataclass
class ReservationFilters(RepositoryFilters):
    status: ReservationStatus | None = None
    statuses: list[ReservationStatus] | None = None
    table_id: int | None = None
    client_id: int | None = None
    start_from: datetime | None = None
    start_to: datetime | None = None


class ReservationRepository(BaseRepository[Reservation]):

    model = Reservation

    def _base_query(self) -> Select:
        return select(Reservation).order_by(Reservation.start_at, Reservation.id)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, ReservationFilters):
            return query
        if filters.status:
            query = query.where(Reservation.status == filters.status)
        elif filters.statuses:
            query = query.where(Reservation.status.in_(filters.statuses))
        if filters.table_id:
            query = query.where(Reservation.table_id == filters.table_id)
        if filters.client_id:
            query = query.where(Reservation.client_id == filters.client_id)
        if filters.start_from:
            query = query.where(Reservation.start_at >= filters.start_from)
        if filters.start_to:
            query = query.where(Reservation.start_at < filters.start_to)
        return query

    def find_overlapping(
        self,
        table_id: int,
        start: datetime,
        end: datetime,
        exclude_id: int | None = None,
        max_duration_minutes: int = 24 * 60,
    ) -> list[Reservation]:
        """
        Active reservations on ``table_id`` intersecting [start, end).

        The SQL filter narrows candidates by start time only; the end of each
        reservation is computed in Python so the check works the same on
        every database.
        """
        query = select(Reservation).where(
            Reservation.table_id == table_id,
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
            Reservation.is_active.is_(True),
            Reservation.start_at < end,
            Reservation.start_at > start - timedelta(minutes=max_duration_minutes),
        )
        if exclude_id is not None:
            query = query.where(Reservation.id != exclude_id)
        candidates = self._db.execute(query).scalars().unique().all()
        return [r for r in candidates if r.overlaps(start, end)]

    def find_in_statuses(
        self,
        statuses: Sequence[ReservationStatus],
        start_from: datetime | None = None,
        start_to: datetime | None = None,
    ) -> Sequence[Reservation]:
        return self.find_all(
            ReservationFilters(
                statuses=list(statuses), start_from=start_from, start_to=start_to, limit=200
            )
        )
