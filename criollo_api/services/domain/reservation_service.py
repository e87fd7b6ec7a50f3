"""
Reservation Service.

PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED, with CANCELLED and NO_SHOW
branching off PENDING or CONFIRMED. A table never has two active
reservations whose [start, end) windows intersect; the check runs with the
table row locked so concurrent bookings of the same table serialize.

Table side effects:
- confirm: a FREE table becomes RESERVED when the booking starts within the
  hold window.
- arrival: FREE or RESERVED table -> OCCUPIED.
- complete / cancel / no-show: the table is freed only when its current
  state was set for this reservation and no active order remains on it.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from criollo_api.models import Client, Reservation, Table
from criollo_api.repositories import ReservationFilters, ReservationRepository
from criollo_shared.config.constants import (
    ErrorMessages,
    Limits,
    RESERVATION_TRANSITIONS,
    ReservationStatus,
    TableStatus,
    WAITING_RESERVATION_STATUSES,
    can_transition,
)
from criollo_shared.config.logging import reservation_logger as logger
from criollo_shared.config.settings import settings
from criollo_shared.utils.clock import day_bounds, now_local, to_local
from criollo_shared.utils.exceptions import (
    ConflictError,
    InvalidReservationStateError,
    InvalidStateError,
    NotFoundError,
    ReservationConflictError,
    ValidationError,
)
from criollo_shared.utils.schemas import (
    AvailableSlotOutput,
    ReservationCreate,
    ReservationOutput,
    ReservationStatsOutput,
    ReservationUpdate,
)

from ..base_service import BaseService
from .table_service import TableService, set_table_status


def reservation_to_output(reservation: Reservation) -> ReservationOutput:
    return ReservationOutput(
        id=reservation.id,
        table_id=reservation.table_id,
        table_number=reservation.table.number if reservation.table else None,
        client_id=reservation.client_id,
        client_name=reservation.client.full_name if reservation.client else None,
        party_size=reservation.party_size,
        start_at=reservation.start_at,
        end_at=reservation.end_at,
        duration_minutes=reservation.duration_minutes,
        notes=reservation.notes,
        status=reservation.status,
        cancellation_reason=reservation.cancellation_reason,
        confirmed_at=reservation.confirmed_at,
        arrived_at=reservation.arrived_at,
        completed_at=reservation.completed_at,
        reminder_sent_at=reservation.reminder_sent_at,
        created_at=reservation.created_at,
    )


class ReservationService(BaseService):
    """Reservation lifecycle and table availability."""

    def __init__(self, db: Session):
        super().__init__(db)
        self._repo = ReservationRepository(db)
        self._tables = TableService(db)

    @property
    def repo(self) -> ReservationRepository:
        return self._repo

    # =========================================================================
    # Queries
    # =========================================================================

    def get_reservation(self, reservation_id: int) -> Reservation:
        return self._get_or_404(self._repo, reservation_id, "Reservación")

    def list_by_day(self, day: date) -> Sequence[Reservation]:
        start, end = day_bounds(day)
        return self._repo.find_all(ReservationFilters(start_from=start, start_to=end, limit=200))

    def list_by_range(self, start_date: date, end_date: date) -> Sequence[Reservation]:
        if end_date < start_date:
            raise ValidationError("La fecha final debe ser posterior a la inicial", field="end_date")
        start, _ = day_bounds(start_date)
        _, end = day_bounds(end_date)
        return self._repo.find_all(ReservationFilters(start_from=start, start_to=end, limit=200))

    def list_by_table(self, table_id: int, day: date | None = None) -> Sequence[Reservation]:
        self._tables.get_table(table_id)
        filters = ReservationFilters(table_id=table_id, limit=200)
        if day is not None:
            filters.start_from, filters.start_to = day_bounds(day)
        return self._repo.find_all(filters)

    def list_by_client(self, client_id: int) -> Sequence[Reservation]:
        if self._db.get(Client, client_id) is None:
            raise NotFoundError("Cliente", client_id)
        return self._repo.find_all(ReservationFilters(client_id=client_id, limit=200))

    def upcoming(self, hours: int = 2) -> Sequence[Reservation]:
        now = now_local()
        return self._repo.find_in_statuses(
            WAITING_RESERVATION_STATUSES, start_from=now, start_to=now + timedelta(hours=hours)
        )

    def late(self) -> Sequence[Reservation]:
        """Waiting reservations whose start plus tolerance has passed."""
        cutoff = now_local() - timedelta(minutes=settings.reservation_tolerance_minutes)
        return self._repo.find_in_statuses(WAITING_RESERVATION_STATUSES, start_to=cutoff)

    def due_reminders(self) -> list[Reservation]:
        now = now_local()
        window_end = now + timedelta(minutes=settings.reservation_reminder_minutes)
        return [
            r
            for r in self._repo.find_in_statuses(
                WAITING_RESERVATION_STATUSES, start_from=now, start_to=window_end
            )
            if r.reminder_sent_at is None
        ]

    def available_slots(
        self,
        table_id: int,
        day: date,
        duration_minutes: int | None = None,
    ) -> list[AvailableSlotOutput]:
        """Start times on ``day`` where ``table_id`` is free for the whole duration."""
        table = self._tables.get_table(table_id)
        duration = timedelta(minutes=duration_minutes or settings.reservation_default_duration_minutes)
        step = timedelta(minutes=settings.slot_minutes)

        day_start, day_end = day_bounds(day)
        booked = self._repo.find_in_statuses(
            (ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.IN_PROGRESS),
            start_from=day_start - timedelta(minutes=Limits.MAX_RESERVATION_MINUTES),
            start_to=day_end,
        )
        booked = [r for r in booked if r.table_id == table.id]

        slot = datetime.combine(day, time(hour=settings.opening_hour))
        closing = datetime.combine(day, time(hour=settings.closing_hour))
        now = now_local()
        slots: list[AvailableSlotOutput] = []
        while slot + duration <= closing:
            end = slot + duration
            if slot > now and not any(r.overlaps(slot, end) for r in booked):
                slots.append(AvailableSlotOutput(start_at=slot, end_at=end))
            slot += step
        return slots

    def search_availability(
        self,
        start_at: datetime,
        party_size: int,
        duration_minutes: int | None = None,
    ) -> list[Table]:
        """Tables that seat ``party_size`` and have no booking in the window, smallest first."""
        start = to_local(start_at)
        end = start + timedelta(minutes=duration_minutes or settings.reservation_default_duration_minutes)
        candidates = self._db.execute(
            select(Table)
            .where(
                Table.is_active.is_(True),
                Table.capacity >= party_size,
                Table.status != TableStatus.MAINTENANCE,
            )
            .order_by(Table.capacity, Table.number)
        ).scalars().all()
        return [t for t in candidates if not self._repo.find_overlapping(t.id, start, end)]

    def stats(self, start_date: date, end_date: date) -> ReservationStatsOutput:
        reservations = self.list_by_range(start_date, end_date)
        total = len(reservations)
        by_status = Counter(r.status.value for r in reservations)
        by_hour = Counter(r.start_at.hour for r in reservations)
        no_shows = by_status.get(ReservationStatus.NO_SHOW.value, 0)
        return ReservationStatsOutput(
            start_date=start_date,
            end_date=end_date,
            total=total,
            by_status={status.value: by_status.get(status.value, 0) for status in ReservationStatus},
            no_show_rate=round(no_shows * 100 / total, 2) if total else 0.0,
            average_party_size=round(sum(r.party_size for r in reservations) / total, 2) if total else 0.0,
            by_hour=dict(sorted(by_hour.items())),
        )

    # =========================================================================
    # Booking
    # =========================================================================

    def _check_window(
        self,
        table: Table,
        party_size: int,
        start: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> None:
        if party_size > table.capacity:
            raise ValidationError(
                f"La mesa {table.number} tiene capacidad para {table.capacity} personas",
                table_id=table.id,
                party_size=party_size,
            )
        if start <= now_local():
            raise ValidationError("La reservación debe ser para una fecha futura", field="start_at")

        end = start + timedelta(minutes=duration_minutes)
        overlapping = self._repo.find_overlapping(
            table.id, start, end, exclude_id=exclude_id,
            max_duration_minutes=Limits.MAX_RESERVATION_MINUTES,
        )
        if overlapping:
            raise ReservationConflictError(table.id, overlapping[0].id)

    def _pick_table(self, party_size: int, start: datetime, duration_minutes: int) -> Table:
        for table in self.search_availability(start, party_size, duration_minutes):
            return self._lock_or_404(self._tables.repo, table.id, "Mesa")
        raise ConflictError(
            "No hay mesas disponibles para esa fecha y cantidad de personas",
            party_size=party_size,
            start_at=start.isoformat(),
        )

    def create(self, data: ReservationCreate, user_id: int | None = None) -> Reservation:
        if self._db.get(Client, data.client_id) is None:
            raise NotFoundError("Cliente", data.client_id)

        start = to_local(data.start_at)
        duration = data.duration_minutes or settings.reservation_default_duration_minutes

        if data.table_id is not None:
            table = self._lock_or_404(self._tables.repo, data.table_id, "Mesa")
        else:
            table = self._pick_table(data.party_size, start, duration)
        self._check_window(table, data.party_size, start, duration)

        reservation = Reservation(
            table_id=table.id,
            client_id=data.client_id,
            party_size=data.party_size,
            start_at=start,
            duration_minutes=duration,
            notes=data.notes,
            status=ReservationStatus.PENDING,
        )
        reservation.set_created_by(user_id)
        self._repo.save(reservation)
        self._commit("crear reservación", entity="Reservación", table_id=table.id)

        logger.info(
            "Reservation created",
            reservation_id=reservation.id,
            table_id=table.id,
            client_id=data.client_id,
            start_at=start.isoformat(),
            party_size=data.party_size,
        )
        return reservation

    def update(self, reservation_id: int, data: ReservationUpdate, user_id: int | None = None) -> Reservation:
        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        if reservation.status not in WAITING_RESERVATION_STATUSES:
            raise InvalidStateError(
                "Reservación",
                reservation.status.value,
                expected_states=[s.value for s in WAITING_RESERVATION_STATUSES],
                reservation_id=reservation.id,
            )

        table_id = data.table_id if data.table_id is not None else reservation.table_id
        start = to_local(data.start_at) if data.start_at is not None else reservation.start_at
        party_size = data.party_size or reservation.party_size
        duration = data.duration_minutes or reservation.duration_minutes

        table = self._lock_or_404(self._tables.repo, table_id, "Mesa")
        self._check_window(table, party_size, start, duration, exclude_id=reservation.id)

        if table.id != reservation.table_id:
            previous = self._lock_or_404(self._tables.repo, reservation.table_id, "Mesa")
            self._tables.release_for_reservation(previous, reservation.id)

        reservation.table_id = table.id
        reservation.table = table
        reservation.start_at = start
        reservation.party_size = party_size
        reservation.duration_minutes = duration
        if data.notes is not None:
            reservation.notes = data.notes
        reservation.reminder_sent_at = None
        reservation.set_updated_by(user_id)
        self._commit("actualizar reservación", reservation_id=reservation_id)
        return reservation

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _transition(self, reservation: Reservation, target: ReservationStatus) -> None:
        if not can_transition(RESERVATION_TRANSITIONS, reservation.status, target):
            raise InvalidReservationStateError(reservation.id, reservation.status.value, target.value)
        logger.info(
            "Reservation status changed",
            reservation_id=reservation.id,
            from_status=reservation.status.value,
            to_status=target.value,
        )
        reservation.status = target

    def _release_held_table(self, reservation: Reservation) -> None:
        table = self._lock_or_404(self._tables.repo, reservation.table_id, "Mesa")
        self._tables.release_for_reservation(table, reservation.id)

    def confirm(self, reservation_id: int, user_id: int | None = None) -> Reservation:
        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        self._transition(reservation, ReservationStatus.CONFIRMED)
        reservation.confirmed_at = now_local()

        hold_from = reservation.start_at - timedelta(minutes=settings.reservation_hold_minutes)
        if now_local() >= hold_from:
            table = self._lock_or_404(self._tables.repo, reservation.table_id, "Mesa")
            if table.status == TableStatus.FREE:
                set_table_status(
                    table, TableStatus.RESERVED, f"Reservación {reservation.id}", reservation_id=reservation.id
                )

        reservation.set_updated_by(user_id)
        self._commit("confirmar reservación", reservation_id=reservation_id)
        return reservation

    def mark_arrived(self, reservation_id: int, user_id: int | None = None) -> Reservation:
        """The party is here: seat them at the reserved table."""
        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        self._transition(reservation, ReservationStatus.IN_PROGRESS)
        reservation.arrived_at = now_local()

        table = self._lock_or_404(self._tables.repo, reservation.table_id, "Mesa")
        self._tables.occupy_locked(table, reservation_id=reservation.id)

        reservation.set_updated_by(user_id)
        self._commit("registrar llegada", reservation_id=reservation_id)
        return reservation

    def complete(self, reservation_id: int, user_id: int | None = None) -> Reservation:
        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        self._transition(reservation, ReservationStatus.COMPLETED)
        reservation.completed_at = now_local()
        self._release_held_table(reservation)
        reservation.set_updated_by(user_id)
        self._commit("completar reservación", reservation_id=reservation_id)
        return reservation

    def cancel(self, reservation_id: int, reason: str | None, user_id: int | None = None) -> Reservation:
        if not reason or not reason.strip():
            raise ValidationError(ErrorMessages.REASON_REQUIRED, field="reason")

        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        self._transition(reservation, ReservationStatus.CANCELLED)
        reservation.cancellation_reason = reason.strip()
        self._release_held_table(reservation)
        reservation.set_updated_by(user_id)
        self._commit("cancelar reservación", reservation_id=reservation_id)
        return reservation

    def mark_no_show(self, reservation_id: int, user_id: int | None = None) -> Reservation:
        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        self._transition(reservation, ReservationStatus.NO_SHOW)
        self._release_held_table(reservation)
        reservation.set_updated_by(user_id)
        self._commit("marcar no presentada", reservation_id=reservation_id)
        return reservation

    def expire_late(self, user_id: int | None = None) -> list[int]:
        """Move every late waiting reservation to NO_SHOW. Returns their IDs."""
        expired: list[int] = []
        for late in self.late():
            reservation = self._lock_or_404(self._repo, late.id, "Reservación")
            if reservation.status not in WAITING_RESERVATION_STATUSES:
                continue
            self._transition(reservation, ReservationStatus.NO_SHOW)
            self._release_held_table(reservation)
            reservation.set_updated_by(user_id)
            expired.append(reservation.id)

        if expired:
            self._commit("expirar reservaciones", count=len(expired))
            logger.info("Late reservations expired", reservation_ids=expired)
        return expired

    def mark_reminder_sent(self, reservation_id: int) -> Reservation:
        reservation = self._lock_or_404(self._repo, reservation_id, "Reservación")
        if reservation.status not in WAITING_RESERVATION_STATUSES:
            raise InvalidStateError(
                "Reservación",
                reservation.status.value,
                expected_states=[s.value for s in WAITING_RESERVATION_STATUSES],
                reservation_id=reservation.id,
            )
        reservation.reminder_sent_at = now_local()
        self._commit("registrar recordatorio", reservation_id=reservation_id)
        return reservation
