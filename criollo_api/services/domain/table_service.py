"""
Table Service.

Owns the table state machine. Every transition goes through
``set_table_status``, which consults TABLE_TRANSITIONS; public methods lock
the row, apply the change and commit once. Other services (orders,
reservations, billing) call the non-committing helpers so the table change
lands in their own transaction.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from criollo_api.models import Order, Table
from criollo_api.repositories import TableFilters, TableRepository
from criollo_shared.config.constants import (
    ErrorMessages,
    OrderStatus,
    TABLE_TRANSITIONS,
    TableStatus,
    can_transition,
)
from criollo_shared.config.logging import table_logger as logger
from criollo_shared.config.settings import settings
from criollo_shared.utils.clock import now_local
from criollo_shared.utils.exceptions import (
    DuplicateEntityError,
    HasPendingOrdersError,
    TableInvalidTransitionError,
    ValidationError,
)
from criollo_shared.utils.schemas import (
    TableAttentionOutput,
    TableAvailabilityOutput,
    TableCreate,
    TableStatsOutput,
    TableUpdate,
)

from ..base_service import BaseService


def set_table_status(
    table: Table,
    target: TableStatus,
    reason: str | None = None,
    reservation_id: int | None = None,
) -> None:
    """
    Single guarded dispatch for every table status change. ``reservation_id``
    records the reservation that owns the new state; any other change clears it.
    """
    current = table.status
    if not can_transition(TABLE_TRANSITIONS, current, target):
        raise TableInvalidTransitionError(table.id, current.value, target.value)

    now = now_local()
    if current == TableStatus.MAINTENANCE:
        table.last_cleaned_at = now
    table.status = target
    table.status_reason = reason
    table.held_by_reservation_id = reservation_id
    table.status_changed_at = now
    logger.info(
        "Table status changed",
        table_id=table.id,
        number=table.number,
        from_status=current.value,
        to_status=target.value,
    )


class TableService(BaseService):
    """Table management and state machine."""

    def __init__(self, db: Session):
        super().__init__(db)
        self._repo = TableRepository(db)

    @property
    def repo(self) -> TableRepository:
        return self._repo

    # =========================================================================
    # Queries
    # =========================================================================

    def list_tables(self, status: TableStatus | None = None) -> Sequence[Table]:
        return self._repo.find_all(TableFilters(status=status, limit=200))

    def get_table(self, table_id: int) -> Table:
        return self._get_or_404(self._repo, table_id, "Mesa")

    def list_available(self, party_size: int | None = None) -> Sequence[Table]:
        return self._repo.find_available(party_size)

    def find_best_table(self, party_size: int) -> Table | None:
        """Smallest free table that seats the party."""
        tables = self._repo.find_available(party_size)
        return tables[0] if tables else None

    def check_availability(self, table_id: int) -> TableAvailabilityOutput:
        table = self.get_table(table_id)
        active = self._repo.count_active_orders(table.id)
        return TableAvailabilityOutput(
            table_id=table.id,
            number=table.number,
            available=table.status == TableStatus.FREE and active == 0,
            status=table.status,
            active_orders=active,
        )

    def active_orders(self, table_id: int) -> Sequence[Order]:
        table = self.get_table(table_id)
        return self._repo.find_active_orders(table.id)

    def stats(self) -> TableStatsOutput:
        counts = self._repo.count_by_status()
        tables = self._repo.find_all(TableFilters(limit=200))
        total = sum(counts.values())
        occupied = counts[TableStatus.OCCUPIED]
        return TableStatsOutput(
            total=total,
            free=counts[TableStatus.FREE],
            occupied=occupied,
            reserved=counts[TableStatus.RESERVED],
            maintenance=counts[TableStatus.MAINTENANCE],
            occupancy_percentage=round(occupied * 100 / total, 2) if total else 0.0,
            total_capacity=sum(t.capacity for t in tables),
            free_capacity=sum(t.capacity for t in tables if t.status == TableStatus.FREE),
        )

    def tables_needing_attention(self) -> list[TableAttentionOutput]:
        """
        Occupied tables that have been seated longer than the configured
        limit or have a ready order waiting to be served.
        """
        now = now_local()
        limit = timedelta(minutes=settings.table_attention_minutes)
        result: list[TableAttentionOutput] = []

        for table in self._repo.find_all(TableFilters(status=TableStatus.OCCUPIED, limit=200)):
            changed = table.status_changed_at or table.created_at
            minutes = int((now - changed).total_seconds() // 60)
            orders = self._repo.find_active_orders(table.id)
            last_order = orders[-1].order_number if orders else None

            if any(o.status == OrderStatus.READY for o in orders):
                reason = "Orden lista para servir"
            elif now - changed > limit:
                reason = f"Ocupada por más de {settings.table_attention_minutes} minutos"
            else:
                continue

            result.append(
                TableAttentionOutput(
                    table_id=table.id,
                    number=table.number,
                    status=table.status,
                    minutes_in_status=minutes,
                    reason=reason,
                    last_order_number=last_order,
                )
            )
        return result

    # =========================================================================
    # Administration
    # =========================================================================

    def create_table(self, data: TableCreate, user_id: int | None = None) -> Table:
        if self._repo.find_by_number(data.number):
            raise DuplicateEntityError("Mesa", str(data.number))

        table = Table(
            number=data.number,
            capacity=data.capacity,
            location=data.location,
            status=TableStatus.FREE,
            status_changed_at=now_local(),
        )
        table.set_created_by(user_id)
        self._repo.save(table)
        self._commit("crear mesa", entity="Mesa", number=data.number)
        logger.info("Table created", table_id=table.id, number=table.number, capacity=table.capacity)
        return table

    def update_table(self, table_id: int, data: TableUpdate, user_id: int | None = None) -> Table:
        table = self._lock_or_404(self._repo, table_id, "Mesa")
        if data.capacity is not None:
            table.capacity = data.capacity
        if data.location is not None:
            table.location = data.location
        table.set_updated_by(user_id)
        self._commit("actualizar mesa", table_id=table_id)
        return table

    # =========================================================================
    # State machine (non-committing helpers)
    # =========================================================================

    def guard_no_active_orders(self, table: Table) -> None:
        pending = self._repo.count_active_orders(table.id)
        if pending:
            raise HasPendingOrdersError(table.id, pending)

    def occupy_locked(self, table: Table, reservation_id: int | None = None) -> None:
        """
        FREE -> OCCUPIED. The party of ``reservation_id`` may also take a
        RESERVED table, unless the hold belongs to another reservation.
        """
        seatable = table.status == TableStatus.FREE or (
            reservation_id is not None
            and table.status == TableStatus.RESERVED
            and table.held_by_reservation_id in (None, reservation_id)
        )
        if not seatable:
            raise TableInvalidTransitionError(table.id, table.status.value, TableStatus.OCCUPIED.value)
        set_table_status(table, TableStatus.OCCUPIED, reservation_id=reservation_id)

    def release_locked(self, table: Table) -> None:
        """Any state -> FREE when no active order holds the table."""
        self.guard_no_active_orders(table)
        if table.status == TableStatus.FREE:
            return
        set_table_status(table, TableStatus.FREE)

    def release_if_idle(self, table: Table | None) -> bool:
        """
        Free an occupied or reserved table once its last active order is gone.
        Flushes first so pending status changes of orders are counted.
        """
        if table is None or table.status not in (TableStatus.OCCUPIED, TableStatus.RESERVED):
            return False
        self._db.flush()
        if self._repo.count_active_orders(table.id):
            return False
        set_table_status(table, TableStatus.FREE)
        return True

    def release_for_reservation(self, table: Table, reservation_id: int) -> bool:
        """Free ``table`` only when its current state was set for ``reservation_id``."""
        if table.held_by_reservation_id != reservation_id:
            return False
        return self.release_if_idle(table)

    # =========================================================================
    # State machine (public, one transaction each)
    # =========================================================================

    def occupy(self, table_id: int, user_id: int | None = None) -> Table:
        table = self._lock_or_404(self._repo, table_id, "Mesa")
        self.occupy_locked(table)
        table.set_updated_by(user_id)
        self._commit("ocupar mesa", table_id=table_id)
        return table

    def release(self, table_id: int, user_id: int | None = None) -> Table:
        table = self._lock_or_404(self._repo, table_id, "Mesa")
        self.release_locked(table)
        table.set_updated_by(user_id)
        self._commit("liberar mesa", table_id=table_id)
        return table

    def reserve(self, table_id: int, user_id: int | None = None, reason: str | None = None) -> Table:
        table = self._lock_or_404(self._repo, table_id, "Mesa")
        if table.status != TableStatus.FREE:
            raise TableInvalidTransitionError(table.id, table.status.value, TableStatus.RESERVED.value)
        set_table_status(table, TableStatus.RESERVED, reason)
        table.set_updated_by(user_id)
        self._commit("reservar mesa", table_id=table_id)
        return table

    def mark_maintenance(self, table_id: int, reason: str | None, user_id: int | None = None) -> Table:
        if not reason or not reason.strip():
            raise ValidationError(ErrorMessages.REASON_REQUIRED, field="reason")
        table = self._lock_or_404(self._repo, table_id, "Mesa")
        self.guard_no_active_orders(table)
        set_table_status(table, TableStatus.MAINTENANCE, reason.strip())
        table.set_updated_by(user_id)
        self._commit("mantenimiento de mesa", table_id=table_id)
        return table

    def complete_maintenance(self, table_id: int, user_id: int | None = None) -> Table:
        table = self._lock_or_404(self._repo, table_id, "Mesa")
        if table.status != TableStatus.MAINTENANCE:
            raise TableInvalidTransitionError(table.id, table.status.value, TableStatus.FREE.value)
        set_table_status(table, TableStatus.FREE)
        table.set_updated_by(user_id)
        self._commit("finalizar mantenimiento", table_id=table_id)
        return table

    def change_status(
        self,
        table_id: int,
        target: TableStatus,
        reason: str | None = None,
        user_id: int | None = None,
    ) -> Table:
        """Manual status change, dispatched to the guarded operation for ``target``."""
        if target == TableStatus.OCCUPIED:
            return self.occupy(table_id, user_id)
        if target == TableStatus.RESERVED:
            return self.reserve(table_id, user_id, reason)
        if target == TableStatus.MAINTENANCE:
            return self.mark_maintenance(table_id, reason, user_id)

        table = self.get_table(table_id)
        if table.status == TableStatus.MAINTENANCE:
            return self.complete_maintenance(table_id, user_id)
        return self.release(table_id, user_id)

    def reset_all(self, user_id: int | None = None) -> tuple[list[int], list[int]]:
        """
        Return every table without active orders to FREE.

        Returns:
            (reset table numbers, skipped table numbers)
        """
        reset: list[int] = []
        skipped: list[int] = []
        tables = self._db.execute(
            select(Table)
            .where(Table.is_active.is_(True))
            .order_by(Table.number)
            .with_for_update()
        ).scalars().all()

        for table in tables:
            if table.status == TableStatus.FREE:
                continue
            if self._repo.count_active_orders(table.id):
                skipped.append(table.number)
                continue
            set_table_status(table, TableStatus.FREE, "Reinicio general")
            table.set_updated_by(user_id)
            reset.append(table.number)

        self._commit("reiniciar mesas")
        logger.info("Tables reset", reset=reset, skipped=skipped)
        return reset, skipped
