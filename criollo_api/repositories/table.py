"""
Table Repository - Data access for dining tables.
"""

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import Select, func, select

from criollo_api.models import Order, Table
from criollo_shared.config.constants import ACTIVE_ORDER_STATUSES, TableStatus

from .base import BaseRepository, RepositoryFilters


@dataclass
class TableFilters(RepositoryFilters):
    status: TableStatus | None = None
    min_capacity: int | None = None


class TableRepository(BaseRepository[Table]):

    model = Table

    def _base_query(self) -> Select:
        return select(Table).order_by(Table.number)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, TableFilters):
            return query
        if filters.status:
            query = query.where(Table.status == filters.status)
        if filters.min_capacity:
            query = query.where(Table.capacity >= filters.min_capacity)
        return query

    def find_by_number(self, number: int) -> Table | None:
        return self._db.scalar(select(Table).where(Table.number == number))

    def find_available(self, party_size: int | None = None) -> Sequence[Table]:
        """Free tables, smallest first so parties don't take oversized tables."""
        query = select(Table).where(Table.is_active.is_(True), Table.status == TableStatus.FREE)
        if party_size:
            query = query.where(Table.capacity >= party_size)
        query = query.order_by(Table.capacity, Table.number)
        return self._db.execute(query).scalars().all()

    def count_active_orders(self, table_id: int) -> int:
        query = select(func.count(Order.id)).where(
            Order.table_id == table_id,
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
        return self._db.scalar(query) or 0

    def find_active_orders(self, table_id: int) -> Sequence[Order]:
        query = (
            select(Order)
            .where(Order.table_id == table_id, Order.status.in_(ACTIVE_ORDER_STATUSES))
            .order_by(Order.created_at)
        )
        return self._db.execute(query).scalars().unique().all()

    def count_by_status(self) -> dict[TableStatus, int]:
        rows = self._db.execute(
            select(Table.status, func.count(Table.id))
            .where(Table.is_active.is_(True))
            .group_by(Table.status)
        ).all()
        counts = {status: 0 for status in TableStatus}
        for status, total in rows:
            counts[status] = total
        return counts
