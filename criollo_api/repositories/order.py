"""
Order Repository - Data access for orders.
Eager loading of items prevents N+1 queries when totals are computed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.orm import joinedload, selectinload

from criollo_api.models import Order, OrderItem
from criollo_shared.config.constants import ACTIVE_ORDER_STATUSES, OrderStatus

from .base import BaseRepository, RepositoryFilters


@dataclass
class OrderFilters(RepositoryFilters):
    status: OrderStatus | None = None
    statuses: list[OrderStatus] | None = None
    table_id: int | None = None
    client_id: int | None = None
    employee_id: int | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


class OrderRepository(BaseRepository[Order]):
    """
    Repository for Order entities.

    Guarantees eager loading of:
    - items -> product / combo
    - table, client, employee
    """

    model = Order

    def _base_query(self) -> Select:
        return (
            select(Order)
            .options(selectinload(Order.items).joinedload(OrderItem.product))
            .options(selectinload(Order.items).joinedload(OrderItem.combo))
            .options(joinedload(Order.table))
            .options(joinedload(Order.client))
            .options(joinedload(Order.employee))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, OrderFilters):
            return query

        if filters.status:
            query = query.where(Order.status == filters.status)
        elif filters.statuses:
            query = query.where(Order.status.in_(filters.statuses))

        if filters.table_id:
            query = query.where(Order.table_id == filters.table_id)
        if filters.client_id:
            query = query.where(Order.client_id == filters.client_id)
        if filters.employee_id:
            query = query.where(Order.employee_id == filters.employee_id)
        if filters.created_from:
            query = query.where(Order.created_at >= filters.created_from)
        if filters.created_to:
            query = query.where(Order.created_at < filters.created_to)

        return query

    def find_by_number(self, order_number: str) -> Order | None:
        return self._db.scalar(self._base_query().where(Order.order_number == order_number))

    def find_active(self) -> Sequence[Order]:
        return self.find_all(OrderFilters(statuses=list(ACTIVE_ORDER_STATUSES), limit=200))

    def find_kitchen_queue(self, statuses: Sequence[OrderStatus]) -> Sequence[Order]:
        """Oldest first, the order the kitchen works in."""
        query = (
            select(Order)
            .options(selectinload(Order.items).joinedload(OrderItem.product))
            .options(selectinload(Order.items).joinedload(OrderItem.combo))
            .options(joinedload(Order.table))
            .where(Order.status.in_(statuses), Order.is_active.is_(True))
            .order_by(Order.created_at, Order.id)
        )
        return self._db.execute(query).scalars().unique().all()

    def last_number_with_prefix(self, prefix: str) -> str | None:
        return self._db.scalar(
            select(func.max(Order.order_number)).where(Order.order_number.like(f"{prefix}%"))
        )

    def count_by_status(self) -> dict[OrderStatus, int]:
        rows = self._db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        ).all()
        counts = {status: 0 for status in OrderStatus}
        for status, total in rows:
            counts[status] = total
        return counts
