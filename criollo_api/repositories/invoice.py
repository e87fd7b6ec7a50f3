"""
Invoice Repository - Data access for invoices.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, func, select
from sqlalchemy.orm import joinedload

from criollo_api.models import Invoice, Order
from criollo_shared.config.constants import InvoiceStatus

from .base import BaseRepository, RepositoryFilters


@dataclass
class InvoiceFilters(RepositoryFilters):
    status: InvoiceStatus | None = None
    client_id: int | None = None
    issued_from: datetime | None = None
    issued_to: datetime | None = None


class InvoiceRepository(BaseRepository[Invoice]):

    model = Invoice

    def _base_query(self) -> Select:
        return (
            select(Invoice)
            .options(joinedload(Invoice.order).joinedload(Order.table))
            .options(joinedload(Invoice.client))
            .order_by(Invoice.issued_at.desc(), Invoice.id.desc())
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, InvoiceFilters):
            return query
        if filters.status:
            query = query.where(Invoice.status == filters.status)
        if filters.client_id:
            query = query.where(Invoice.client_id == filters.client_id)
        if filters.issued_from:
            query = query.where(Invoice.issued_at >= filters.issued_from)
        if filters.issued_to:
            query = query.where(Invoice.issued_at < filters.issued_to)
        return query

    def find_by_number(self, invoice_number: str) -> Invoice | None:
        return self._db.scalar(self._base_query().where(Invoice.invoice_number == invoice_number))

    def find_by_order(self, order_id: int) -> Invoice | None:
        return self._db.scalar(self._base_query().where(Invoice.order_id == order_id))

    def last_number_with_prefix(self, prefix: str) -> str | None:
        return self._db.scalar(
            select(func.max(Invoice.invoice_number)).where(Invoice.invoice_number.like(f"{prefix}%"))
        )
