"""
Billing Domain Service.

One invoice per order. Generating the invoice freezes the amounts, moves the
order to INVOICED and releases its table inside the same transaction, so a
failure at any step leaves order, table and invoice untouched.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Sequence

from sqlalchemy.orm import Session

from criollo_api.models import Client, Invoice, Order
from criollo_api.repositories import InvoiceFilters, InvoiceRepository, OrderRepository
from criollo_shared.config.constants import (
    ErrorMessages,
    INVOICE_TRANSITIONS,
    InvoiceStatus,
    OrderStatus,
    PaymentMethod,
    can_transition,
)
from criollo_shared.config.logging import billing_logger as logger
from criollo_shared.config.settings import settings
from criollo_shared.utils.clock import day_bounds, now_local, today_local
from criollo_shared.utils.exceptions import (
    AlreadyInvoicedError,
    InvalidOrderTransitionError,
    InvoiceLockedError,
    NotFoundError,
    ValidationError,
)
from criollo_shared.utils.money import ZERO, money
from criollo_shared.utils.schemas import BillingSummaryOutput, InvoiceCreate, InvoiceOutput

from ..base_service import BaseService
from ..billing import InvoiceLine, compute_invoice_totals, next_sequence_number
from .order_service import OrderService
from .table_service import TableService


def invoice_to_output(invoice: Invoice) -> InvoiceOutput:
    order = invoice.order
    return InvoiceOutput(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        order_id=invoice.order_id,
        order_number=order.order_number if order else None,
        table_number=order.table.number if order and order.table else None,
        client_id=invoice.client_id,
        client_name=invoice.client.full_name if invoice.client else None,
        employee_id=invoice.employee_id,
        subtotal=invoice.subtotal,
        discount=invoice.discount,
        tax=invoice.tax,
        tip=invoice.tip,
        total=invoice.total,
        payment_method=invoice.payment_method,
        status=invoice.status,
        issued_at=invoice.issued_at,
        paid_at=invoice.paid_at,
        cancelled_at=invoice.cancelled_at,
        cancellation_reason=invoice.cancellation_reason,
        payment_notes=invoice.payment_notes,
    )


class BillingService(BaseService):
    """Invoice generation, payment and daily billing figures."""

    def __init__(self, db: Session):
        super().__init__(db)
        self._repo = InvoiceRepository(db)
        self._orders = OrderRepository(db)
        self._order_service = OrderService(db)
        self._tables = TableService(db)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_invoice(self, invoice_id: int) -> Invoice:
        return self._get_or_404(self._repo, invoice_id, "Factura")

    def get_by_number(self, invoice_number: str) -> Invoice:
        invoice = self._repo.find_by_number(invoice_number)
        if invoice is None:
            raise NotFoundError("Factura", invoice_number)
        return invoice

    def get_by_order(self, order_id: int) -> Invoice:
        invoice = self._repo.find_by_order(order_id)
        if invoice is None:
            raise NotFoundError("Factura de la orden", order_id)
        return invoice

    def list_by_date(self, day: date) -> Sequence[Invoice]:
        start, end = day_bounds(day)
        return self._repo.find_all(InvoiceFilters(issued_from=start, issued_to=end, limit=200))

    def list_by_range(self, start_date: date, end_date: date) -> Sequence[Invoice]:
        if end_date < start_date:
            raise ValidationError("La fecha final debe ser posterior a la inicial", field="end_date")
        start, _ = day_bounds(start_date)
        _, end = day_bounds(end_date)
        return self._repo.find_all(InvoiceFilters(issued_from=start, issued_to=end, limit=200))

    def list_pending(self) -> Sequence[Invoice]:
        return self._repo.find_all(InvoiceFilters(status=InvoiceStatus.PENDING, limit=200))

    def daily_summary(self, day: date | None = None) -> BillingSummaryOutput:
        day = day or today_local()
        invoices = self.list_by_date(day)
        paid = [i for i in invoices if i.status == InvoiceStatus.PAID]

        by_method: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for invoice in paid:
            by_method[invoice.payment_method.value] += invoice.total

        total = money(sum((i.total for i in paid), ZERO))
        return BillingSummaryOutput(
            date=day,
            invoice_count=len(invoices),
            paid_count=len(paid),
            pending_count=sum(1 for i in invoices if i.status == InvoiceStatus.PENDING),
            cancelled_count=sum(1 for i in invoices if i.status == InvoiceStatus.CANCELLED),
            subtotal=money(sum((i.subtotal for i in paid), ZERO)),
            discounts=money(sum((i.discount for i in paid), ZERO)),
            tax=money(sum((i.tax for i in paid), ZERO)),
            tips=money(sum((i.tip for i in paid), ZERO)),
            total=total,
            average_ticket=money(total / len(paid)) if paid else ZERO,
            by_payment_method={method.value: money(by_method[method.value]) for method in PaymentMethod},
        )

    # =========================================================================
    # Generation
    # =========================================================================

    def _next_invoice_number(self) -> str:
        today = today_local()
        last = self._repo.last_number_with_prefix(f"FACT-{today:%Y%m%d}-")
        return next_sequence_number("FACT", today, last)

    def generate(
        self,
        data: InvoiceCreate,
        employee_id: int | None = None,
        user_id: int | None = None,
    ) -> Invoice:
        """
        Bill a delivered order.

        Raises:
            AlreadyInvoicedError: The order is already INVOICED.
            InvalidOrderTransitionError: The order is not DELIVERED.
            ValidationError: Discount larger than the subtotal, or an order without items.
        """
        order: Order = self._lock_or_404(self._orders, data.order_id, "Orden")
        if order.status == OrderStatus.INVOICED or self._repo.find_by_order(order.id) is not None:
            raise AlreadyInvoicedError(order.id)
        if order.status != OrderStatus.DELIVERED:
            raise InvalidOrderTransitionError(order.id, order.status.value, OrderStatus.INVOICED.value)
        if not order.items:
            raise ValidationError("La orden no tiene productos", order_id=order.id)

        client_id = data.client_id if data.client_id is not None else order.client_id
        if client_id is not None and self._db.get(Client, client_id) is None:
            raise NotFoundError("Cliente", client_id)

        try:
            totals = compute_invoice_totals(
                (InvoiceLine(item.quantity, item.unit_price, item.discount) for item in order.items),
                discount=data.discount,
                tip=data.tip,
                tip_percentage=data.tip_percentage,
                rate=settings.itbis_rate,
            )
        except ValueError as e:
            raise ValidationError(str(e), order_id=order.id)

        now = now_local()
        invoice = Invoice(
            invoice_number=self._next_invoice_number(),
            order_id=order.id,
            client_id=client_id,
            employee_id=employee_id,
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            tip=totals.tip,
            total=totals.total,
            payment_method=data.payment_method,
            status=InvoiceStatus.PAID if data.mark_paid else InvoiceStatus.PENDING,
            issued_at=now,
            paid_at=now if data.mark_paid else None,
            payment_notes=data.payment_notes,
        )
        invoice.set_created_by(user_id)
        invoice.order = order
        self._repo.save(invoice)

        self._order_service.transition_locked(order, OrderStatus.INVOICED)
        order.set_updated_by(user_id)

        if order.table_id is not None:
            table = self._lock_or_404(self._tables.repo, order.table_id, "Mesa")
            self._tables.release_if_idle(table)

        self._commit("generar factura", entity="Factura", order_id=order.id)

        logger.info(
            "Invoice generated",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            order_id=order.id,
            subtotal=str(totals.subtotal),
            tax=str(totals.tax),
            tip=str(totals.tip),
            total=str(totals.total),
            status=invoice.status.value,
        )
        return invoice

    # =========================================================================
    # Payment lifecycle
    # =========================================================================

    def _transition(self, invoice: Invoice, target: InvoiceStatus) -> None:
        if not can_transition(INVOICE_TRANSITIONS, invoice.status, target):
            raise InvoiceLockedError(invoice.id, invoice.status.value)
        invoice.status = target

    def mark_paid(
        self,
        invoice_id: int,
        payment_method: PaymentMethod | None = None,
        payment_notes: str | None = None,
        user_id: int | None = None,
    ) -> Invoice:
        invoice = self._lock_or_404(self._repo, invoice_id, "Factura")
        self._transition(invoice, InvoiceStatus.PAID)
        invoice.paid_at = now_local()
        if payment_method is not None:
            invoice.payment_method = payment_method
        if payment_notes is not None:
            invoice.payment_notes = payment_notes
        invoice.set_updated_by(user_id)
        self._commit("registrar pago", invoice_id=invoice_id)
        logger.info(
            "Invoice paid",
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            payment_method=invoice.payment_method.value,
        )
        return invoice

    def cancel(self, invoice_id: int, reason: str | None, user_id: int | None = None) -> Invoice:
        """Void a PENDING invoice. The order stays INVOICED."""
        if not reason or not reason.strip():
            raise ValidationError(ErrorMessages.REASON_REQUIRED, field="reason")
        invoice = self._lock_or_404(self._repo, invoice_id, "Factura")
        self._transition(invoice, InvoiceStatus.CANCELLED)
        invoice.cancelled_at = now_local()
        invoice.cancellation_reason = reason.strip()
        invoice.set_updated_by(user_id)
        self._commit("anular factura", invoice_id=invoice_id)
        logger.warning("Invoice cancelled", invoice_id=invoice.id, reason=invoice.cancellation_reason)
        return invoice
