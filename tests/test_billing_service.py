"""
Tests for BillingService: invoice generation, payment and voiding.
"""

from decimal import Decimal

import pytest

from criollo_api.services.domain import BillingService, OrderService
from criollo_shared.config.constants import InvoiceStatus, OrderStatus, PaymentMethod, TableStatus
from criollo_shared.utils.exceptions import (
    AlreadyInvoicedError,
    InvalidOrderTransitionError,
    InvoiceLockedError,
    ValidationError,
)
from criollo_shared.utils.schemas import InvoiceCreate, OrderCreate, OrderItemInput


@pytest.fixture
def delivered_order(db_session, table_by_number, product_by_name):
    """Two Pollo Guisado on table 5, carried through to DELIVERED."""
    service = OrderService(db_session)
    order, _ = service.create_order(
        OrderCreate(
            table_id=table_by_number(5).id,
            items=[OrderItemInput(product_id=product_by_name("Pollo Guisado").id, quantity=2)],
        )
    )
    for target in (OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED):
        service.change_status(order.id, target)
    return order


class TestGenerateInvoice:

    def test_totals_with_tip_percentage(self, db_session, delivered_order, table_by_number):
        invoice = BillingService(db_session).generate(
            InvoiceCreate(order_id=delivered_order.id, tip_percentage=Decimal("10"))
        )

        assert invoice.subtotal == Decimal("700.00")
        assert invoice.tax == Decimal("126.00")
        assert invoice.tip == Decimal("70.00")
        assert invoice.total == Decimal("896.00")
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.invoice_number.startswith("FACT-")
        assert delivered_order.status == OrderStatus.INVOICED
        assert table_by_number(5).status == TableStatus.FREE

    def test_discount_and_fixed_tip(self, db_session, delivered_order):
        invoice = BillingService(db_session).generate(
            InvoiceCreate(order_id=delivered_order.id, discount=Decimal("100.00"), tip=Decimal("50.00"))
        )
        assert invoice.tax == Decimal("108.00")
        assert invoice.total == Decimal("758.00")

    def test_second_invoice_rejected(self, db_session, delivered_order):
        service = BillingService(db_session)
        service.generate(InvoiceCreate(order_id=delivered_order.id))

        with pytest.raises(AlreadyInvoicedError):
            service.generate(InvoiceCreate(order_id=delivered_order.id))

    def test_order_must_be_delivered(self, db_session, table_by_number, product_by_name):
        order, _ = OrderService(db_session).create_order(
            OrderCreate(
                table_id=table_by_number(3).id,
                items=[OrderItemInput(product_id=product_by_name("Tostones").id, quantity=1)],
            )
        )
        with pytest.raises(InvalidOrderTransitionError):
            BillingService(db_session).generate(InvoiceCreate(order_id=order.id))

    def test_discount_over_subtotal_leaves_order_untouched(self, db_session, delivered_order, table_by_number):
        with pytest.raises(ValidationError):
            BillingService(db_session).generate(
                InvoiceCreate(order_id=delivered_order.id, discount=Decimal("800.00"))
            )
        db_session.rollback()
        db_session.refresh(delivered_order)

        assert delivered_order.status == OrderStatus.DELIVERED
        assert table_by_number(5).status == TableStatus.OCCUPIED


class TestPaymentLifecycle:

    def test_pending_then_paid(self, db_session, delivered_order):
        service = BillingService(db_session)
        invoice = service.generate(InvoiceCreate(order_id=delivered_order.id, mark_paid=False))
        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.paid_at is None

        service.mark_paid(invoice.id, payment_method=PaymentMethod.CARD)

        assert invoice.status == InvoiceStatus.PAID
        assert invoice.payment_method == PaymentMethod.CARD
        assert invoice.paid_at is not None

    def test_paid_invoice_cannot_be_cancelled(self, db_session, delivered_order):
        service = BillingService(db_session)
        invoice = service.generate(InvoiceCreate(order_id=delivered_order.id))

        with pytest.raises(InvoiceLockedError):
            service.cancel(invoice.id, "Error de cobro")

    def test_cancel_pending_keeps_order_invoiced(self, db_session, delivered_order):
        service = BillingService(db_session)
        invoice = service.generate(InvoiceCreate(order_id=delivered_order.id, mark_paid=False))

        service.cancel(invoice.id, "Cliente disputa el cobro")

        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.cancellation_reason == "Cliente disputa el cobro"
        assert delivered_order.status == OrderStatus.INVOICED

    def test_daily_summary_counts_paid_only(self, db_session, delivered_order, table_by_number, product_by_name):
        service = BillingService(db_session)
        service.generate(InvoiceCreate(order_id=delivered_order.id, payment_method=PaymentMethod.CASH))

        orders = OrderService(db_session)
        other, _ = orders.create_order(
            OrderCreate(
                table_id=table_by_number(6).id,
                items=[OrderItemInput(product_id=product_by_name("Tostones").id, quantity=2)],
            )
        )
        for target in (OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED):
            orders.change_status(other.id, target)
        service.generate(InvoiceCreate(order_id=other.id, mark_paid=False))

        summary = service.daily_summary()

        assert summary.invoice_count == 2
        assert summary.paid_count == 1
        assert summary.pending_count == 1
        assert summary.total == Decimal("826.00")
        assert summary.by_payment_method["CASH"] == Decimal("826.00")
