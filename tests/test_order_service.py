"""
Tests for OrderService: order creation, stock decrement and the status pipeline.
"""

import pytest

from criollo_api.services.domain import InventoryService, OrderService
from criollo_shared.config.constants import OrderStatus, OrderType, TableStatus
from criollo_shared.utils.exceptions import (
    AlreadyInvoicedError,
    InsufficientStockError,
    InvalidOrderTransitionError,
    OrderLockedError,
    TableInvalidTransitionError,
    ValidationError,
)
from criollo_shared.utils.schemas import InvoiceCreate, OrderCreate, OrderItemInput


@pytest.fixture
def dine_in(db_session, table_by_number, product_by_name):
    """Order on table 5 with two Pollo Guisado."""
    def _create(quantity: int = 2, table_number: int = 5):
        order, _ = OrderService(db_session).create_order(
            OrderCreate(
                table_id=table_by_number(table_number).id,
                items=[OrderItemInput(product_id=product_by_name("Pollo Guisado").id, quantity=quantity)],
            )
        )
        return order
    return _create


def _advance(db_session, order, *targets):
    service = OrderService(db_session)
    for target in targets:
        service.change_status(order.id, target)


class TestCreateOrder:

    def test_dine_in_occupies_table(self, dine_in, table_by_number):
        order = dine_in()

        assert order.status == OrderStatus.PENDING
        assert order.order_number.startswith("ORD-")
        assert str(order.subtotal) == "700.00"
        assert table_by_number(5).status == TableStatus.OCCUPIED

    def test_order_numbers_are_sequential(self, dine_in):
        first = dine_in(table_number=5)
        second = dine_in(table_number=6)
        assert int(second.order_number[-4:]) == int(first.order_number[-4:]) + 1

    def test_stock_is_decremented(self, db_session, dine_in, product_by_name):
        dine_in(quantity=3)
        inventory = InventoryService(db_session).get_stock(product_by_name("Pollo Guisado").id)
        assert inventory.available == 37

    def test_insufficient_stock_rejected(self, db_session, dine_in):
        with pytest.raises(InsufficientStockError):
            dine_in(quantity=41)

    def test_low_stock_reported(self, db_session, table_by_number, product_by_name):
        product = product_by_name("Pescado Frito con Tostones")
        _, low_stock = OrderService(db_session).create_order(
            OrderCreate(
                table_id=table_by_number(5).id,
                items=[OrderItemInput(product_id=product.id, quantity=12)],
            )
        )
        assert [inv.product_id for inv in low_stock] == [product.id]

    def test_takeout_has_no_table(self, db_session, product_by_name):
        order, _ = OrderService(db_session).create_order(
            OrderCreate(
                order_type=OrderType.TAKEOUT,
                items=[OrderItemInput(product_id=product_by_name("Tostones").id, quantity=1)],
            )
        )
        assert order.table_id is None

    def test_takeout_with_table_rejected(self, db_session, table_by_number):
        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(
                OrderCreate(order_type=OrderType.TAKEOUT, table_id=table_by_number(1).id)
            )

    def test_table_in_maintenance_rejected(self, db_session, table_by_number, product_by_name):
        from criollo_api.services.domain import TableService

        table = table_by_number(5)
        TableService(db_session).mark_maintenance(table.id, "Limpieza profunda")

        with pytest.raises(TableInvalidTransitionError):
            OrderService(db_session).create_order(
                OrderCreate(
                    table_id=table.id,
                    items=[OrderItemInput(product_id=product_by_name("Tostones").id, quantity=1)],
                )
            )

    def test_table_held_for_reservation_rejected(
        self, db_session, seed_client, table_by_number, product_by_name
    ):
        from datetime import timedelta

        from criollo_api.services.domain import ReservationService
        from criollo_shared.utils.clock import now_local
        from criollo_shared.utils.schemas import ReservationCreate

        table = table_by_number(6)
        reservations = ReservationService(db_session)
        booking = reservations.create(
            ReservationCreate(
                client_id=seed_client.id,
                table_id=table.id,
                party_size=4,
                start_at=now_local() + timedelta(minutes=20),
            )
        )
        reservations.confirm(booking.id)
        assert table.status == TableStatus.RESERVED

        with pytest.raises(TableInvalidTransitionError):
            OrderService(db_session).create_order(
                OrderCreate(
                    table_id=table.id,
                    items=[OrderItemInput(product_id=product_by_name("Tostones").id, quantity=1)],
                )
            )

        reservations.mark_arrived(booking.id)
        assert table.status == TableStatus.OCCUPIED


class TestOrderPipeline:

    def test_full_pipeline(self, db_session, dine_in):
        order = dine_in()
        _advance(db_session, order, OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED)
        assert order.status == OrderStatus.DELIVERED
        assert order.delivered_at is not None

    @pytest.mark.parametrize(
        "path, target",
        [
            ((), OrderStatus.READY),
            ((), OrderStatus.DELIVERED),
            ((OrderStatus.IN_PREPARATION,), OrderStatus.DELIVERED),
            ((OrderStatus.IN_PREPARATION, OrderStatus.READY), OrderStatus.PENDING),
        ],
    )
    def test_skipping_stages_rejected(self, db_session, dine_in, path, target):
        order = dine_in()
        _advance(db_session, order, *path)

        with pytest.raises(InvalidOrderTransitionError):
            OrderService(db_session).change_status(order.id, target)

    def test_invoiced_only_through_billing(self, db_session, dine_in):
        order = dine_in()
        _advance(db_session, order, OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED)

        with pytest.raises(InvalidOrderTransitionError):
            OrderService(db_session).change_status(order.id, OrderStatus.INVOICED)

    def test_items_locked_once_ready(self, db_session, dine_in, product_by_name):
        order = dine_in()
        _advance(db_session, order, OrderStatus.IN_PREPARATION, OrderStatus.READY)

        with pytest.raises(OrderLockedError):
            OrderService(db_session).add_items(
                order.id, [OrderItemInput(product_id=product_by_name("Tostones").id, quantity=1)]
            )

    def test_add_items_while_in_preparation(self, db_session, dine_in, product_by_name):
        order = dine_in()
        _advance(db_session, order, OrderStatus.IN_PREPARATION)

        order, _ = OrderService(db_session).add_items(
            order.id, [OrderItemInput(product_id=product_by_name("Tostones").id, quantity=2)]
        )

        assert str(order.subtotal) == "1000.00"

    def test_cancel_frees_table(self, db_session, dine_in, table_by_number):
        order = dine_in()
        OrderService(db_session).cancel(order.id, "El cliente se fue")

        assert order.status == OrderStatus.CANCELLED
        assert table_by_number(5).status == TableStatus.FREE

    @pytest.mark.parametrize(
        "path",
        [
            (OrderStatus.IN_PREPARATION,),
            (OrderStatus.IN_PREPARATION, OrderStatus.READY),
            (OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED),
        ],
    )
    def test_cancel_from_any_open_stage(self, db_session, dine_in, table_by_number, path):
        order = dine_in()
        _advance(db_session, order, *path)

        OrderService(db_session).cancel(order.id, "Cocina sin gas")

        assert order.status == OrderStatus.CANCELLED
        assert table_by_number(5).status == TableStatus.FREE

    def test_cancelled_order_stays_cancelled(self, db_session, dine_in):
        order = dine_in()
        OrderService(db_session).cancel(order.id, "Pedido duplicado")

        with pytest.raises(InvalidOrderTransitionError):
            OrderService(db_session).change_status(order.id, OrderStatus.IN_PREPARATION)

    def test_cancel_requires_reason(self, db_session, dine_in):
        with pytest.raises(ValidationError):
            OrderService(db_session).cancel(dine_in().id, None)

    def test_cannot_cancel_invoiced(self, db_session, dine_in):
        from criollo_api.services.domain import BillingService

        order = dine_in()
        _advance(db_session, order, OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED)
        BillingService(db_session).generate(InvoiceCreate(order_id=order.id))

        with pytest.raises(AlreadyInvoicedError):
            OrderService(db_session).cancel(order.id, "Tarde")

    def test_invoiced_order_without_reason_reports_already_invoiced(self, db_session, dine_in):
        from criollo_api.services.domain import BillingService

        order = dine_in()
        _advance(db_session, order, OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED)
        BillingService(db_session).generate(InvoiceCreate(order_id=order.id))

        with pytest.raises(AlreadyInvoicedError):
            OrderService(db_session).cancel(order.id, None)

    def test_kitchen_queue(self, db_session, dine_in):
        first = dine_in(table_number=5)
        second = dine_in(table_number=6)
        _advance(db_session, second, OrderStatus.IN_PREPARATION, OrderStatus.READY)

        queue = OrderService(db_session).kitchen_queue()

        assert [o.id for o in queue] == [first.id]
        summary = OrderService(db_session).kitchen_summary()
        assert summary.pending == 1
        assert summary.ready == 1
