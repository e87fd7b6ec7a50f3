"""
Order Domain Service.

Order lifecycle: PENDING -> IN_PREPARATION -> READY -> DELIVERED -> INVOICED,
CANCELLED from any state but INVOICED. Items can only be added while the
order is PENDING or IN_PREPARATION; every product line takes its units out
of stock in the same transaction.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from sqlalchemy.orm import Session

from criollo_api.models import Client, Combo, Inventory, Order, OrderItem, Product, Table
from criollo_api.repositories import OrderFilters, OrderRepository
from criollo_shared.config.constants import (
    EDITABLE_ORDER_STATUSES,
    ErrorMessages,
    KITCHEN_ORDER_STATUSES,
    ORDER_TRANSITIONS,
    OrderStatus,
    OrderType,
    TableStatus,
    can_transition,
)
from criollo_shared.config.logging import order_logger as logger
from criollo_shared.config.settings import settings
from criollo_shared.utils.clock import day_bounds, now_local, today_local
from criollo_shared.utils.exceptions import (
    AlreadyInvoicedError,
    InvalidOrderTransitionError,
    NotFoundError,
    OrderLockedError,
    TableInvalidTransitionError,
    ValidationError,
)
from criollo_shared.utils.money import money
from criollo_shared.utils.schemas import (
    KitchenOrderOutput,
    KitchenSummaryOutput,
    OrderCreate,
    OrderItemInput,
    OrderItemOutput,
    OrderOutput,
    OrderTotalsOutput,
)

from ..base_service import BaseService
from ..billing import InvoiceLine, compute_invoice_totals, next_sequence_number
from .inventory_service import InventoryService
from .table_service import TableService


def order_to_output(order: Order, low_stock: Sequence[Inventory] = ()) -> OrderOutput:
    return OrderOutput(
        id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        status=order.status,
        table_id=order.table_id,
        table_number=order.table.number if order.table else None,
        client_id=order.client_id,
        client_name=order.client.full_name if order.client else None,
        employee_id=order.employee_id,
        employee_name=order.employee.full_name if order.employee else None,
        notes=order.notes,
        cancellation_reason=order.cancellation_reason,
        items=[OrderItemOutput.model_validate(item) for item in order.items],
        subtotal=order.subtotal,
        created_at=order.created_at,
        updated_at=order.updated_at,
        low_stock_products=[inv.product.name for inv in low_stock],
    )


class OrderService(BaseService):
    """Domain service for orders and their line items."""

    def __init__(self, db: Session):
        super().__init__(db)
        self._repo = OrderRepository(db)
        self._tables = TableService(db)
        self._inventory = InventoryService(db)

    @property
    def repo(self) -> OrderRepository:
        return self._repo

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: int) -> Order:
        return self._get_or_404(self._repo, order_id, "Orden")

    def get_by_number(self, order_number: str) -> Order:
        order = self._repo.find_by_number(order_number)
        if order is None:
            raise NotFoundError("Orden", order_number)
        return order

    def list_active(self) -> Sequence[Order]:
        return self._repo.find_active()

    def list_by_status(self, status: OrderStatus) -> Sequence[Order]:
        return self._repo.find_all(OrderFilters(status=status, limit=200))

    def list_by_table(self, table_id: int, only_active: bool = False) -> Sequence[Order]:
        self._tables.get_table(table_id)
        if only_active:
            return self._tables.repo.find_active_orders(table_id)
        return self._repo.find_all(OrderFilters(table_id=table_id, limit=200))

    def list_by_date(self, day: date) -> Sequence[Order]:
        start, end = day_bounds(day)
        return self._repo.find_all(OrderFilters(created_from=start, created_to=end, limit=200))

    def kitchen_queue(self) -> list[KitchenOrderOutput]:
        now = now_local()
        delay = settings.kitchen_delay_minutes
        queue = []
        for order in self._repo.find_kitchen_queue(KITCHEN_ORDER_STATUSES):
            waiting = int((now - order.created_at).total_seconds() // 60)
            queue.append(
                KitchenOrderOutput(
                    id=order.id,
                    order_number=order.order_number,
                    order_type=order.order_type,
                    status=order.status,
                    table_number=order.table.number if order.table else None,
                    notes=order.notes,
                    items=[OrderItemOutput.model_validate(item) for item in order.items],
                    created_at=order.created_at,
                    waiting_minutes=waiting,
                    is_delayed=waiting > delay,
                )
            )
        return queue

    def kitchen_summary(self) -> KitchenSummaryOutput:
        counts = self._repo.count_by_status()
        queue = self.kitchen_queue()
        return KitchenSummaryOutput(
            pending=counts[OrderStatus.PENDING],
            in_preparation=counts[OrderStatus.IN_PREPARATION],
            ready=counts[OrderStatus.READY],
            delayed=sum(1 for o in queue if o.is_delayed),
        )

    def totals_preview(self, order_id: int) -> OrderTotalsOutput:
        """Subtotal, ITBIS and total before discount and tip."""
        order = self.get_order(order_id)
        totals = compute_invoice_totals(
            InvoiceLine(item.quantity, item.unit_price, item.discount) for item in order.items
        )
        return OrderTotalsOutput(
            order_id=order.id,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            item_count=sum(item.quantity for item in order.items),
        )

    # =========================================================================
    # Creation and items
    # =========================================================================

    def _next_order_number(self) -> str:
        today = today_local()
        last = self._repo.last_number_with_prefix(f"ORD-{today:%Y%m%d}-")
        return next_sequence_number("ORD", today, last)

    def _resolve_table(self, data: OrderCreate) -> Table | None:
        if data.order_type != OrderType.DINE_IN:
            if data.table_id is not None:
                raise ValidationError(
                    "Solo las órdenes para comer en el local pueden tener mesa", field="table_id"
                )
            return None

        table = self._lock_or_404(self._tables.repo, data.table_id, "Mesa")
        if table.status == TableStatus.MAINTENANCE:
            raise TableInvalidTransitionError(table.id, table.status.value, TableStatus.OCCUPIED.value)
        if table.status != TableStatus.OCCUPIED:
            self._tables.occupy_locked(table)
        return table

    def _build_item(self, data: OrderItemInput) -> tuple[OrderItem, Product | None]:
        if data.product_id is not None:
            product = self._db.get(Product, data.product_id)
            if product is None or not product.is_active:
                raise NotFoundError("Producto", data.product_id)
            if not product.is_available:
                raise ValidationError(f"El producto '{product.name}' no está disponible", product_id=product.id)
            self._inventory.ensure_available(product, data.quantity)
            unit_price = money(product.price)
            item = OrderItem(product_id=product.id, product=product)
        else:
            combo = self._db.get(Combo, data.combo_id)
            if combo is None or not combo.is_active:
                raise NotFoundError("Combo", data.combo_id)
            if not combo.is_available:
                raise ValidationError(f"El combo '{combo.name}' no está disponible", combo_id=combo.id)
            product = None
            unit_price = combo.final_price
            item = OrderItem(combo_id=combo.id, combo=combo)

        discount = money(data.discount)
        if discount > unit_price * data.quantity:
            raise ValidationError("El descuento de la línea excede su importe", field="discount")

        item.quantity = data.quantity
        item.unit_price = unit_price
        item.discount = discount
        item.notes = data.notes
        return item, product

    def _append_items(
        self,
        order: Order,
        items: Sequence[OrderItemInput],
        user_id: int | None,
    ) -> list[Inventory]:
        """Attach lines to ``order`` and take product units out of stock."""
        low_stock: list[Inventory] = []
        for data in items:
            item, product = self._build_item(data)
            order.items.append(item)
            if product is not None and self._inventory.decrement_for_order(
                product, item.quantity, order.order_number, user_id
            ):
                low_stock.append(product.inventory)
        return low_stock

    def create_order(
        self,
        data: OrderCreate,
        employee_id: int | None = None,
        user_id: int | None = None,
    ) -> tuple[Order, list[Inventory]]:
        """
        Place an order. Dine-in orders occupy a FREE table or join an OCCUPIED one.

        Returns:
            (order, inventories that fell below their minimum)
        """
        if data.client_id is not None and self._db.get(Client, data.client_id) is None:
            raise NotFoundError("Cliente", data.client_id)

        table = self._resolve_table(data)
        order = Order(
            order_number=self._next_order_number(),
            order_type=data.order_type,
            table_id=table.id if table else None,
            client_id=data.client_id,
            employee_id=employee_id,
            status=OrderStatus.PENDING,
            notes=data.notes,
            status_changed_at=now_local(),
        )
        order.set_created_by(user_id)
        self._repo.save(order)

        low_stock = self._append_items(order, data.items, user_id)
        self._commit("crear orden", entity="Orden", order_number=order.order_number)

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            order_type=order.order_type.value,
            table_id=order.table_id,
            items=len(order.items),
            subtotal=str(order.subtotal),
        )
        return order, low_stock

    def add_items(
        self,
        order_id: int,
        items: Sequence[OrderItemInput],
        user_id: int | None = None,
    ) -> tuple[Order, list[Inventory]]:
        order = self._lock_or_404(self._repo, order_id, "Orden")
        if order.status not in EDITABLE_ORDER_STATUSES:
            raise OrderLockedError(order.id, order.status.value)

        low_stock = self._append_items(order, items, user_id)
        order.set_updated_by(user_id)
        self._commit("agregar productos a la orden", order_id=order_id)

        logger.info(
            "Items added to order",
            order_id=order.id,
            added=len(items),
            subtotal=str(order.subtotal),
        )
        return order, low_stock

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def transition_locked(self, order: Order, target: OrderStatus) -> None:
        """Single guarded dispatch for order status changes (no commit)."""
        if not can_transition(ORDER_TRANSITIONS, order.status, target):
            raise InvalidOrderTransitionError(order.id, order.status.value, target.value)

        previous = order.status
        now = now_local()
        order.status = target
        order.status_changed_at = now
        if target == OrderStatus.DELIVERED:
            order.delivered_at = now
        logger.info(
            "Order status changed",
            order_id=order.id,
            order_number=order.order_number,
            from_status=previous.value,
            to_status=target.value,
        )

    def change_status(
        self,
        order_id: int,
        target: OrderStatus,
        reason: str | None = None,
        user_id: int | None = None,
    ) -> Order:
        """
        Move the order one stage forward or cancel it.

        INVOICED is only reachable by generating the invoice.
        """
        if target == OrderStatus.CANCELLED:
            return self.cancel(order_id, reason, user_id)

        order = self._lock_or_404(self._repo, order_id, "Orden")
        if target == OrderStatus.INVOICED:
            raise InvalidOrderTransitionError(
                order.id, order.status.value, target.value, hint="generate the invoice instead"
            )
        if order.status == OrderStatus.PENDING and not order.items:
            raise ValidationError("La orden no tiene productos", order_id=order.id)

        self.transition_locked(order, target)
        order.set_updated_by(user_id)
        self._commit("cambiar estado de la orden", order_id=order_id)
        return order

    def cancel(self, order_id: int, reason: str | None, user_id: int | None = None) -> Order:
        """Cancel with a mandatory reason and free the table when nothing else holds it."""
        order = self._lock_or_404(self._repo, order_id, "Orden")
        if order.status == OrderStatus.INVOICED:
            raise AlreadyInvoicedError(order.id)
        if not reason or not reason.strip():
            raise ValidationError(ErrorMessages.REASON_REQUIRED, field="reason")

        self.transition_locked(order, OrderStatus.CANCELLED)
        order.cancellation_reason = reason.strip()
        order.set_updated_by(user_id)

        if order.table_id is not None:
            table = self._lock_or_404(self._tables.repo, order.table_id, "Mesa")
            self._tables.release_if_idle(table)

        self._commit("cancelar orden", order_id=order_id)
        return order
