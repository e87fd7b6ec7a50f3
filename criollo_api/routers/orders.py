"""
Order endpoints: taking orders, the kitchen queue and status changes.

When an order pulls a product below its minimum stock, a low-stock alert
is queued for the administrator.
"""

from datetime import date
from typing import Sequence

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.models import Inventory
from criollo_api.services.domain import OrderService, order_to_output
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_api.services.notifications import templates
from criollo_shared.config.constants import (
    ALL_STAFF_ROLES,
    KITCHEN_ACCESS_ROLES,
    ORDER_ROLES,
    OrderStatus,
)
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import employee_id_from, require_any_role, user_id_from
from criollo_shared.utils.schemas import (
    AddItemsRequest,
    KitchenOrderOutput,
    KitchenSummaryOutput,
    OrderCreate,
    OrderOutput,
    OrderStatusChange,
    OrderTotalsOutput,
    ReasonRequest,
)

router = APIRouter(prefix="/api/Orden", tags=["orders"])

staff = require_any_role(ALL_STAFF_ROLES)
waiters = require_any_role(ORDER_ROLES)
kitchen = require_any_role(KITCHEN_ACCESS_ROLES)
pipeline = require_any_role(ORDER_ROLES, KITCHEN_ACCESS_ROLES)


def _queue_low_stock_alert(
    email_service: EmailService,
    background_tasks: BackgroundTasks,
    low_stock: Sequence[Inventory],
    reference: str,
) -> None:
    content = templates.low_stock(
        ((inv.product.name, inv.available, inv.minimum) for inv in low_stock),
        reference=reference,
    )
    email_service.queue(background_tasks, content)


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: OrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(waiters),
    email_service: EmailService = Depends(get_email_service),
) -> OrderOutput:
    """
    Place an order. Dine-in orders occupy their table; every line is checked
    for availability and stock, and stock is decremented in the same transaction.
    """
    order, low_stock = OrderService(db).create_order(body, employee_id_from(ctx), user_id_from(ctx))
    _queue_low_stock_alert(email_service, background_tasks, low_stock, order.order_number)
    return order_to_output(order, low_stock)


@router.get("/activas", response_model=list[OrderOutput])
def list_active(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[OrderOutput]:
    return [order_to_output(o) for o in OrderService(db).list_active()]


@router.get("/cocina", response_model=list[KitchenOrderOutput])
def kitchen_queue(db: Session = Depends(get_db), ctx: dict = Depends(kitchen)) -> list[KitchenOrderOutput]:
    """Pending and in-preparation orders, oldest first, with waiting time."""
    return OrderService(db).kitchen_queue()


@router.get("/cocina/resumen", response_model=KitchenSummaryOutput)
def kitchen_summary(db: Session = Depends(get_db), ctx: dict = Depends(kitchen)) -> KitchenSummaryOutput:
    return OrderService(db).kitchen_summary()


@router.get("/numero/{order_number}", response_model=OrderOutput)
def get_by_number(order_number: str, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> OrderOutput:
    return order_to_output(OrderService(db).get_by_number(order_number))


@router.get("/mesa/{table_id}", response_model=list[OrderOutput])
def list_by_table(
    table_id: int,
    only_active: bool = Query(default=False, alias="activas"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[OrderOutput]:
    return [order_to_output(o) for o in OrderService(db).list_by_table(table_id, only_active)]


@router.get("/estado/{order_status}", response_model=list[OrderOutput])
def list_by_status(
    order_status: OrderStatus,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[OrderOutput]:
    return [order_to_output(o) for o in OrderService(db).list_by_status(order_status)]


@router.get("/dia", response_model=list[OrderOutput])
def list_by_date(
    day: date = Query(alias="fecha"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[OrderOutput]:
    return [order_to_output(o) for o in OrderService(db).list_by_date(day)]


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(order_id: int, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> OrderOutput:
    return order_to_output(OrderService(db).get_order(order_id))


@router.get("/{order_id}/totales", response_model=OrderTotalsOutput)
def totals_preview(order_id: int, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> OrderTotalsOutput:
    """Subtotal, ITBIS and total before discount and tip."""
    return OrderService(db).totals_preview(order_id)


@router.post("/{order_id}/items", response_model=OrderOutput)
def add_items(
    order_id: int,
    body: AddItemsRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(waiters),
    email_service: EmailService = Depends(get_email_service),
) -> OrderOutput:
    """Only PENDING and IN_PREPARATION orders accept new lines."""
    order, low_stock = OrderService(db).add_items(order_id, body.items, user_id_from(ctx))
    _queue_low_stock_alert(email_service, background_tasks, low_stock, order.order_number)
    return order_to_output(order, low_stock)


@router.put("/{order_id}/estado", response_model=OrderOutput)
def change_status(
    order_id: int,
    body: OrderStatusChange,
    db: Session = Depends(get_db),
    ctx: dict = Depends(pipeline),
) -> OrderOutput:
    order = OrderService(db).change_status(order_id, OrderStatus(body.status), body.reason, user_id_from(ctx))
    return order_to_output(order)


@router.post("/{order_id}/preparar", response_model=OrderOutput)
def start_preparation(order_id: int, db: Session = Depends(get_db), ctx: dict = Depends(kitchen)) -> OrderOutput:
    order = OrderService(db).change_status(order_id, OrderStatus.IN_PREPARATION, user_id=user_id_from(ctx))
    return order_to_output(order)


@router.post("/{order_id}/lista", response_model=OrderOutput)
def mark_ready(order_id: int, db: Session = Depends(get_db), ctx: dict = Depends(kitchen)) -> OrderOutput:
    order = OrderService(db).change_status(order_id, OrderStatus.READY, user_id=user_id_from(ctx))
    return order_to_output(order)


@router.post("/{order_id}/entregar", response_model=OrderOutput)
def mark_delivered(order_id: int, db: Session = Depends(get_db), ctx: dict = Depends(pipeline)) -> OrderOutput:
    order = OrderService(db).change_status(order_id, OrderStatus.DELIVERED, user_id=user_id_from(ctx))
    return order_to_output(order)


@router.post("/{order_id}/cancelar", response_model=OrderOutput)
def cancel_order(
    order_id: int,
    body: ReasonRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(waiters),
) -> OrderOutput:
    return order_to_output(OrderService(db).cancel(order_id, body.reason, user_id_from(ctx)))
