"""
Inventory endpoints: stock levels, manual movements and minimum thresholds.
"""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.models import Inventory, InventoryMovement
from criollo_api.services.domain import InventoryService
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_api.services.notifications import templates
from criollo_shared.config.constants import ALL_STAFF_ROLES, INVENTORY_ROLES, MovementType
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_any_role, user_id_from
from criollo_shared.utils.admin_schemas import (
    InventoryOutput,
    MinimumStockUpdate,
    MovementCreate,
    MovementOutput,
)
from criollo_shared.utils.clock import day_bounds
from criollo_shared.utils.exceptions import ValidationError

router = APIRouter(prefix="/api/Inventario", tags=["inventory"])

staff = require_any_role(ALL_STAFF_ROLES)
stock_keepers = require_any_role(INVENTORY_ROLES)


def _inventory_output(inventory: Inventory) -> InventoryOutput:
    product = inventory.product
    return InventoryOutput(
        product_id=inventory.product_id,
        product_name=product.name,
        category_name=product.category.name if product.category else None,
        available=inventory.available,
        minimum=inventory.minimum,
        unit=inventory.unit,
        is_low=inventory.is_low,
        last_restocked_at=inventory.last_restocked_at,
    )


def _movement_output(movement: InventoryMovement) -> MovementOutput:
    return MovementOutput(
        id=movement.id,
        product_id=movement.product_id,
        product_name=movement.product.name if movement.product else None,
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        stock_before=movement.stock_before,
        stock_after=movement.stock_after,
        reference=movement.reference,
        reason=movement.reason,
        user_id=movement.user_id,
        created_at=movement.created_at,
    )


@router.get("", response_model=list[InventoryOutput])
def list_stock(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[InventoryOutput]:
    return [_inventory_output(i) for i in InventoryService(db).list_stock()]


@router.get("/stock-bajo", response_model=list[InventoryOutput])
def low_stock(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[InventoryOutput]:
    """Products below their minimum."""
    return [_inventory_output(i) for i in InventoryService(db).low_stock()]


@router.get("/agotados", response_model=list[InventoryOutput])
def out_of_stock(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[InventoryOutput]:
    return [_inventory_output(i) for i in InventoryService(db).list_stock() if i.available == 0]


@router.get("/producto/{product_id}", response_model=InventoryOutput)
def get_stock(product_id: int, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> InventoryOutput:
    return _inventory_output(InventoryService(db).get_stock(product_id))


@router.put("/producto/{product_id}/stock-minimo", response_model=InventoryOutput)
def update_minimum(
    product_id: int,
    body: MinimumStockUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(stock_keepers),
) -> InventoryOutput:
    return _inventory_output(InventoryService(db).update_minimum(product_id, body.minimum, user_id_from(ctx)))


@router.post("/movimientos", response_model=MovementOutput, status_code=status.HTTP_201_CREATED)
def register_movement(
    body: MovementCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(stock_keepers),
    email_service: EmailService = Depends(get_email_service),
) -> MovementOutput:
    """
    ENTRY adds stock, EXIT removes it (never below zero) and ADJUSTMENT
    replaces the count with ``quantity``.
    """
    service = InventoryService(db)
    movement = service.register_movement(
        body.product_id,
        body.movement_type,
        body.quantity,
        reason=body.reason,
        reference=body.reference,
        user_id=user_id_from(ctx),
    )
    if movement.movement_type != MovementType.ENTRY:
        inventory = service.get_stock(body.product_id)
        if inventory.is_low:
            content = templates.low_stock(
                [(inventory.product.name, inventory.available, inventory.minimum)],
                reference=body.reference,
            )
            email_service.queue(background_tasks, content)
    return _movement_output(movement)


@router.get("/movimientos", response_model=list[MovementOutput])
def list_movements(
    product_id: int | None = Query(default=None, alias="producto"),
    start_date: date | None = Query(default=None, alias="desde"),
    end_date: date | None = Query(default=None, alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(stock_keepers),
) -> list[MovementOutput]:
    start = day_bounds(start_date)[0] if start_date else None
    end = day_bounds(end_date)[1] if end_date else None
    if start and end and end <= start:
        raise ValidationError("La fecha final debe ser posterior a la inicial", field="hasta")
    movements = InventoryService(db).movements(product_id=product_id, start=start, end=end)
    return [_movement_output(m) for m in movements]
