"""
Inventory Service.

Stock is a plain counter per product. Every change writes an
InventoryMovement with the stock before and after it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from criollo_api.models import Inventory, InventoryMovement, Product
from criollo_shared.config.constants import MovementType
from criollo_shared.config.logging import inventory_logger as logger
from criollo_shared.utils.clock import now_local
from criollo_shared.utils.exceptions import InsufficientStockError, NotFoundError, ValidationError

from ..base_service import BaseService


class InventoryService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    # =========================================================================
    # Queries
    # =========================================================================

    def list_stock(self) -> Sequence[Inventory]:
        return self._db.execute(
            select(Inventory)
            .join(Product, Inventory.product_id == Product.id)
            .options(joinedload(Inventory.product).joinedload(Product.category))
            .where(Product.is_active.is_(True))
            .order_by(Product.name)
        ).scalars().unique().all()

    def get_stock(self, product_id: int) -> Inventory:
        inventory = self._db.scalar(
            select(Inventory)
            .options(joinedload(Inventory.product))
            .where(Inventory.product_id == product_id)
        )
        if inventory is None:
            raise NotFoundError("Inventario del producto", product_id)
        return inventory

    def low_stock(self) -> list[Inventory]:
        return [inv for inv in self.list_stock() if inv.is_low]

    def movements(
        self,
        product_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 200,
    ) -> Sequence[InventoryMovement]:
        query = select(InventoryMovement).order_by(
            InventoryMovement.created_at.desc(), InventoryMovement.id.desc()
        )
        if product_id is not None:
            query = query.where(InventoryMovement.product_id == product_id)
        if start is not None:
            query = query.where(InventoryMovement.created_at >= start)
        if end is not None:
            query = query.where(InventoryMovement.created_at < end)
        return self._db.execute(query.limit(limit)).scalars().unique().all()

    # =========================================================================
    # Mutations (non-committing)
    # =========================================================================

    def _lock_inventory(self, product_id: int) -> Inventory | None:
        return self._db.scalar(
            select(Inventory)
            .where(Inventory.product_id == product_id)
            .with_for_update(of=Inventory)
            .execution_options(populate_existing=True)
        )

    def _record(
        self,
        inventory: Inventory,
        movement_type: MovementType,
        quantity: int,
        new_stock: int,
        reference: str | None,
        reason: str | None,
        user_id: int | None,
    ) -> InventoryMovement:
        movement = InventoryMovement(
            product_id=inventory.product_id,
            movement_type=movement_type,
            quantity=quantity,
            stock_before=inventory.available,
            stock_after=new_stock,
            reference=reference,
            reason=reason,
            user_id=user_id,
        )
        inventory.available = new_stock
        self._db.add(movement)
        return movement

    def ensure_available(self, product: Product, quantity: int) -> None:
        """Reject a line that asks for more than the stock on hand."""
        inventory = product.inventory
        if inventory is not None and inventory.available < quantity:
            raise InsufficientStockError(product.name, inventory.available, quantity)

    def decrement_for_order(
        self,
        product: Product,
        quantity: int,
        reference: str,
        user_id: int | None = None,
    ) -> bool:
        """
        Take ``quantity`` units of ``product`` out of stock for an order line.

        Products without an inventory row are not stock-tracked.

        Returns:
            True when the remaining stock is below the product's minimum.
        """
        inventory = self._lock_inventory(product.id)
        if inventory is None:
            logger.debug("Product not stock-tracked", product_id=product.id)
            return False
        if inventory.available < quantity:
            raise InsufficientStockError(product.name, inventory.available, quantity)

        self._record(
            inventory,
            MovementType.EXIT,
            quantity,
            inventory.available - quantity,
            reference,
            "Consumo por orden",
            user_id,
        )
        if inventory.is_low:
            logger.warning(
                "Low stock",
                product_id=product.id,
                product=product.name,
                available=inventory.available,
                minimum=inventory.minimum,
            )
            return True
        return False

    def create_for_product(self, product: Product, initial_stock: int, minimum: int, user_id: int | None = None) -> Inventory:
        inventory = Inventory(product_id=product.id, available=0, minimum=minimum)
        self._db.add(inventory)
        if initial_stock:
            self._record(
                inventory,
                MovementType.ENTRY,
                initial_stock,
                initial_stock,
                None,
                "Stock inicial",
                user_id,
            )
            inventory.last_restocked_at = now_local()
        return inventory

    # =========================================================================
    # Mutations (public)
    # =========================================================================

    def register_movement(
        self,
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        reason: str | None = None,
        reference: str | None = None,
        user_id: int | None = None,
    ) -> InventoryMovement:
        """
        Manual stock movement.

        ENTRY adds, EXIT subtracts (never below zero) and ADJUSTMENT sets the
        counted stock.
        """
        if quantity < 0 or (quantity == 0 and movement_type != MovementType.ADJUSTMENT):
            raise ValidationError("La cantidad debe ser mayor que cero", field="quantity")

        inventory = self._lock_inventory(product_id)
        if inventory is None:
            raise NotFoundError("Inventario del producto", product_id)

        if movement_type == MovementType.ENTRY:
            new_stock = inventory.available + quantity
            inventory.last_restocked_at = now_local()
        elif movement_type == MovementType.EXIT:
            if quantity > inventory.available:
                raise InsufficientStockError(
                    inventory.product.name, inventory.available, quantity
                )
            new_stock = inventory.available - quantity
        else:
            new_stock = quantity

        movement = self._record(
            inventory, movement_type, quantity, new_stock, reference, reason, user_id
        )
        inventory.set_updated_by(user_id)
        self._commit("registrar movimiento de inventario", product_id=product_id)
        logger.info(
            "Inventory movement registered",
            product_id=product_id,
            movement_type=movement_type.value,
            quantity=quantity,
            stock_after=new_stock,
        )
        return movement

    def update_minimum(self, product_id: int, minimum: int, user_id: int | None = None) -> Inventory:
        if minimum < 0:
            raise ValidationError("El stock mínimo no puede ser negativo", field="minimum")
        inventory = self._lock_inventory(product_id)
        if inventory is None:
            raise NotFoundError("Inventario del producto", product_id)
        inventory.minimum = minimum
        inventory.set_updated_by(user_id)
        self._commit("actualizar stock mínimo", product_id=product_id)
        return inventory
