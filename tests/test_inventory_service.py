"""
Tests for InventoryService: manual movements and low-stock detection.
"""

import pytest

from criollo_api.services.domain import InventoryService
from criollo_shared.config.constants import MovementType
from criollo_shared.utils.exceptions import InsufficientStockError, NotFoundError, ValidationError


class TestMovements:

    def test_entry_adds_stock(self, db_session, product_by_name):
        product = product_by_name("Tostones")
        movement = InventoryService(db_session).register_movement(
            product.id, MovementType.ENTRY, 10, reason="Compra semanal", reference="OC-001"
        )

        assert movement.stock_before == 60
        assert movement.stock_after == 70
        assert product.inventory.available == 70
        assert product.inventory.last_restocked_at is not None

    def test_exit_never_goes_negative(self, db_session, product_by_name):
        product = product_by_name("Chivo Guisado")
        with pytest.raises(InsufficientStockError):
            InventoryService(db_session).register_movement(product.id, MovementType.EXIT, 21)

    def test_adjustment_sets_counted_stock(self, db_session, product_by_name):
        product = product_by_name("Chivo Guisado")
        movement = InventoryService(db_session).register_movement(
            product.id, MovementType.ADJUSTMENT, 4, reason="Conteo físico"
        )

        assert movement.stock_after == 4
        assert product.inventory.is_low

    def test_zero_entry_rejected(self, db_session, product_by_name):
        with pytest.raises(ValidationError):
            InventoryService(db_session).register_movement(
                product_by_name("Tostones").id, MovementType.ENTRY, 0
            )

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            InventoryService(db_session).register_movement(99999, MovementType.ENTRY, 1)

    def test_movement_history_is_recorded(self, db_session, product_by_name):
        product = product_by_name("Tostones")
        service = InventoryService(db_session)
        service.register_movement(product.id, MovementType.ENTRY, 5)
        service.register_movement(product.id, MovementType.EXIT, 2)

        history = service.movements(product_id=product.id)

        assert {m.movement_type for m in history} == {MovementType.ENTRY, MovementType.EXIT}


class TestLowStock:

    def test_no_low_stock_after_seed(self, db_session):
        assert InventoryService(db_session).low_stock() == []

    def test_raising_minimum_flags_product(self, db_session, product_by_name):
        product = product_by_name("Habichuelas con Dulce")
        service = InventoryService(db_session)

        service.update_minimum(product.id, 25)

        assert [inv.product_id for inv in service.low_stock()] == [product.id]
