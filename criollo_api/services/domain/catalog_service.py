"""
Catalog Service: categories, products, combos and the digital menu.

Products are created together with their inventory row (unless stock is
not tracked for them). Deletions are soft.
"""

from __future__ import annotations

from itertools import groupby
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from criollo_api.models import Category, Combo, ComboProduct, Product
from criollo_api.repositories import ProductFilters, ProductRepository
from criollo_shared.config.logging import get_logger
from criollo_shared.config.settings import settings
from criollo_shared.utils.admin_schemas import (
    AvailabilityCheckOutput,
    CategoryCreate,
    CategoryOutput,
    CategoryUpdate,
    ComboCreate,
    ComboItemOutput,
    ComboOutput,
    MenuCategoryOutput,
    PriceQuoteLine,
    PriceQuoteOutput,
    ProductCreate,
    ProductOutput,
    ProductUpdate,
)
from criollo_shared.utils.exceptions import DuplicateEntityError, NotFoundError, ValidationError
from criollo_shared.utils.money import money
from criollo_shared.utils.schemas import OrderItemInput

from ..base_service import BaseService
from ..billing import InvoiceLine, compute_invoice_totals, line_subtotal
from .inventory_service import InventoryService

logger = get_logger(__name__)


def product_to_output(product: Product) -> ProductOutput:
    inventory = product.inventory
    return ProductOutput(
        id=product.id,
        name=product.name,
        description=product.description,
        category_id=product.category_id,
        category_name=product.category.name if product.category else None,
        price=product.price,
        cost=product.cost,
        preparation_minutes=product.preparation_minutes,
        image_url=product.image_url,
        is_available=product.is_available,
        stock=inventory.available if inventory else None,
        minimum_stock=inventory.minimum if inventory else None,
        low_stock=inventory.is_low if inventory else False,
    )


def combo_to_output(combo: Combo) -> ComboOutput:
    return ComboOutput(
        id=combo.id,
        name=combo.name,
        description=combo.description,
        price=combo.price,
        discount=combo.discount,
        final_price=combo.final_price,
        is_available=combo.is_available,
        items=[
            ComboItemOutput(product_id=i.product_id, product_name=i.product.name, quantity=i.quantity)
            for i in combo.items
        ],
    )


class CatalogService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self._products = ProductRepository(db)
        self._inventory = InventoryService(db)

    # =========================================================================
    # Categories
    # =========================================================================

    def _category_output(self, category: Category) -> CategoryOutput:
        count = self._db.scalar(
            select(func.count(Product.id)).where(
                Product.category_id == category.id, Product.is_active.is_(True)
            )
        ) or 0
        return CategoryOutput(
            id=category.id,
            name=category.name,
            description=category.description,
            is_active=category.is_active,
            product_count=count,
        )

    def list_categories(self) -> list[CategoryOutput]:
        categories = self._db.execute(
            select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
        ).scalars().all()
        return [self._category_output(c) for c in categories]

    def _get_category(self, category_id: int) -> Category:
        category = self._db.get(Category, category_id)
        if category is None or not category.is_active:
            raise NotFoundError("Categoría", category_id)
        return category

    def get_category(self, category_id: int) -> CategoryOutput:
        return self._category_output(self._get_category(category_id))

    def _ensure_category_name_free(self, name: str, exclude_id: int | None = None) -> None:
        query = select(Category.id).where(func.lower(Category.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if self._db.scalar(query) is not None:
            raise DuplicateEntityError("Categoría", name)

    def create_category(self, data: CategoryCreate, user_id: int | None = None) -> CategoryOutput:
        self._ensure_category_name_free(data.name)
        category = Category(name=data.name.strip(), description=data.description)
        category.set_created_by(user_id)
        self._db.add(category)
        self._commit("crear categoría", entity="Categoría")
        return self._category_output(category)

    def update_category(self, category_id: int, data: CategoryUpdate, user_id: int | None = None) -> CategoryOutput:
        category = self._get_category(category_id)
        if data.name is not None:
            self._ensure_category_name_free(data.name, exclude_id=category.id)
            category.name = data.name.strip()
        if data.description is not None:
            category.description = data.description
        category.set_updated_by(user_id)
        self._commit("actualizar categoría", entity="Categoría", category_id=category_id)
        return self._category_output(category)

    def delete_category(self, category_id: int, user_id: int | None = None) -> None:
        category = self._get_category(category_id)
        if self._category_output(category).product_count:
            raise ValidationError(
                "No se puede eliminar una categoría con productos activos", category_id=category_id
            )
        category.soft_delete(user_id)
        self._commit("eliminar categoría", category_id=category_id)

    # =========================================================================
    # Products
    # =========================================================================

    def list_products(
        self,
        category_id: int | None = None,
        only_available: bool = False,
        search: str | None = None,
    ) -> Sequence[Product]:
        return self._products.find_all(
            ProductFilters(
                category_id=category_id, only_available=only_available, search=search, limit=200
            )
        )

    def get_product(self, product_id: int) -> Product:
        return self._get_or_404(self._products, product_id, "Producto")

    def menu(self) -> list[MenuCategoryOutput]:
        """Active products grouped by category, with their current availability."""
        products = self._products.find_menu()
        return [
            MenuCategoryOutput(
                category_id=category_id,
                category_name=group[0].category.name,
                products=[product_to_output(p) for p in group],
            )
            for category_id, group in (
                (key, list(items)) for key, items in groupby(products, key=lambda p: p.category_id)
            )
        ]

    def create_product(self, data: ProductCreate, user_id: int | None = None) -> Product:
        self._get_category(data.category_id)
        name = data.name.strip()
        existing = self._db.scalar(
            select(Product.id).where(func.lower(Product.name) == name.lower(), Product.is_active.is_(True))
        )
        if existing is not None:
            raise DuplicateEntityError("Producto", name)

        product = Product(
            name=name,
            description=data.description,
            category_id=data.category_id,
            price=money(data.price),
            cost=money(data.cost) if data.cost is not None else None,
            preparation_minutes=data.preparation_minutes,
            image_url=data.image_url,
            is_available=data.is_available,
        )
        product.set_created_by(user_id)
        self._products.save(product)

        if data.track_stock:
            minimum = data.minimum_stock if data.minimum_stock is not None else settings.default_minimum_stock
            self._inventory.create_for_product(product, data.initial_stock, minimum, user_id)

        self._commit("crear producto", entity="Producto")
        logger.info("Product created", product_id=product.id, name=product.name, price=str(product.price))
        return self.get_product(product.id)

    def update_product(self, product_id: int, data: ProductUpdate, user_id: int | None = None) -> Product:
        product = self.get_product(product_id)
        if data.category_id is not None:
            self._get_category(data.category_id)
            product.category_id = data.category_id
        if data.name is not None:
            product.name = data.name.strip()
        if data.description is not None:
            product.description = data.description
        if data.price is not None:
            product.price = money(data.price)
        if data.cost is not None:
            product.cost = money(data.cost)
        if data.preparation_minutes is not None:
            product.preparation_minutes = data.preparation_minutes
        if data.image_url is not None:
            product.image_url = data.image_url
        product.set_updated_by(user_id)
        self._commit("actualizar producto", product_id=product_id)
        return self.get_product(product_id)

    def set_availability(self, product_id: int, is_available: bool, user_id: int | None = None) -> Product:
        product = self.get_product(product_id)
        product.is_available = is_available
        product.set_updated_by(user_id)
        self._commit("cambiar disponibilidad", product_id=product_id)
        logger.info("Product availability changed", product_id=product_id, is_available=is_available)
        return product

    def delete_product(self, product_id: int, user_id: int | None = None) -> None:
        product = self.get_product(product_id)
        product.soft_delete(user_id)
        self._commit("eliminar producto", product_id=product_id)

    # =========================================================================
    # Combos
    # =========================================================================

    def _combo_query(self):
        return select(Combo).options(selectinload(Combo.items).joinedload(ComboProduct.product))

    def list_combos(self) -> Sequence[Combo]:
        return self._db.execute(
            self._combo_query().where(Combo.is_active.is_(True)).order_by(Combo.name)
        ).scalars().all()

    def get_combo(self, combo_id: int) -> Combo:
        combo = self._db.scalar(self._combo_query().where(Combo.id == combo_id))
        if combo is None or not combo.is_active:
            raise NotFoundError("Combo", combo_id)
        return combo

    def create_combo(self, data: ComboCreate, user_id: int | None = None) -> Combo:
        if self._db.scalar(select(Combo.id).where(Combo.name == data.name.strip())) is not None:
            raise DuplicateEntityError("Combo", data.name)

        product_ids = [item.product_id for item in data.items]
        if len(set(product_ids)) != len(product_ids):
            raise ValidationError("Un producto no puede repetirse dentro del combo")
        found = {p.id for p in self._products.find_by_ids(product_ids)}
        missing = [pid for pid in product_ids if pid not in found]
        if missing:
            raise NotFoundError("Producto", missing[0])

        combo = Combo(
            name=data.name.strip(),
            description=data.description,
            price=money(data.price),
            discount=money(data.discount),
            items=[ComboProduct(product_id=i.product_id, quantity=i.quantity) for i in data.items],
        )
        combo.set_created_by(user_id)
        self._db.add(combo)
        self._commit("crear combo", entity="Combo")
        return self.get_combo(combo.id)

    # =========================================================================
    # Quotes and availability
    # =========================================================================

    def _resolve_line(self, item: OrderItemInput) -> tuple[str, object, Product | None]:
        if item.product_id is not None:
            product = self.get_product(item.product_id)
            return product.name, product.price, product
        combo = self.get_combo(item.combo_id)
        return combo.name, combo.final_price, None

    def quote(self, items: Sequence[OrderItemInput]) -> PriceQuoteOutput:
        """Price a prospective list of items without placing an order."""
        lines: list[PriceQuoteLine] = []
        for item in items:
            name, unit_price, _ = self._resolve_line(item)
            lines.append(
                PriceQuoteLine(
                    name=name,
                    quantity=item.quantity,
                    unit_price=money(unit_price),
                    discount=money(item.discount),
                    subtotal=line_subtotal(item.quantity, unit_price, item.discount),
                )
            )
        totals = compute_invoice_totals(
            InvoiceLine(line.quantity, line.unit_price, line.discount) for line in lines
        )
        return PriceQuoteOutput(lines=lines, subtotal=totals.subtotal, tax=totals.tax, total=totals.total)

    def check_availability(self, items: Sequence[OrderItemInput]) -> AvailabilityCheckOutput:
        unavailable: list[str] = []
        insufficient: list[str] = []
        low: list[str] = []
        for item in items:
            if item.combo_id is not None:
                combo = self.get_combo(item.combo_id)
                if not combo.is_available:
                    unavailable.append(combo.name)
                continue

            product = self.get_product(item.product_id)
            if not product.is_available:
                unavailable.append(product.name)
                continue
            inventory = product.inventory
            if inventory is None:
                continue
            if inventory.available < item.quantity:
                insufficient.append(product.name)
            elif inventory.available - item.quantity < inventory.minimum:
                low.append(product.name)

        return AvailabilityCheckOutput(
            available=not unavailable and not insufficient,
            unavailable=unavailable,
            insufficient_stock=insufficient,
            low_stock=low,
        )
