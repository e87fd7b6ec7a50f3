"""
Product Repository - Data access for the menu catalog.
"""

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import joinedload

from criollo_api.models import Category, Product
from criollo_shared.utils.validators import escape_like_pattern

from .base import BaseRepository, RepositoryFilters


@dataclass
class ProductFilters(RepositoryFilters):
    category_id: int | None = None
    only_available: bool = False


class ProductRepository(BaseRepository[Product]):

    model = Product

    def _base_query(self) -> Select:
        return (
            select(Product)
            .options(joinedload(Product.category))
            .options(joinedload(Product.inventory))
            .order_by(Product.name)
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if isinstance(filters, ProductFilters):
            if filters.category_id:
                query = query.where(Product.category_id == filters.category_id)
            if filters.only_available:
                query = query.where(Product.is_available.is_(True))
        if filters.search:
            pattern = f"%{escape_like_pattern(filters.search)}%"
            query = query.where(
                or_(
                    Product.name.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                )
            )
        return query

    def find_menu(self) -> Sequence[Product]:
        """Active products of active categories, grouped by category name."""
        query = (
            select(Product)
            .join(Category, Product.category_id == Category.id)
            .options(joinedload(Product.category))
            .options(joinedload(Product.inventory))
            .where(Product.is_active.is_(True), Category.is_active.is_(True))
            .order_by(Category.name, Product.name)
        )
        return self._db.execute(query).scalars().unique().all()
