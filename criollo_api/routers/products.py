"""
Product catalog endpoints: products, combos, the digital menu and the
price / availability calculators used while taking an order.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import CatalogService, combo_to_output, product_to_output
from criollo_shared.config.constants import ALL_STAFF_ROLES
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_admin, require_any_role, user_id_from
from criollo_shared.utils.admin_schemas import (
    AvailabilityCheckOutput,
    AvailabilityToggle,
    CategoryOutput,
    ComboCreate,
    ComboOutput,
    MenuCategoryOutput,
    PriceQuoteOutput,
    PriceQuoteRequest,
    ProductCreate,
    ProductOutput,
    ProductUpdate,
)
from criollo_shared.utils.exceptions import ValidationError

router = APIRouter(prefix="/api/Productos", tags=["products"])

staff = require_any_role(ALL_STAFF_ROLES)


@router.get("/menu-digital", response_model=list[MenuCategoryOutput])
def digital_menu(db: Session = Depends(get_db)) -> list[MenuCategoryOutput]:
    """Public menu grouped by category. Unavailable dishes are listed with is_available=false."""
    return CatalogService(db).menu()


@router.get("", response_model=list[ProductOutput])
def list_products(
    category_id: int | None = Query(default=None, alias="categoria"),
    only_available: bool = Query(default=False, alias="disponibles"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ProductOutput]:
    products = CatalogService(db).list_products(category_id=category_id, only_available=only_available)
    return [product_to_output(p) for p in products]


@router.get("/buscar", response_model=list[ProductOutput])
def search_products(
    q: str = Query(min_length=1, max_length=100),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ProductOutput]:
    """Match by name or description."""
    if not q.strip():
        raise ValidationError("Debe indicar un término de búsqueda", field="q")
    return [product_to_output(p) for p in CatalogService(db).list_products(search=q)]


@router.get("/categoria/{category_id}", response_model=list[ProductOutput])
def list_by_category(
    category_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ProductOutput]:
    service = CatalogService(db)
    service.get_category(category_id)
    return [product_to_output(p) for p in service.list_products(category_id=category_id)]


@router.get("/categorias", response_model=list[CategoryOutput])
def list_categories(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[CategoryOutput]:
    return CatalogService(db).list_categories()


# =============================================================================
# Combos
# =============================================================================


@router.get("/combos", response_model=list[ComboOutput])
def list_combos(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[ComboOutput]:
    return [combo_to_output(c) for c in CatalogService(db).list_combos()]


@router.get("/combos/{combo_id}", response_model=ComboOutput)
def get_combo(combo_id: int, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> ComboOutput:
    return combo_to_output(CatalogService(db).get_combo(combo_id))


@router.post("/combos", response_model=ComboOutput, status_code=status.HTTP_201_CREATED)
def create_combo(
    body: ComboCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> ComboOutput:
    return combo_to_output(CatalogService(db).create_combo(body, user_id_from(ctx)))


# =============================================================================
# Calculators
# =============================================================================


@router.post("/calcular-precio", response_model=PriceQuoteOutput)
def quote(body: PriceQuoteRequest, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> PriceQuoteOutput:
    """Subtotal, ITBIS and total for a prospective list of items. Nothing is stored."""
    return CatalogService(db).quote(body.items)


@router.post("/verificar-disponibilidad", response_model=AvailabilityCheckOutput)
def check_availability(
    body: PriceQuoteRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> AvailabilityCheckOutput:
    return CatalogService(db).check_availability(body.items)


# =============================================================================
# Products
# =============================================================================


@router.post("", response_model=ProductOutput, status_code=status.HTTP_201_CREATED)
def create_product(
    body: ProductCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> ProductOutput:
    """Create a product. With track_stock, an inventory record starts at initial_stock."""
    return product_to_output(CatalogService(db).create_product(body, user_id_from(ctx)))


@router.get("/{product_id}", response_model=ProductOutput)
def get_product(product_id: int, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> ProductOutput:
    return product_to_output(CatalogService(db).get_product(product_id))


@router.put("/{product_id}", response_model=ProductOutput)
def update_product(
    product_id: int,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> ProductOutput:
    return product_to_output(CatalogService(db).update_product(product_id, body, user_id_from(ctx)))


@router.patch("/{product_id}/disponibilidad", response_model=ProductOutput)
def set_availability(
    product_id: int,
    body: AvailabilityToggle,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> ProductOutput:
    product = CatalogService(db).set_availability(product_id, body.is_available, user_id_from(ctx))
    return product_to_output(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, db: Session = Depends(get_db), ctx: dict = Depends(require_admin)) -> None:
    CatalogService(db).delete_product(product_id, user_id_from(ctx))
