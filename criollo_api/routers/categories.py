"""
Category management endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import CatalogService
from criollo_shared.config.constants import ALL_STAFF_ROLES
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_admin, require_any_role, user_id_from
from criollo_shared.utils.admin_schemas import CategoryCreate, CategoryOutput, CategoryUpdate

router = APIRouter(prefix="/api/Categorias", tags=["categories"])


@router.get("", response_model=list[CategoryOutput])
def list_categories(
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_any_role(ALL_STAFF_ROLES)),
) -> list[CategoryOutput]:
    return CatalogService(db).list_categories()


@router.get("/{category_id}", response_model=CategoryOutput)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_any_role(ALL_STAFF_ROLES)),
) -> CategoryOutput:
    return CatalogService(db).get_category(category_id)


@router.post("", response_model=CategoryOutput, status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> CategoryOutput:
    """Create a new category. Names are unique regardless of case."""
    return CatalogService(db).create_category(body, user_id_from(ctx))


@router.put("/{category_id}", response_model=CategoryOutput)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> CategoryOutput:
    return CatalogService(db).update_category(category_id, body, user_id_from(ctx))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> None:
    """Soft delete. Rejected while the category still has active products."""
    CatalogService(db).delete_category(category_id, user_id_from(ctx))
