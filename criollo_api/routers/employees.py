"""
Employee management endpoints. Administrators only.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import EmployeeService
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_admin, user_id_from
from criollo_shared.utils.admin_schemas import (
    EmployeeCreate,
    EmployeeOutput,
    EmployeeUpdate,
    LinkUserRequest,
)

router = APIRouter(prefix="/api/Empleado", tags=["employees"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[EmployeeOutput])
def list_employees(
    include_inactive: bool = Query(default=False, alias="incluirInactivos"),
    db: Session = Depends(get_db),
) -> list[EmployeeOutput]:
    return [EmployeeOutput.model_validate(e) for e in EmployeeService(db).list_employees(include_inactive)]


@router.get("/{employee_id}", response_model=EmployeeOutput)
def get_employee(employee_id: int, db: Session = Depends(get_db)) -> EmployeeOutput:
    return EmployeeOutput.model_validate(EmployeeService(db).get_employee(employee_id))


@router.post("", response_model=EmployeeOutput, status_code=status.HTTP_201_CREATED)
def create_employee(
    body: EmployeeCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> EmployeeOutput:
    return EmployeeOutput.model_validate(EmployeeService(db).create(body, user_id_from(ctx)))


@router.put("/{employee_id}", response_model=EmployeeOutput)
def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> EmployeeOutput:
    return EmployeeOutput.model_validate(EmployeeService(db).update(employee_id, body, user_id_from(ctx)))


@router.post("/{employee_id}/usuario", response_model=EmployeeOutput)
def link_user(
    employee_id: int,
    body: LinkUserRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> EmployeeOutput:
    """Associate a login account with the employee."""
    employee = EmployeeService(db).link_user(employee_id, body.user_id, user_id_from(ctx))
    return EmployeeOutput.model_validate(employee)
