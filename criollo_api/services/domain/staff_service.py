"""
Employee Service.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from criollo_api.models import Employee, User
from criollo_shared.config.logging import get_logger
from criollo_shared.utils.admin_schemas import EmployeeCreate, EmployeeUpdate
from criollo_shared.utils.exceptions import DuplicateEntityError, NotFoundError, ValidationError
from criollo_shared.utils.money import money

from ..base_service import BaseService

logger = get_logger(__name__)


class EmployeeService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    def list_employees(self, include_inactive: bool = False) -> Sequence[Employee]:
        query = select(Employee).order_by(Employee.last_name, Employee.first_name)
        if not include_inactive:
            query = query.where(Employee.is_active.is_(True))
        return self._db.execute(query).scalars().all()

    def get_employee(self, employee_id: int) -> Employee:
        employee = self._db.get(Employee, employee_id)
        if employee is None or not employee.is_active:
            raise NotFoundError("Empleado", employee_id)
        return employee

    def create(self, data: EmployeeCreate, user_id: int | None = None) -> Employee:
        if self._db.scalar(select(Employee.id).where(Employee.cedula == data.cedula)) is not None:
            raise DuplicateEntityError("Empleado", data.cedula)

        employee = Employee(
            cedula=data.cedula,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone,
            email=str(data.email).lower() if data.email else None,
            position=data.position,
            hire_date=data.hire_date,
            salary=money(data.salary) if data.salary is not None else None,
        )
        employee.set_created_by(user_id)
        self._db.add(employee)
        self._commit("registrar empleado", entity="Empleado")
        logger.info("Employee created", employee_id=employee.id, position=employee.position)
        return employee

    def update(self, employee_id: int, data: EmployeeUpdate, user_id: int | None = None) -> Employee:
        employee = self.get_employee(employee_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("email"):
            changes["email"] = str(changes["email"]).lower()
        if changes.get("salary") is not None:
            changes["salary"] = money(changes["salary"])
        for field, value in changes.items():
            setattr(employee, field, value)
        employee.set_updated_by(user_id)
        self._commit("actualizar empleado", employee_id=employee_id)
        return employee

    def link_user(self, employee_id: int, target_user_id: int, user_id: int | None = None) -> Employee:
        employee = self.get_employee(employee_id)
        user = self._db.get(User, target_user_id)
        if user is None:
            raise NotFoundError("Usuario", target_user_id)

        holder = self._db.scalar(select(Employee).where(Employee.user_id == target_user_id))
        if holder is not None and holder.id != employee.id:
            raise ValidationError(
                "El usuario ya está asociado a otro empleado", user_id=target_user_id, employee_id=holder.id
            )

        employee.user_id = user.id
        employee.set_updated_by(user_id)
        self._commit("asociar usuario", entity="Empleado", employee_id=employee_id)
        return employee
