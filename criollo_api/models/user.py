"""
Identity models: Role, User, Employee.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, IdType

if TYPE_CHECKING:
    from .order import Order


class Role(AuditMixin, Base):
    """Staff role (Administrador, Recepcion, Mesero, Cajero, Cocina)."""

    __tablename__ = "role"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    users: Mapped[list["User"]] = relationship(back_populates="role")


class User(AuditMixin, Base):
    """
    Login account.

    ``refresh_token_hash`` holds the SHA-256 of the only refresh token that
    is currently valid for the user; rotation replaces it and logout clears it.
    """

    # "user" is a reserved word in PostgreSQL
    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role_id: Mapped[int] = mapped_column(IdType, ForeignKey("role.id"), nullable=False, index=True)
    requires_password_change: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(String(64))

    role: Mapped["Role"] = relationship(back_populates="users", lazy="joined")
    employee: Mapped[Optional["Employee"]] = relationship(back_populates="user", uselist=False)

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""


class Employee(AuditMixin, Base):
    """Restaurant staff member, optionally linked to a login account."""

    __tablename__ = "employee"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    cedula: Mapped[str] = mapped_column(String(13), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    position: Mapped[Optional[str]] = mapped_column(String(100))
    hire_date: Mapped[Optional[date]] = mapped_column(Date)
    salary: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    user_id: Mapped[Optional[int]] = mapped_column(
        IdType, ForeignKey("app_user.id"), unique=True, nullable=True
    )

    user: Mapped[Optional["User"]] = relationship(back_populates="employee")
    orders: Mapped[list["Order"]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
