"""
Base class, ID column type and AuditMixin for all SQLAlchemy ORM models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from criollo_shared.utils.clock import now_local

# BIGINT on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AuditMixin:
    """
    Mixin providing soft delete and audit trail fields.

    Fields added:
    - is_active: Soft delete flag (False = deleted, True = active)
    - created_at, updated_at, deleted_at: Audit timestamps (restaurant local time)
    - created_by_id, updated_by_id, deleted_by_id: User tracking

    Methods:
    - soft_delete(user_id): Mark entity as deleted
    - restore(user_id): Restore a soft-deleted entity
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, onupdate=now_local, nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # No FK to app_user: it would create a circular dependency
    created_by_id: Mapped[Optional[int]] = mapped_column(IdType, nullable=True)
    updated_by_id: Mapped[Optional[int]] = mapped_column(IdType, nullable=True)
    deleted_by_id: Mapped[Optional[int]] = mapped_column(IdType, nullable=True)

    def soft_delete(self, user_id: int | None) -> None:
        self.is_active = False
        self.deleted_at = now_local()
        self.deleted_by_id = user_id

    def restore(self, user_id: int | None) -> None:
        self.is_active = True
        self.deleted_at = None
        self.deleted_by_id = None
        self.set_updated_by(user_id)

    def set_created_by(self, user_id: int | None) -> None:
        self.created_by_id = user_id

    def set_updated_by(self, user_id: int | None) -> None:
        self.updated_by_id = user_id
        self.updated_at = now_local()

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        active = "active" if self.is_active else "deleted"
        return f"<{class_name}(id={id_val}, {active})>"
