"""
Base service class.

Architecture:
    Router (thin) -> Service (business logic) -> Repository (data access) -> Model

Every lifecycle operation is one unit of work: the service locks the rows
it mutates, applies all changes, then calls ``_commit`` exactly once.
"""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from criollo_api.repositories.base import BaseRepository
from criollo_shared.config.logging import get_logger
from criollo_shared.infrastructure.db import safe_commit
from criollo_shared.utils.exceptions import (
    ConcurrentModificationError,
    DatabaseError,
    DuplicateEntityError,
    NotFoundError,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")


class BaseService:
    """Common infrastructure for domain services (session, commit, lookups)."""

    def __init__(self, db: Session):
        self._db = db

    @property
    def db(self) -> Session:
        return self._db

    def _commit(self, operation: str, entity: str | None = None, **log_context: Any) -> None:
        """
        Commit the unit of work.

        Rolls back and translates persistence failures into API errors:
        a version mismatch becomes 409 ConcurrentModification and a unique
        constraint violation becomes 409 Duplicate.
        """
        try:
            safe_commit(self._db)
        except StaleDataError:
            raise ConcurrentModificationError(operation=operation, **log_context)
        except IntegrityError as e:
            logger.warning("Integrity error on commit", operation=operation, error=str(e.orig))
            raise DuplicateEntityError(entity or "Registro", operation=operation, **log_context)
        except SQLAlchemyError:
            logger.error("Database error on commit", operation=operation, exc_info=True)
            raise DatabaseError(operation, **log_context)

    @staticmethod
    def _get_or_404(repo: BaseRepository[ModelT], entity_id: int, entity_name: str) -> ModelT:
        entity = repo.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(entity_name, entity_id)
        return entity

    @staticmethod
    def _lock_or_404(repo: BaseRepository[ModelT], entity_id: int, entity_name: str) -> ModelT:
        entity = repo.find_by_id_for_update(entity_id)
        if entity is None or not getattr(entity, "is_active", True):
            raise NotFoundError(entity_name, entity_id)
        return entity
