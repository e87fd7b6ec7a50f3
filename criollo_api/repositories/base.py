"""
Repository base: soft-delete aware lookups shared by every aggregate.

A subclass names its ``model`` and, when it has extra filters, overrides
``_base_query`` (eager loading, ordering) and ``_apply_filters``.
"""

from dataclasses import dataclass
from typing import ClassVar, Generic, Sequence, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from criollo_shared.config.constants import Limits
from criollo_shared.utils.validators import sanitize_search_term

ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0
    search: str | None = None

    def __post_init__(self):
        self.limit = max(1, min(self.limit, Limits.MAX_PAGE_SIZE))
        self.offset = max(self.offset, 0)
        if self.search:
            self.search = sanitize_search_term(self.search, Limits.MAX_SEARCH_TERM_LENGTH) or None


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, db: Session):
        self._db = db

    def _base_query(self) -> Select:
        return select(self.model)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        return query

    def _live(self, query: Select) -> Select:
        """Hide soft-deleted rows for models that have ``is_active``."""
        if hasattr(self.model, "is_active"):
            return query.where(self.model.is_active.is_(True))
        return query

    def find_all(self, filters: RepositoryFilters | None = None) -> Sequence[ModelT]:
        filters = filters or RepositoryFilters()
        query = self._apply_filters(self._live(self._base_query()), filters)
        return self._db.execute(query.offset(filters.offset).limit(filters.limit)).scalars().unique().all()

    def find_by_id(self, entity_id: int) -> ModelT | None:
        return self._db.scalar(self._live(self._base_query().where(self.model.id == entity_id)))

    def find_by_ids(self, entity_ids: list[int]) -> Sequence[ModelT]:
        if not entity_ids:
            return []
        query = self._live(self._base_query().where(self.model.id.in_(entity_ids)))
        return self._db.execute(query).scalars().unique().all()

    def find_by_id_for_update(self, entity_id: int) -> ModelT | None:
        """
        Load a row with ``SELECT ... FOR UPDATE`` and refresh any stale copy in
        the session. SQLite ignores the lock; the version column still catches
        a lost update there.
        """
        query = (
            select(self.model)
            .where(self.model.id == entity_id)
            .with_for_update(of=self.model)
            .execution_options(populate_existing=True)
        )
        return self._db.scalar(query)

    def save(self, entity: ModelT) -> ModelT:
        """Add and flush so the generated id is available."""
        self._db.add(entity)
        self._db.flush()
        return entity
