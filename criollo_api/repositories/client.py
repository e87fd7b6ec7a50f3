"""
Client Repository - Data access for the CRM.
"""

from sqlalchemy import Select, or_, select

from criollo_api.models import Client
from criollo_shared.utils.validators import escape_like_pattern

from .base import BaseRepository, RepositoryFilters


class ClientRepository(BaseRepository[Client]):

    model = Client

    def _base_query(self) -> Select:
        return select(Client).order_by(Client.last_name, Client.first_name)

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if filters.search:
            pattern = f"%{escape_like_pattern(filters.search)}%"
            query = query.where(
                or_(
                    Client.first_name.ilike(pattern, escape="\\"),
                    Client.last_name.ilike(pattern, escape="\\"),
                    Client.cedula.ilike(pattern, escape="\\"),
                    Client.phone.ilike(pattern, escape="\\"),
                    Client.email.ilike(pattern, escape="\\"),
                )
            )
        return query

    def find_by_cedula(self, cedula: str) -> Client | None:
        return self._db.scalar(select(Client).where(Client.cedula == cedula))

    def find_by_email(self, email: str) -> Client | None:
        return self._db.scalar(select(Client).where(Client.email == email.lower()))
