"""
Client Service (CRM).
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import desc, extract, func, select
from sqlalchemy.orm import Session

from criollo_api.models import Client, Invoice, Reservation
from criollo_api.repositories import ClientRepository, InvoiceFilters, InvoiceRepository, RepositoryFilters
from criollo_shared.config.constants import InvoiceStatus, ReservationStatus
from criollo_shared.config.logging import get_logger, mask_email
from criollo_shared.utils.admin_schemas import (
    ClientCreate,
    ClientStatsOutput,
    ClientUpdate,
    FrequentClientOutput,
)
from criollo_shared.utils.exceptions import DuplicateEntityError, ValidationError
from criollo_shared.utils.money import ZERO, money

from ..base_service import BaseService

logger = get_logger(__name__)


class ClientService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self._repo = ClientRepository(db)
        self._invoices = InvoiceRepository(db)

    def list_clients(self, limit: int = 50, offset: int = 0) -> Sequence[Client]:
        return self._repo.find_all(RepositoryFilters(limit=limit, offset=offset))

    def search(self, term: str) -> Sequence[Client]:
        if not term or not term.strip():
            raise ValidationError("Debe indicar un término de búsqueda", field="q")
        return self._repo.find_all(RepositoryFilters(search=term, limit=100))

    def get_client(self, client_id: int) -> Client:
        return self._get_or_404(self._repo, client_id, "Cliente")

    def _ensure_unique(self, cedula: str | None, email: str | None, exclude_id: int | None = None) -> None:
        if cedula:
            existing = self._repo.find_by_cedula(cedula)
            if existing is not None and existing.id != exclude_id:
                raise DuplicateEntityError("Cliente", cedula)
        if email:
            existing = self._repo.find_by_email(email)
            if existing is not None and existing.id != exclude_id:
                raise DuplicateEntityError("Cliente", email.lower())

    def create(self, data: ClientCreate, user_id: int | None = None) -> Client:
        email = data.email.lower() if data.email else None
        self._ensure_unique(data.cedula, email)

        client = Client(
            cedula=data.cedula,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone,
            email=email,
            address=data.address,
            birth_date=data.birth_date,
            category=data.category,
        )
        client.set_created_by(user_id)
        self._repo.save(client)
        self._commit("registrar cliente", entity="Cliente")
        logger.info("Client registered", client_id=client.id, email=mask_email(email) if email else None)
        return client

    def update(self, client_id: int, data: ClientUpdate, user_id: int | None = None) -> Client:
        client = self.get_client(client_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
        self._ensure_unique(changes.get("cedula"), changes.get("email"), exclude_id=client.id)

        for field, value in changes.items():
            setattr(client, field, value)
        client.set_updated_by(user_id)
        self._commit("actualizar cliente", entity="Cliente", client_id=client_id)
        return client

    def delete(self, client_id: int, user_id: int | None = None) -> None:
        client = self.get_client(client_id)
        client.soft_delete(user_id)
        self._commit("eliminar cliente", client_id=client_id)

    # =========================================================================
    # History and statistics
    # =========================================================================

    def purchase_history(self, client_id: int) -> Sequence[Invoice]:
        self.get_client(client_id)
        return self._invoices.find_all(InvoiceFilters(client_id=client_id, limit=200))

    def stats(self, client_id: int) -> ClientStatsOutput:
        client = self.get_client(client_id)
        visits, total, last_visit = self._db.execute(
            select(func.count(Invoice.id), func.coalesce(func.sum(Invoice.total), 0), func.max(Invoice.issued_at))
            .where(Invoice.client_id == client.id, Invoice.status == InvoiceStatus.PAID)
        ).one()
        reservation_counts = dict(
            self._db.execute(
                select(Reservation.status, func.count(Reservation.id))
                .where(Reservation.client_id == client.id)
                .group_by(Reservation.status)
            ).all()
        )
        total = money(total)
        return ClientStatsOutput(
            client_id=client.id,
            full_name=client.full_name,
            visits=visits,
            total_spent=total,
            average_ticket=money(total / visits) if visits else ZERO,
            last_visit=last_visit,
            reservations=sum(reservation_counts.values()),
            no_shows=reservation_counts.get(ReservationStatus.NO_SHOW, 0),
        )

    def frequent(self, limit: int = 10) -> list[FrequentClientOutput]:
        """Clients ranked by number of paid visits."""
        visits = func.count(Invoice.id).label("visits")
        rows = self._db.execute(
            select(Client, visits, func.coalesce(func.sum(Invoice.total), 0))
            .join(Invoice, Invoice.client_id == Client.id)
            .where(Invoice.status == InvoiceStatus.PAID, Client.is_active.is_(True))
            .group_by(Client.id)
            .order_by(desc(visits), Client.last_name)
            .limit(limit)
        ).all()
        return [
            FrequentClientOutput(
                client_id=client.id,
                full_name=client.full_name,
                visits=count,
                total_spent=money(spent),
            )
            for client, count, spent in rows
        ]

    def birthdays(self, month: int) -> Sequence[Client]:
        if not 1 <= month <= 12:
            raise ValidationError("El mes debe estar entre 1 y 12", field="month")
        return self._db.execute(
            select(Client)
            .where(
                Client.is_active.is_(True),
                Client.birth_date.is_not(None),
                extract("month", Client.birth_date) == month,
            )
            .order_by(extract("day", Client.birth_date), Client.last_name)
        ).scalars().all()
