"""
Client (CRM) endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import ClientService, invoice_to_output
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_api.services.notifications import templates
from criollo_shared.config.constants import CLIENT_ROLES, Limits
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_admin, require_any_role, user_id_from
from criollo_shared.utils.admin_schemas import (
    ClientCreate,
    ClientOutput,
    ClientStatsOutput,
    ClientUpdate,
    FrequentClientOutput,
)
from criollo_shared.utils.schemas import InvoiceOutput

router = APIRouter(prefix="/api/Cliente", tags=["clients"])

front_desk = require_any_role(CLIENT_ROLES)


@router.post("", response_model=ClientOutput, status_code=status.HTTP_201_CREATED)
def create_client(
    body: ClientCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
    email_service: EmailService = Depends(get_email_service),
) -> ClientOutput:
    """Register a client. Cedula and email must be unique; a welcome email is sent when an address is given."""
    client = ClientService(db).create(body, user_id_from(ctx))
    email_service.queue(background_tasks, templates.client_registration(client))
    return ClientOutput.model_validate(client)


@router.get("", response_model=list[ClientOutput])
def list_clients(
    limit: int = Query(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> list[ClientOutput]:
    return [ClientOutput.model_validate(c) for c in ClientService(db).list_clients(limit, offset)]


@router.get("/buscar", response_model=list[ClientOutput])
def search_clients(
    q: str = Query(min_length=1, max_length=100),
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> list[ClientOutput]:
    """Match by name, cedula, phone or email."""
    return [ClientOutput.model_validate(c) for c in ClientService(db).search(q)]


@router.get("/frecuentes", response_model=list[FrequentClientOutput])
def frequent_clients(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> list[FrequentClientOutput]:
    return ClientService(db).frequent(limit)


@router.get("/cumpleanos", response_model=list[ClientOutput])
def birthdays(
    month: int = Query(alias="mes"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> list[ClientOutput]:
    return [ClientOutput.model_validate(c) for c in ClientService(db).birthdays(month)]


@router.get("/{client_id}", response_model=ClientOutput)
def get_client(client_id: int, db: Session = Depends(get_db), ctx: dict = Depends(front_desk)) -> ClientOutput:
    return ClientOutput.model_validate(ClientService(db).get_client(client_id))


@router.put("/{client_id}", response_model=ClientOutput)
def update_client(
    client_id: int,
    body: ClientUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> ClientOutput:
    return ClientOutput.model_validate(ClientService(db).update(client_id, body, user_id_from(ctx)))


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(client_id: int, db: Session = Depends(get_db), ctx: dict = Depends(require_admin)) -> None:
    ClientService(db).delete(client_id, user_id_from(ctx))


@router.get("/{client_id}/historial-compras", response_model=list[InvoiceOutput])
def purchase_history(
    client_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> list[InvoiceOutput]:
    return [invoice_to_output(i) for i in ClientService(db).purchase_history(client_id)]


@router.get("/{client_id}/estadisticas", response_model=ClientStatsOutput)
def client_stats(
    client_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(front_desk),
) -> ClientStatsOutput:
    return ClientService(db).stats(client_id)
