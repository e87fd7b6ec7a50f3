"""
Table management endpoints.

Every status change goes through TableService, which holds the row lock and
enforces the FREE / OCCUPIED / RESERVED / MAINTENANCE transition table.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import TableService, order_to_output
from criollo_shared.config.constants import ALL_STAFF_ROLES, FLOOR_ROLES, TableStatus
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_admin, require_any_role, user_id_from
from criollo_shared.utils.schemas import (
    MaintenanceRequest,
    OrderOutput,
    ResetTablesOutput,
    TableAttentionOutput,
    TableAvailabilityOutput,
    TableCreate,
    TableOutput,
    TableStatsOutput,
    TableStatusChange,
    TableUpdate,
)

router = APIRouter(prefix="/api/Mesas", tags=["tables"])

staff = require_any_role(ALL_STAFF_ROLES)
floor_staff = require_any_role(FLOOR_ROLES)


@router.get("", response_model=list[TableOutput])
def list_tables(
    status_filter: TableStatus | None = Query(default=None, alias="estado"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[TableOutput]:
    return [TableOutput.model_validate(t) for t in TableService(db).list_tables(status_filter)]


@router.get("/disponibles", response_model=list[TableOutput])
def list_available(
    party_size: int | None = Query(default=None, gt=0, alias="personas"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[TableOutput]:
    """Free tables that seat the party, smallest first."""
    return [TableOutput.model_validate(t) for t in TableService(db).list_available(party_size)]


@router.get("/mejor-disponible", response_model=TableOutput | None)
def best_available(
    party_size: int = Query(gt=0, alias="personas"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> TableOutput | None:
    table = TableService(db).find_best_table(party_size)
    return TableOutput.model_validate(table) if table else None


@router.get("/estado/{table_status}", response_model=list[TableOutput])
def list_by_status(
    table_status: TableStatus,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[TableOutput]:
    return [TableOutput.model_validate(t) for t in TableService(db).list_tables(table_status)]


@router.get("/estadisticas", response_model=TableStatsOutput)
def table_stats(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> TableStatsOutput:
    return TableService(db).stats()


@router.get("/requieren-atencion", response_model=list[TableAttentionOutput])
def tables_needing_attention(
    db: Session = Depends(get_db),
    ctx: dict = Depends(floor_staff),
) -> list[TableAttentionOutput]:
    return TableService(db).tables_needing_attention()


@router.post("/reiniciar-todas", response_model=ResetTablesOutput)
def reset_all(db: Session = Depends(get_db), ctx: dict = Depends(require_admin)) -> ResetTablesOutput:
    """Return every table without active orders to FREE; the rest are reported as skipped."""
    reset, skipped = TableService(db).reset_all(user_id_from(ctx))
    return ResetTablesOutput(reset=reset, skipped=skipped)


@router.post("", response_model=TableOutput, status_code=status.HTTP_201_CREATED)
def create_table(
    body: TableCreate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> TableOutput:
    return TableOutput.model_validate(TableService(db).create_table(body, user_id_from(ctx)))


@router.get("/{table_id}", response_model=TableOutput)
def get_table(table_id: int, db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> TableOutput:
    return TableOutput.model_validate(TableService(db).get_table(table_id))


@router.put("/{table_id}", response_model=TableOutput)
def update_table(
    table_id: int,
    body: TableUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> TableOutput:
    return TableOutput.model_validate(TableService(db).update_table(table_id, body, user_id_from(ctx)))


@router.get("/{table_id}/disponibilidad", response_model=TableAvailabilityOutput)
def check_availability(
    table_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> TableAvailabilityOutput:
    return TableService(db).check_availability(table_id)


@router.get("/{table_id}/ordenes", response_model=list[OrderOutput])
def active_orders(
    table_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[OrderOutput]:
    return [order_to_output(o) for o in TableService(db).active_orders(table_id)]


@router.put("/{table_id}/estado", response_model=TableOutput)
def change_status(
    table_id: int,
    body: TableStatusChange,
    db: Session = Depends(get_db),
    ctx: dict = Depends(floor_staff),
) -> TableOutput:
    table = TableService(db).change_status(table_id, body.status, body.reason, user_id_from(ctx))
    return TableOutput.model_validate(table)


@router.post("/{table_id}/ocupar", response_model=TableOutput)
def occupy(table_id: int, db: Session = Depends(get_db), ctx: dict = Depends(floor_staff)) -> TableOutput:
    return TableOutput.model_validate(TableService(db).occupy(table_id, user_id_from(ctx)))


@router.post("/{table_id}/liberar", response_model=TableOutput)
def release(table_id: int, db: Session = Depends(get_db), ctx: dict = Depends(floor_staff)) -> TableOutput:
    """Free the table. Rejected while it still has active orders."""
    return TableOutput.model_validate(TableService(db).release(table_id, user_id_from(ctx)))


@router.post("/{table_id}/reservar", response_model=TableOutput)
def reserve(table_id: int, db: Session = Depends(get_db), ctx: dict = Depends(floor_staff)) -> TableOutput:
    return TableOutput.model_validate(TableService(db).reserve(table_id, user_id_from(ctx)))


@router.post("/{table_id}/mantenimiento", response_model=TableOutput)
def mark_maintenance(
    table_id: int,
    body: MaintenanceRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(floor_staff),
) -> TableOutput:
    table = TableService(db).mark_maintenance(table_id, body.reason, user_id_from(ctx))
    return TableOutput.model_validate(table)


@router.post("/{table_id}/completar-mantenimiento", response_model=TableOutput)
def complete_maintenance(
    table_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(floor_staff),
) -> TableOutput:
    return TableOutput.model_validate(TableService(db).complete_maintenance(table_id, user_id_from(ctx)))
