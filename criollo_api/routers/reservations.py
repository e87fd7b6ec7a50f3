"""
Reservation endpoints.

Confirmation and cancellation emails are queued as background tasks and
never affect the response.
"""

from datetime import date, datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import ReservationService, reservation_to_output
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_api.services.notifications import templates
from criollo_shared.config.constants import ALL_STAFF_ROLES, FLOOR_ROLES, Limits, RESERVATION_ROLES
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_any_role, user_id_from
from criollo_shared.utils.exceptions import ValidationError
from criollo_shared.utils.schemas import (
    AvailableSlotOutput,
    ExpireReservationsOutput,
    MessageOutput,
    ReasonRequest,
    ReservationCreate,
    ReservationOutput,
    ReservationStatsOutput,
    ReservationUpdate,
    TableOutput,
)

router = APIRouter(prefix="/api/Reservacion", tags=["reservations"])

staff = require_any_role(ALL_STAFF_ROLES)
desk = require_any_role(RESERVATION_ROLES)
floor_staff = require_any_role(FLOOR_ROLES)


@router.post("", response_model=ReservationOutput, status_code=status.HTTP_201_CREATED)
def create_reservation(
    body: ReservationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
    email_service: EmailService = Depends(get_email_service),
) -> ReservationOutput:
    """
    Book a table. Without ``table_id`` the smallest table that fits the party
    and is free for the whole window is picked.
    """
    reservation = ReservationService(db).create(body, user_id_from(ctx))
    email_service.queue(background_tasks, templates.reservation_confirmation(reservation))
    return reservation_to_output(reservation)


@router.get("/dia", response_model=list[ReservationOutput])
def list_by_day(
    day: date = Query(alias="fecha"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ReservationOutput]:
    return [reservation_to_output(r) for r in ReservationService(db).list_by_day(day)]


@router.get("/rango", response_model=list[ReservationOutput])
def list_by_range(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ReservationOutput]:
    return [reservation_to_output(r) for r in ReservationService(db).list_by_range(start_date, end_date)]


@router.get("/mesa/{table_id}", response_model=list[ReservationOutput])
def list_by_table(
    table_id: int,
    day: date | None = Query(default=None, alias="fecha"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ReservationOutput]:
    return [reservation_to_output(r) for r in ReservationService(db).list_by_table(table_id, day)]


@router.get("/cliente/{client_id}", response_model=list[ReservationOutput])
def list_by_client(
    client_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ReservationOutput]:
    return [reservation_to_output(r) for r in ReservationService(db).list_by_client(client_id)]


@router.get("/horarios-disponibles/{table_id}", response_model=list[AvailableSlotOutput])
def available_slots(
    table_id: int,
    day: date = Query(alias="fecha"),
    duration_minutes: int | None = Query(
        default=None,
        alias="duracion",
        ge=Limits.MIN_RESERVATION_MINUTES,
        le=Limits.MAX_RESERVATION_MINUTES,
    ),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[AvailableSlotOutput]:
    return ReservationService(db).available_slots(table_id, day, duration_minutes)


@router.get("/disponibilidad", response_model=list[TableOutput])
def search_availability(
    start_at: datetime = Query(alias="fechaHora"),
    party_size: int = Query(alias="personas", gt=0, le=Limits.MAX_PARTY_SIZE),
    duration_minutes: int | None = Query(
        default=None,
        alias="duracion",
        ge=Limits.MIN_RESERVATION_MINUTES,
        le=Limits.MAX_RESERVATION_MINUTES,
    ),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[TableOutput]:
    tables = ReservationService(db).search_availability(start_at, party_size, duration_minutes)
    return [TableOutput.model_validate(t) for t in tables]


@router.get("/retrasadas", response_model=list[ReservationOutput])
def late_reservations(db: Session = Depends(get_db), ctx: dict = Depends(staff)) -> list[ReservationOutput]:
    return [reservation_to_output(r) for r in ReservationService(db).late()]


@router.get("/proximas", response_model=list[ReservationOutput])
def upcoming_reservations(
    hours: int = Query(default=2, alias="horas", gt=0, le=48),
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> list[ReservationOutput]:
    return [reservation_to_output(r) for r in ReservationService(db).upcoming(hours)]


@router.post("/expirar-retrasadas", response_model=ExpireReservationsOutput)
def expire_late(db: Session = Depends(get_db), ctx: dict = Depends(desk)) -> ExpireReservationsOutput:
    """Mark reservations past their tolerance window as NO_SHOW."""
    return ExpireReservationsOutput(expired=ReservationService(db).expire_late(user_id_from(ctx)))


@router.get("/estadisticas", response_model=ReservationStatsOutput)
def reservation_stats(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
) -> ReservationStatsOutput:
    return ReservationService(db).stats(start_date, end_date)


@router.get("/{reservation_id}", response_model=ReservationOutput)
def get_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> ReservationOutput:
    return reservation_to_output(ReservationService(db).get_reservation(reservation_id))


@router.put("/{reservation_id}", response_model=ReservationOutput)
def update_reservation(
    reservation_id: int,
    body: ReservationUpdate,
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
) -> ReservationOutput:
    return reservation_to_output(ReservationService(db).update(reservation_id, body, user_id_from(ctx)))


@router.post("/{reservation_id}/confirmar", response_model=ReservationOutput)
def confirm_reservation(
    reservation_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
    email_service: EmailService = Depends(get_email_service),
) -> ReservationOutput:
    reservation = ReservationService(db).confirm(reservation_id, user_id_from(ctx))
    email_service.queue(background_tasks, templates.reservation_confirmation(reservation))
    return reservation_to_output(reservation)


@router.post("/{reservation_id}/iniciar", response_model=ReservationOutput)
def mark_arrived(
    reservation_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(floor_staff),
) -> ReservationOutput:
    """The party arrived: the reservation starts and its table is occupied."""
    return reservation_to_output(ReservationService(db).mark_arrived(reservation_id, user_id_from(ctx)))


@router.post("/{reservation_id}/completar", response_model=ReservationOutput)
def complete_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(staff),
) -> ReservationOutput:
    return reservation_to_output(ReservationService(db).complete(reservation_id, user_id_from(ctx)))


@router.post("/{reservation_id}/cancelar", response_model=ReservationOutput)
def cancel_reservation(
    reservation_id: int,
    body: ReasonRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
    email_service: EmailService = Depends(get_email_service),
) -> ReservationOutput:
    reservation = ReservationService(db).cancel(reservation_id, body.reason, user_id_from(ctx))
    email_service.queue(background_tasks, templates.reservation_cancellation(reservation))
    return reservation_to_output(reservation)


@router.post("/{reservation_id}/no-show", response_model=ReservationOutput)
def mark_no_show(
    reservation_id: int,
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
) -> ReservationOutput:
    return reservation_to_output(ReservationService(db).mark_no_show(reservation_id, user_id_from(ctx)))


@router.post("/{reservation_id}/enviar-recordatorio", response_model=MessageOutput)
def send_reminder(
    reservation_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(desk),
    email_service: EmailService = Depends(get_email_service),
) -> MessageOutput:
    service = ReservationService(db)
    content = templates.reservation_reminder(service.get_reservation(reservation_id))
    if content is None:
        raise ValidationError("El cliente no tiene correo electrónico registrado", reservation_id=reservation_id)
    service.mark_reminder_sent(reservation_id)
    email_service.queue(background_tasks, content)
    return MessageOutput(message="Recordatorio enviado")
