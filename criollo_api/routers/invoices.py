"""
Invoice endpoints.

Generating an invoice bills a DELIVERED order, moves it to INVOICED and frees
its table when no other active order holds it, all in one transaction.
"""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from criollo_api.services.domain import BillingService, invoice_to_output
from criollo_api.services.notifications import EmailService, get_email_service
from criollo_api.services.notifications import templates
from criollo_shared.config.constants import BILLING_ROLES
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import employee_id_from, require_any_role, user_id_from
from criollo_shared.utils.exceptions import ValidationError
from criollo_shared.utils.schemas import (
    BillingSummaryOutput,
    InvoiceCreate,
    InvoiceEmailRequest,
    InvoiceOutput,
    InvoicePayRequest,
    MessageOutput,
    ReasonRequest,
)

router = APIRouter(prefix="/api/Factura", tags=["invoices"])

cashier = require_any_role(BILLING_ROLES)


@router.post("", response_model=InvoiceOutput, status_code=status.HTTP_201_CREATED)
def generate_invoice(
    body: InvoiceCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
    email_service: EmailService = Depends(get_email_service),
) -> InvoiceOutput:
    """
    Bill a delivered order.

    ITBIS (18%) is charged on subtotal minus discount; the tip is added after
    tax, given either as an amount or as a percentage of the taxable base.
    """
    invoice = BillingService(db).generate(body, employee_id_from(ctx), user_id_from(ctx))
    email_service.queue(background_tasks, templates.invoice(invoice))
    return invoice_to_output(invoice)


@router.get("/dia", response_model=list[InvoiceOutput])
def list_by_date(
    day: date = Query(alias="fecha"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
) -> list[InvoiceOutput]:
    return [invoice_to_output(i) for i in BillingService(db).list_by_date(day)]


@router.get("/rango", response_model=list[InvoiceOutput])
def list_by_range(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
) -> list[InvoiceOutput]:
    return [invoice_to_output(i) for i in BillingService(db).list_by_range(start_date, end_date)]


@router.get("/pendientes", response_model=list[InvoiceOutput])
def list_pending(db: Session = Depends(get_db), ctx: dict = Depends(cashier)) -> list[InvoiceOutput]:
    return [invoice_to_output(i) for i in BillingService(db).list_pending()]


@router.get("/resumen-ventas", response_model=BillingSummaryOutput)
def daily_summary(
    day: date | None = Query(default=None, alias="fecha"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
) -> BillingSummaryOutput:
    """Billing totals of one day (today by default). Amounts count PAID invoices only."""
    return BillingService(db).daily_summary(day)


@router.get("/numero/{invoice_number}", response_model=InvoiceOutput)
def get_by_number(
    invoice_number: str,
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
) -> InvoiceOutput:
    return invoice_to_output(BillingService(db).get_by_number(invoice_number))


@router.get("/orden/{order_id}", response_model=InvoiceOutput)
def get_by_order(order_id: int, db: Session = Depends(get_db), ctx: dict = Depends(cashier)) -> InvoiceOutput:
    return invoice_to_output(BillingService(db).get_by_order(order_id))


@router.get("/{invoice_id}", response_model=InvoiceOutput)
def get_invoice(invoice_id: int, db: Session = Depends(get_db), ctx: dict = Depends(cashier)) -> InvoiceOutput:
    return invoice_to_output(BillingService(db).get_invoice(invoice_id))


@router.post("/{invoice_id}/pagar", response_model=InvoiceOutput)
def mark_paid(
    invoice_id: int,
    body: InvoicePayRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
) -> InvoiceOutput:
    invoice = BillingService(db).mark_paid(
        invoice_id, body.payment_method, body.payment_notes, user_id_from(ctx)
    )
    return invoice_to_output(invoice)


@router.post("/{invoice_id}/anular", response_model=InvoiceOutput)
def cancel_invoice(
    invoice_id: int,
    body: ReasonRequest,
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
) -> InvoiceOutput:
    """Void a PENDING invoice. Paid invoices cannot be voided."""
    return invoice_to_output(BillingService(db).cancel(invoice_id, body.reason, user_id_from(ctx)))


@router.post("/{invoice_id}/enviar-email", response_model=MessageOutput)
def email_invoice(
    invoice_id: int,
    body: InvoiceEmailRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ctx: dict = Depends(cashier),
    email_service: EmailService = Depends(get_email_service),
) -> MessageOutput:
    invoice = BillingService(db).get_invoice(invoice_id)
    content = templates.invoice(invoice, recipient=str(body.email) if body.email else None)
    if content is None:
        raise ValidationError("Indique un correo electrónico para enviar la factura", invoice_id=invoice_id)
    email_service.queue(background_tasks, content)
    return MessageOutput(message=f"Factura enviada a {content.recipient}")
