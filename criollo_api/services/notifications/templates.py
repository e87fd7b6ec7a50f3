"""
HTML bodies for transactional emails.

Each builder returns an EmailContent, or None when there is no address to
send to.
"""

from collections.abc import Iterable
from html import escape

from criollo_api.models import Client, Invoice, Reservation, User
from criollo_shared.config.constants import EmailType
from criollo_shared.config.settings import settings

from .email_service import EmailContent


def _layout(title: str, body: str) -> str:
    return (
        "<html><body style=\"font-family: Arial, sans-serif; color: #333;\">"
        f"<h2 style=\"color: #b5472b;\">{escape(settings.restaurant_name)}</h2>"
        f"<h3>{escape(title)}</h3>"
        f"{body}"
        "<hr><p style=\"font-size: 12px; color: #888;\">Este es un mensaje automático, no responda a este correo.</p>"
        "</body></html>"
    )


def welcome_user(user: User, temporary_password: str) -> EmailContent | None:
    if not user.email:
        return None
    body = (
        f"<p>Hola <strong>{escape(user.username)}</strong>, se ha creado su cuenta en el sistema.</p>"
        f"<p>Rol: {escape(user.role_name)}</p>"
        f"<p>Contraseña temporal: <code>{escape(temporary_password)}</code></p>"
        "<p>Por seguridad, cámbiela en su primer inicio de sesión.</p>"
    )
    return EmailContent(
        recipient=user.email,
        subject=f"Bienvenido a {settings.restaurant_name}",
        html=_layout("Bienvenido al equipo", body),
        email_type=EmailType.WELCOME_USER,
        reference=f"USER-{user.id}",
    )


def client_registration(client: Client) -> EmailContent | None:
    if not client.email:
        return None
    body = (
        f"<p>Hola {escape(client.full_name)}, gracias por registrarse con nosotros.</p>"
        "<p>Le esperamos pronto para disfrutar de la mejor comida criolla.</p>"
    )
    return EmailContent(
        recipient=client.email,
        subject=f"¡Bienvenido a {settings.restaurant_name}!",
        html=_layout("Registro completado", body),
        email_type=EmailType.CLIENT_REGISTRATION,
        reference=f"CLI-{client.id}",
    )


def _reservation_details(reservation: Reservation) -> str:
    return (
        "<ul>"
        f"<li>Fecha: {reservation.start_at:%d/%m/%Y}</li>"
        f"<li>Hora: {reservation.start_at:%I:%M %p}</li>"
        f"<li>Personas: {reservation.party_size}</li>"
        f"<li>Mesa: {reservation.table.number if reservation.table else reservation.table_id}</li>"
        "</ul>"
    )


def reservation_confirmation(reservation: Reservation) -> EmailContent | None:
    client = reservation.client
    if client is None or not client.email:
        return None
    body = (
        f"<p>Hola {escape(client.full_name)}, su reservación ha sido registrada.</p>"
        f"{_reservation_details(reservation)}"
        f"<p>Le guardaremos la mesa {settings.reservation_tolerance_minutes} minutos después de la hora indicada.</p>"
    )
    return EmailContent(
        recipient=client.email,
        subject="Confirmación de reservación",
        html=_layout("Reservación confirmada", body),
        email_type=EmailType.RESERVATION_CONFIRMATION,
        reference=f"RES-{reservation.id}",
    )


def reservation_reminder(reservation: Reservation) -> EmailContent | None:
    client = reservation.client
    if client is None or not client.email:
        return None
    body = (
        f"<p>Hola {escape(client.full_name)}, le recordamos su reservación.</p>"
        f"{_reservation_details(reservation)}"
    )
    return EmailContent(
        recipient=client.email,
        subject="Recordatorio de reservación",
        html=_layout("Recordatorio", body),
        email_type=EmailType.RESERVATION_REMINDER,
        reference=f"RES-{reservation.id}",
    )


def reservation_cancellation(reservation: Reservation) -> EmailContent | None:
    client = reservation.client
    if client is None or not client.email:
        return None
    reason = escape(reservation.cancellation_reason or "")
    body = (
        f"<p>Hola {escape(client.full_name)}, su reservación ha sido cancelada.</p>"
        f"{_reservation_details(reservation)}"
        f"<p>Motivo: {reason}</p>"
    )
    return EmailContent(
        recipient=client.email,
        subject="Cancelación de reservación",
        html=_layout("Reservación cancelada", body),
        email_type=EmailType.RESERVATION_CANCELLATION,
        reference=f"RES-{reservation.id}",
    )


def invoice(invoice: Invoice, recipient: str | None = None) -> EmailContent | None:
    address = recipient or (invoice.client.email if invoice.client else None)
    if not address:
        return None
    rows = "".join(
        f"<tr><td>{escape(item.name)}</td><td>{item.quantity}</td>"
        f"<td>RD$ {item.unit_price:,.2f}</td><td>RD$ {item.subtotal:,.2f}</td></tr>"
        for item in invoice.order.items
    )
    body = (
        f"<p>Factura <strong>{escape(invoice.invoice_number)}</strong> "
        f"del {invoice.issued_at:%d/%m/%Y %I:%M %p}</p>"
        "<table cellpadding=\"4\"><tr><th>Producto</th><th>Cant.</th><th>Precio</th><th>Subtotal</th></tr>"
        f"{rows}</table>"
        f"<p>Subtotal: RD$ {invoice.subtotal:,.2f}<br>"
        f"Descuento: RD$ {invoice.discount:,.2f}<br>"
        f"ITBIS (18%): RD$ {invoice.tax:,.2f}<br>"
        f"Propina: RD$ {invoice.tip:,.2f}<br>"
        f"<strong>Total: RD$ {invoice.total:,.2f}</strong></p>"
    )
    return EmailContent(
        recipient=address,
        subject=f"Factura {invoice.invoice_number}",
        html=_layout("Gracias por su visita", body),
        email_type=EmailType.INVOICE,
        reference=invoice.invoice_number,
    )


def low_stock(products: Iterable[tuple[str, int, int]], reference: str | None = None) -> EmailContent | None:
    """``products`` holds (name, available, minimum) tuples."""
    products = list(products)
    if not products or not settings.admin_notification_email:
        return None
    rows = "".join(
        f"<tr><td>{escape(name)}</td><td>{available}</td><td>{minimum}</td></tr>"
        for name, available, minimum in products
    )
    body = (
        "<p>Los siguientes productos están por debajo del stock mínimo:</p>"
        "<table cellpadding=\"4\"><tr><th>Producto</th><th>Disponible</th><th>Mínimo</th></tr>"
        f"{rows}</table>"
    )
    return EmailContent(
        recipient=settings.admin_notification_email,
        subject="Alerta de inventario bajo",
        html=_layout("Inventario bajo", body),
        email_type=EmailType.LOW_STOCK,
        reference=reference,
    )
