"""
Centralized constants for the backend application.

Closed status enums for every lifecycle entity, their transition tables and
the role groups used by the routers.

Usage:
    from criollo_shared.config.constants import OrderStatus, ORDER_TRANSITIONS

    if OrderStatus.READY in ORDER_TRANSITIONS[order.status]:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role names as stored in the roles table."""

    ADMIN: Final[str] = "Administrador"
    RECEPTION: Final[str] = "Recepcion"
    WAITER: Final[str] = "Mesero"
    CASHIER: Final[str] = "Cajero"
    KITCHEN: Final[str] = "Cocina"

    ALL: Final[list[str]] = [ADMIN, RECEPTION, WAITER, CASHIER, KITCHEN]

    DESCRIPTIONS: Final[dict[str, str]] = {
        ADMIN: "Acceso completo al sistema",
        RECEPTION: "Gestión de reservaciones, mesas y clientes",
        WAITER: "Toma de órdenes y atención de mesas",
        CASHIER: "Facturación y cobros",
        KITCHEN: "Preparación de órdenes",
    }


# Role groups for common access patterns
ALL_STAFF_ROLES: Final[frozenset[str]] = frozenset(Roles.ALL)
FLOOR_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.RECEPTION, Roles.WAITER})
RESERVATION_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.RECEPTION})
ORDER_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.WAITER, Roles.RECEPTION})
KITCHEN_ACCESS_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.KITCHEN, Roles.WAITER})
BILLING_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.CASHIER})
CLIENT_ROLES: Final[frozenset[str]] = frozenset(
    {Roles.ADMIN, Roles.RECEPTION, Roles.WAITER, Roles.CASHIER}
)
INVENTORY_ROLES: Final[frozenset[str]] = frozenset({Roles.ADMIN, Roles.KITCHEN})


# =============================================================================
# Entity Status Enums
# =============================================================================


class TableStatus(str, Enum):
    FREE = "FREE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    MAINTENANCE = "MAINTENANCE"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PREPARATION = "IN_PREPARATION"
    READY = "READY"
    DELIVERED = "DELIVERED"
    INVOICED = "INVOICED"
    CANCELLED = "CANCELLED"


class OrderType(str, Enum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    TRANSFER = "TRANSFER"


class MovementType(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    ADJUSTMENT = "ADJUSTMENT"


class EmailStatus(str, Enum):
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class EmailType(str, Enum):
    WELCOME_USER = "WELCOME_USER"
    CLIENT_REGISTRATION = "CLIENT_REGISTRATION"
    RESERVATION_CONFIRMATION = "RESERVATION_CONFIRMATION"
    RESERVATION_REMINDER = "RESERVATION_REMINDER"
    RESERVATION_CANCELLATION = "RESERVATION_CANCELLATION"
    INVOICE = "INVOICE"
    LOW_STOCK = "LOW_STOCK"


# Status groups
ACTIVE_ORDER_STATUSES: Final[tuple[OrderStatus, ...]] = (
    OrderStatus.PENDING,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
)
KITCHEN_ORDER_STATUSES: Final[tuple[OrderStatus, ...]] = (
    OrderStatus.PENDING,
    OrderStatus.IN_PREPARATION,
)
EDITABLE_ORDER_STATUSES: Final[tuple[OrderStatus, ...]] = (
    OrderStatus.PENDING,
    OrderStatus.IN_PREPARATION,
)
ACTIVE_RESERVATION_STATUSES: Final[tuple[ReservationStatus, ...]] = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.IN_PROGRESS,
)
WAITING_RESERVATION_STATUSES: Final[tuple[ReservationStatus, ...]] = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
)


# =============================================================================
# Transition tables (from -> allowed targets)
# =============================================================================


TABLE_TRANSITIONS: Final[dict[TableStatus, frozenset[TableStatus]]] = {
    TableStatus.FREE: frozenset({TableStatus.OCCUPIED, TableStatus.RESERVED, TableStatus.MAINTENANCE}),
    # Release requires no active orders; maintenance likewise
    TableStatus.OCCUPIED: frozenset({TableStatus.FREE, TableStatus.MAINTENANCE}),
    # A reserved table is occupied when the party arrives
    TableStatus.RESERVED: frozenset({TableStatus.FREE, TableStatus.OCCUPIED, TableStatus.MAINTENANCE}),
    TableStatus.MAINTENANCE: frozenset({TableStatus.FREE}),
}

RESERVATION_TRANSITIONS: Final[dict[ReservationStatus, frozenset[ReservationStatus]]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.IN_PROGRESS, ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW}
    ),
    ReservationStatus.IN_PROGRESS: frozenset({ReservationStatus.COMPLETED}),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}

ORDER_TRANSITIONS: Final[dict[OrderStatus, frozenset[OrderStatus]]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_PREPARATION, OrderStatus.CANCELLED}),
    OrderStatus.IN_PREPARATION: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.INVOICED, OrderStatus.CANCELLED}),
    OrderStatus.INVOICED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

INVOICE_TRANSITIONS: Final[dict[InvoiceStatus, frozenset[InvoiceStatus]]] = {
    InvoiceStatus.PENDING: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}


def can_transition(transitions: dict, current: Enum, target: Enum) -> bool:
    """Check a move against one of the transition tables above."""
    return target in transitions.get(current, frozenset())


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MAX_TABLE_CAPACITY: Final[int] = 20
    MAX_PARTY_SIZE: Final[int] = 20
    MIN_RESERVATION_MINUTES: Final[int] = 30
    MAX_RESERVATION_MINUTES: Final[int] = 480
    MAX_ITEM_QUANTITY: Final[int] = 99
    MAX_ITEMS_PER_ORDER: Final[int] = 50
    MAX_NOTES_LENGTH: Final[int] = 500
    MIN_PASSWORD_LENGTH: Final[int] = 8
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
    MAX_SEARCH_TERM_LENGTH: Final[int] = 100


# Dominican phone area codes
DOMINICAN_AREA_CODES: Final[frozenset[str]] = frozenset({"809", "829", "849"})


# =============================================================================
# User-facing Messages
# =============================================================================


class ErrorMessages:
    """Spanish messages shown to API clients."""

    INVALID_CREDENTIALS: Final[str] = "Credenciales inválidas"
    INACTIVE_USER: Final[str] = "Usuario inactivo"
    MISSING_TOKEN: Final[str] = "Token de autenticación requerido"
    INVALID_TOKEN: Final[str] = "Token inválido o expirado"
    CONCURRENT_MODIFICATION: Final[str] = (
        "El registro fue modificado por otra operación. Recargue e intente de nuevo."
    )
    REASON_REQUIRED: Final[str] = "Debe indicar un motivo"
    INTERNAL: Final[str] = "Error interno del servidor"
