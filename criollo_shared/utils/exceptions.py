"""
Centralized HTTP exceptions for consistent error handling.

Every exception carries a machine-readable ``code`` next to the Spanish
``detail`` so the frontend can branch on it without parsing messages.

Usage:
    from criollo_shared.utils.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Mesa", table_id)
    raise ValidationError("La cantidad debe ser mayor que cero", field="quantity")
"""

from typing import Any

from fastapi import HTTPException, status

from criollo_shared.config.constants import ErrorMessages
from criollo_shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    code: str = "Error"

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        code: str | None = None,
        **log_context: Any,
    ):
        if code is not None:
            self.code = code

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, code=self.code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Producto", 123)
    """

    code = "NotFound"

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} con ID {entity_id} no encontrado"
        else:
            detail = f"{entity} no encontrado"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 401 / 403 Errors
# =============================================================================


class UnauthorizedError(AppException):
    """Missing or invalid credentials (401)."""

    code = "Unauthorized"

    def __init__(self, detail: str = ErrorMessages.INVALID_TOKEN, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            log_level="warning",
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("anular facturas")
    """

    code = "Forbidden"

    def __init__(self, action: str | None = None, **log_context: Any):
        if action:
            detail = f"No autorizado para {action}"
        else:
            detail = "Acceso denegado"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            action=action,
            **log_context,
        )


class InsufficientRoleError(ForbiddenError):
    """User doesn't have the required role."""

    def __init__(self, required_roles: list[str], **log_context: Any):
        roles_str = ", ".join(sorted(required_roles))
        super().__init__(
            f"realizar esta acción (requiere rol: {roles_str})",
            required_roles=required_roles,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("El precio debe ser positivo")
        raise ValidationError("Cantidad inválida", field="quantity", value=-1)
    """

    code = "ValidationError"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class InvalidStateError(ValidationError):
    """Entity is in an invalid state for the operation."""

    code = "InvalidState"

    def __init__(
        self,
        entity: str,
        current_state: str,
        expected_states: list[str] | None = None,
        **log_context: Any,
    ):
        if expected_states:
            states_str = ", ".join(expected_states)
            detail = f"{entity} está en estado '{current_state}', se esperaba: {states_str}"
        else:
            detail = f"{entity} no puede estar en estado '{current_state}' para esta operación"

        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


class InvalidTransitionError(ValidationError):
    """Invalid status transition."""

    code = "InvalidStateTransition"

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        detail = f"Transición inválida de '{from_status}' a '{to_status}' para {entity}"
        super().__init__(
            detail, entity=entity, from_status=from_status, to_status=to_status, **log_context
        )


class DuplicateEntityError(AppException):
    """Entity already exists (409)."""

    code = "Duplicate"

    def __init__(self, entity: str, identifier: str | None = None, **log_context: Any):
        if identifier:
            detail = f"{entity} con identificador '{identifier}' ya existe"
        else:
            detail = f"{entity} ya existe"

        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            entity=entity,
            identifier=identifier,
            **log_context,
        )


# Table ------------------------------------------------------------------------


class TableInvalidTransitionError(InvalidTransitionError):
    """Table state machine guard violated."""

    code = "InvalidTransition"

    def __init__(self, table_id: int, from_status: str, to_status: str, **log_context: Any):
        super().__init__("Mesa", from_status, to_status, table_id=table_id, **log_context)


class HasPendingOrdersError(ValidationError):
    """The table still holds orders that are not invoiced or cancelled."""

    code = "HasPendingOrders"

    def __init__(self, table_id: int, pending: int, **log_context: Any):
        super().__init__(
            f"La mesa {table_id} tiene {pending} orden(es) activa(s) pendientes de facturar",
            table_id=table_id,
            pending=pending,
            **log_context,
        )


# Reservation ------------------------------------------------------------------


class InvalidReservationStateError(InvalidTransitionError):
    code = "InvalidReservationState"

    def __init__(self, reservation_id: int, from_status: str, to_status: str, **log_context: Any):
        super().__init__(
            "Reservación", from_status, to_status, reservation_id=reservation_id, **log_context
        )


# Order ------------------------------------------------------------------------


class InvalidOrderTransitionError(InvalidTransitionError):
    code = "InvalidOrderTransition"

    def __init__(self, order_id: int, from_status: str, to_status: str, **log_context: Any):
        super().__init__("Orden", from_status, to_status, order_id=order_id, **log_context)


class OrderLockedError(InvalidStateError):
    """Items can only be added while the order is pending or in preparation."""

    code = "OrderLocked"

    def __init__(self, order_id: int, current_state: str, **log_context: Any):
        super().__init__(
            "Orden",
            current_state,
            expected_states=["PENDING", "IN_PREPARATION"],
            order_id=order_id,
            **log_context,
        )


class AlreadyInvoicedError(ValidationError):
    code = "AlreadyInvoiced"

    def __init__(self, order_id: int, **log_context: Any):
        super().__init__(
            f"La orden {order_id} ya fue facturada", order_id=order_id, **log_context
        )


class InsufficientStockError(ValidationError):
    code = "InsufficientStock"

    def __init__(self, product_name: str, available: int, requested: int, **log_context: Any):
        super().__init__(
            f"Stock insuficiente para '{product_name}': disponible {available}, solicitado {requested}",
            product=product_name,
            available=available,
            requested=requested,
            **log_context,
        )


# Invoice ----------------------------------------------------------------------


class InvoiceLockedError(InvalidStateError):
    """Paid or cancelled invoices are immutable."""

    code = "InvoiceLocked"

    def __init__(self, invoice_id: int, current_state: str, **log_context: Any):
        super().__init__(
            "Factura",
            current_state,
            expected_states=["PENDING"],
            invoice_id=invoice_id,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("La mesa ya tiene una reservación en ese horario")
    """

    code = "Conflict"

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class ReservationConflictError(ConflictError):
    code = "ReservationConflict"

    def __init__(self, table_id: int, conflicting_id: int, **log_context: Any):
        super().__init__(
            f"La mesa {table_id} ya tiene la reservación {conflicting_id} en ese horario",
            table_id=table_id,
            conflicting_id=conflicting_id,
            **log_context,
        )


class ConcurrentModificationError(ConflictError):
    """Optimistic version check failed on commit."""

    code = "ConcurrentModification"

    def __init__(self, **log_context: Any):
        super().__init__(ErrorMessages.CONCURRENT_MODIFICATION, **log_context)


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """Internal server error (500)."""

    code = "InternalError"

    def __init__(self, detail: str = ErrorMessages.INTERNAL, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Error de base de datos durante {operation}. Por favor intente de nuevo."
        super().__init__(detail, operation=operation, **log_context)
