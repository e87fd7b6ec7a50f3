"""
Shared Pydantic schemas used across the application.

Money fields are ``Decimal`` internally and serialized as JSON numbers.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, EmailStr, Field, PlainSerializer, field_validator, model_validator

from criollo_shared.config.constants import (
    InvoiceStatus,
    Limits,
    OrderStatus,
    OrderType,
    PaymentMethod,
    ReservationStatus,
    TableStatus,
)
from criollo_shared.utils.validators import validate_password_strength

# =============================================================================
# Common Types
# =============================================================================

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
NonNegativeAmount = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]

# Targets accepted by PATCH /api/Orden/{id}/estado; INVOICED is reached through billing
OrderStatusTarget = Literal["IN_PREPARATION", "READY", "DELIVERED", "CANCELLED"]


class MessageOutput(BaseModel):
    message: str


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Login with username or email."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class UserInfo(BaseModel):
    """Basic user information included in auth responses."""

    id: int
    username: str
    email: str
    role: str
    employee_id: int | None = None
    employee_name: str | None = None
    requires_password_change: bool = False
    last_login_at: datetime | None = None


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds
    user: UserInfo


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class RegisterUserRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(max_length=128)
    role: str
    employee_id: int | None = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return validate_password_strength(v)


# =============================================================================
# Table Schemas
# =============================================================================


class TableCreate(BaseModel):
    number: int = Field(gt=0)
    capacity: int = Field(gt=0, le=Limits.MAX_TABLE_CAPACITY)
    location: str | None = Field(default=None, max_length=100)


class TableUpdate(BaseModel):
    capacity: int | None = Field(default=None, gt=0, le=Limits.MAX_TABLE_CAPACITY)
    location: str | None = Field(default=None, max_length=100)


class TableOutput(BaseModel):
    id: int
    number: int
    capacity: int
    location: str | None = None
    status: TableStatus
    status_reason: str | None = None
    status_changed_at: datetime | None = None
    last_cleaned_at: datetime | None = None

    class Config:
        from_attributes = True


class TableStatusChange(BaseModel):
    status: TableStatus
    reason: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class MaintenanceRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=Limits.MAX_NOTES_LENGTH)


class TableAvailabilityOutput(BaseModel):
    table_id: int
    number: int
    available: bool
    status: TableStatus
    active_orders: int


class TableStatsOutput(BaseModel):
    total: int
    free: int
    occupied: int
    reserved: int
    maintenance: int
    occupancy_percentage: float
    total_capacity: int
    free_capacity: int


class TableAttentionOutput(BaseModel):
    table_id: int
    number: int
    status: TableStatus
    minutes_in_status: int
    reason: str
    last_order_number: str | None = None


class ResetTablesOutput(BaseModel):
    reset: list[int]
    skipped: list[int]


# =============================================================================
# Reservation Schemas
# =============================================================================


class ReservationCreate(BaseModel):
    client_id: int
    table_id: int | None = None  # picked automatically when omitted
    party_size: int = Field(gt=0, le=Limits.MAX_PARTY_SIZE)
    start_at: datetime
    duration_minutes: int | None = Field(
        default=None, ge=Limits.MIN_RESERVATION_MINUTES, le=Limits.MAX_RESERVATION_MINUTES
    )
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class ReservationUpdate(BaseModel):
    table_id: int | None = None
    party_size: int | None = Field(default=None, gt=0, le=Limits.MAX_PARTY_SIZE)
    start_at: datetime | None = None
    duration_minutes: int | None = Field(
        default=None, ge=Limits.MIN_RESERVATION_MINUTES, le=Limits.MAX_RESERVATION_MINUTES
    )
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class ReasonRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=Limits.MAX_NOTES_LENGTH)


class ReservationOutput(BaseModel):
    id: int
    table_id: int
    table_number: int | None = None
    client_id: int
    client_name: str | None = None
    party_size: int
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    notes: str | None = None
    status: ReservationStatus
    cancellation_reason: str | None = None
    confirmed_at: datetime | None = None
    arrived_at: datetime | None = None
    completed_at: datetime | None = None
    reminder_sent_at: datetime | None = None
    created_at: datetime


class AvailableSlotOutput(BaseModel):
    start_at: datetime
    end_at: datetime


class ReservationStatsOutput(BaseModel):
    start_date: date
    end_date: date
    total: int
    by_status: dict[str, int]
    no_show_rate: float
    average_party_size: float
    by_hour: dict[int, int]


class ExpireReservationsOutput(BaseModel):
    expired: list[int]


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    """One line: exactly one of product_id / combo_id."""

    product_id: int | None = None
    combo_id: int | None = None
    quantity: int = Field(gt=0, le=Limits.MAX_ITEM_QUANTITY)
    discount: NonNegativeAmount = Decimal("0.00")
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)

    @model_validator(mode="after")
    def _product_xor_combo(self) -> "OrderItemInput":
        if (self.product_id is None) == (self.combo_id is None):
            raise ValueError("Cada línea debe indicar un producto o un combo, no ambos")
        return self


class OrderCreate(BaseModel):
    order_type: OrderType = OrderType.DINE_IN
    table_id: int | None = None
    client_id: int | None = None
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    items: list[OrderItemInput] = Field(default_factory=list, max_length=Limits.MAX_ITEMS_PER_ORDER)

    @model_validator(mode="after")
    def _dine_in_requires_table(self) -> "OrderCreate":
        if self.order_type == OrderType.DINE_IN and self.table_id is None:
            raise ValueError("Las órdenes para comer en el local requieren una mesa")
        return self


class AddItemsRequest(BaseModel):
    items: list[OrderItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)


class OrderStatusChange(BaseModel):
    status: OrderStatusTarget
    reason: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class OrderItemOutput(BaseModel):
    id: int
    product_id: int | None = None
    combo_id: int | None = None
    name: str
    quantity: int
    unit_price: Money
    discount: Money
    subtotal: Money
    notes: str | None = None

    class Config:
        from_attributes = True


class OrderOutput(BaseModel):
    id: int
    order_number: str
    order_type: OrderType
    status: OrderStatus
    table_id: int | None = None
    table_number: int | None = None
    client_id: int | None = None
    client_name: str | None = None
    employee_id: int | None = None
    employee_name: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    items: list[OrderItemOutput] = []
    subtotal: Money
    created_at: datetime
    updated_at: datetime | None = None
    low_stock_products: list[str] = []


class OrderTotalsOutput(BaseModel):
    order_id: int
    subtotal: Money
    tax: Money
    total: Money
    item_count: int


class KitchenOrderOutput(BaseModel):
    id: int
    order_number: str
    order_type: OrderType
    status: OrderStatus
    table_number: int | None = None
    notes: str | None = None
    items: list[OrderItemOutput]
    created_at: datetime
    waiting_minutes: int
    is_delayed: bool


class KitchenSummaryOutput(BaseModel):
    pending: int
    in_preparation: int
    ready: int
    delayed: int


# =============================================================================
# Invoice Schemas
# =============================================================================


class InvoiceCreate(BaseModel):
    order_id: int
    client_id: int | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    discount: NonNegativeAmount = Decimal("0.00")
    tip: NonNegativeAmount | None = None
    tip_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    mark_paid: bool = True
    payment_notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)

    @model_validator(mode="after")
    def _single_tip_source(self) -> "InvoiceCreate":
        if self.tip is not None and self.tip_percentage is not None:
            raise ValueError("Indique la propina como monto o como porcentaje, no ambos")
        return self


class InvoicePayRequest(BaseModel):
    payment_method: PaymentMethod | None = None
    payment_notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class InvoiceEmailRequest(BaseModel):
    """Defaults to the client's address when omitted."""

    email: EmailStr | None = None


class InvoiceOutput(BaseModel):
    id: int
    invoice_number: str
    order_id: int
    order_number: str | None = None
    table_number: int | None = None
    client_id: int | None = None
    client_name: str | None = None
    employee_id: int | None = None
    subtotal: Money
    discount: Money
    tax: Money
    tip: Money
    total: Money
    payment_method: PaymentMethod
    status: InvoiceStatus
    issued_at: datetime
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    payment_notes: str | None = None


class BillingSummaryOutput(BaseModel):
    date: date
    invoice_count: int
    paid_count: int
    pending_count: int
    cancelled_count: int
    subtotal: Money
    discounts: Money
    tax: Money
    tips: Money
    total: Money
    average_ticket: Money
    by_payment_method: dict[str, Money]
