"""
Pydantic schemas for catalog, inventory, CRM and staff administration.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from criollo_shared.config.constants import Limits, MovementType
from criollo_shared.utils.schemas import Money, NonNegativeAmount, OrderItemInput
from criollo_shared.utils.validators import normalize_cedula, normalize_phone


# =============================================================================
# Categories
# =============================================================================


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None


class CategoryOutput(BaseModel):
    id: int
    name: str
    description: str | None = None
    is_active: bool
    product_count: int = 0


# =============================================================================
# Products
# =============================================================================


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    description: str | None = None
    category_id: int
    price: NonNegativeAmount
    cost: NonNegativeAmount | None = None
    preparation_minutes: int = Field(default=15, ge=0, le=240)
    image_url: str | None = None
    is_available: bool = True
    track_stock: bool = True
    initial_stock: int = Field(default=0, ge=0)
    minimum_stock: int | None = Field(default=None, ge=0)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=150)
    description: str | None = None
    category_id: int | None = None
    price: NonNegativeAmount | None = None
    cost: NonNegativeAmount | None = None
    preparation_minutes: int | None = Field(default=None, ge=0, le=240)
    image_url: str | None = None


class ProductOutput(BaseModel):
    id: int
    name: str
    description: str | None = None
    category_id: int
    category_name: str | None = None
    price: Money
    cost: Money | None = None
    preparation_minutes: int
    image_url: str | None = None
    is_available: bool
    stock: int | None = None
    minimum_stock: int | None = None
    low_stock: bool = False


class AvailabilityToggle(BaseModel):
    is_available: bool


class MenuCategoryOutput(BaseModel):
    category_id: int
    category_name: str
    products: list[ProductOutput]


class ComboItemInput(BaseModel):
    product_id: int
    quantity: int = Field(default=1, gt=0, le=Limits.MAX_ITEM_QUANTITY)


class ComboCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    description: str | None = None
    price: NonNegativeAmount
    discount: NonNegativeAmount = Decimal("0.00")
    items: list[ComboItemInput] = Field(min_length=1)

    @model_validator(mode="after")
    def _discount_within_price(self) -> "ComboCreate":
        if self.discount > self.price:
            raise ValueError("El descuento del combo no puede superar su precio")
        return self


class ComboItemOutput(BaseModel):
    product_id: int
    product_name: str
    quantity: int


class ComboOutput(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: Money
    discount: Money
    final_price: Money
    is_available: bool
    items: list[ComboItemOutput]


class PriceQuoteRequest(BaseModel):
    items: list[OrderItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)


class PriceQuoteLine(BaseModel):
    name: str
    quantity: int
    unit_price: Money
    discount: Money
    subtotal: Money


class PriceQuoteOutput(BaseModel):
    lines: list[PriceQuoteLine]
    subtotal: Money
    tax: Money
    total: Money


class AvailabilityCheckOutput(BaseModel):
    available: bool
    unavailable: list[str]
    insufficient_stock: list[str]
    low_stock: list[str]


# =============================================================================
# Inventory
# =============================================================================


class InventoryOutput(BaseModel):
    product_id: int
    product_name: str
    category_name: str | None = None
    available: int
    minimum: int
    unit: str
    is_low: bool
    last_restocked_at: datetime | None = None


class MovementCreate(BaseModel):
    product_id: int
    movement_type: MovementType
    quantity: int = Field(ge=0)
    reason: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    reference: str | None = Field(default=None, max_length=50)


class MovementOutput(BaseModel):
    id: int
    product_id: int
    product_name: str | None = None
    movement_type: MovementType
    quantity: int
    stock_before: int
    stock_after: int
    reference: str | None = None
    reason: str | None = None
    user_id: int | None = None
    created_at: datetime


class MinimumStockUpdate(BaseModel):
    minimum: int = Field(ge=0)


# =============================================================================
# Clients
# =============================================================================


class _PersonFields(BaseModel):
    """Cedula and phone normalization shared by clients and employees."""

    @field_validator("cedula", mode="before", check_fields=False)
    @classmethod
    def _valid_cedula(cls, v):
        if v in (None, ""):
            return None
        return normalize_cedula(v)

    @field_validator("phone", mode="before", check_fields=False)
    @classmethod
    def _valid_phone(cls, v):
        if v in (None, ""):
            return None
        return normalize_phone(v)


class ClientCreate(_PersonFields):
    cedula: str | None = None
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = None
    email: EmailStr | None = None
    address: str | None = None
    birth_date: date | None = None
    category: str = Field(default="Regular", max_length=20)


class ClientUpdate(_PersonFields):
    cedula: str | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = None
    email: EmailStr | None = None
    address: str | None = None
    birth_date: date | None = None
    category: str | None = Field(default=None, max_length=20)


class ClientOutput(BaseModel):
    id: int
    cedula: str | None = None
    first_name: str
    last_name: str
    full_name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    birth_date: date | None = None
    category: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ClientStatsOutput(BaseModel):
    client_id: int
    full_name: str
    visits: int
    total_spent: Money
    average_ticket: Money
    last_visit: datetime | None = None
    reservations: int
    no_shows: int


class FrequentClientOutput(BaseModel):
    client_id: int
    full_name: str
    visits: int
    total_spent: Money


# =============================================================================
# Employees and users
# =============================================================================


class EmployeeCreate(_PersonFields):
    cedula: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = None
    email: EmailStr | None = None
    position: str | None = Field(default=None, max_length=100)
    hire_date: date | None = None
    salary: NonNegativeAmount | None = None


class EmployeeUpdate(_PersonFields):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = None
    email: EmailStr | None = None
    position: str | None = Field(default=None, max_length=100)
    salary: NonNegativeAmount | None = None


class EmployeeOutput(BaseModel):
    id: int
    cedula: str
    first_name: str
    last_name: str
    full_name: str
    phone: str | None = None
    email: str | None = None
    position: str | None = None
    hire_date: date | None = None
    salary: Money | None = None
    user_id: int | None = None
    is_active: bool

    class Config:
        from_attributes = True


class LinkUserRequest(BaseModel):
    user_id: int


class UserOutput(BaseModel):
    id: int
    username: str
    email: str
    role: str
    is_active: bool
    requires_password_change: bool
    last_login_at: datetime | None = None
    employee_id: int | None = None
    employee_name: str | None = None
    created_at: datetime


class UserStatusUpdate(BaseModel):
    is_active: bool
