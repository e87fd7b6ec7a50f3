"""
Typed report DTOs returned by /api/Reporte.
"""

from datetime import date, datetime

from pydantic import BaseModel

from criollo_shared.config.constants import MovementType
from criollo_shared.utils.schemas import Money


class DailySalesRow(BaseModel):
    date: date
    invoices: int
    subtotal: Money
    discounts: Money
    tax: Money
    tips: Money
    total: Money


class DailySalesReport(BaseModel):
    start_date: date
    end_date: date
    days: list[DailySalesRow]
    invoices: int
    total: Money
    average_ticket: Money


class ProductSalesRow(BaseModel):
    name: str
    category: str | None = None
    quantity: int
    revenue: Money


class ProductSalesReport(BaseModel):
    start_date: date
    end_date: date
    products: list[ProductSalesRow]


class CategorySalesRow(BaseModel):
    category: str
    quantity: int
    revenue: Money
    percentage: float


class CategorySalesReport(BaseModel):
    start_date: date
    end_date: date
    categories: list[CategorySalesRow]
    total: Money


class EmployeeSalesRow(BaseModel):
    employee_id: int | None = None
    employee_name: str
    invoices: int
    total: Money
    tips: Money
    average_ticket: Money


class EmployeeSalesReport(BaseModel):
    start_date: date
    end_date: date
    employees: list[EmployeeSalesRow]


class TableOccupancyRow(BaseModel):
    table_id: int
    number: int
    capacity: int
    orders: int
    revenue: Money
    average_minutes: float


class TableOccupancyReport(BaseModel):
    start_date: date
    end_date: date
    tables: list[TableOccupancyRow]


class ServiceTimeReport(BaseModel):
    start_date: date
    end_date: date
    orders: int
    average_minutes: float
    min_minutes: float
    max_minutes: float


class InventoryReportRow(BaseModel):
    product_id: int
    product_name: str
    category: str | None = None
    available: int
    minimum: int
    is_low: bool
    stock_value: Money


class InventoryReport(BaseModel):
    generated_at: datetime
    products: list[InventoryReportRow]
    low_stock_count: int
    total_stock_value: Money


class MovementReportRow(BaseModel):
    created_at: datetime
    product_name: str
    movement_type: MovementType
    quantity: int
    stock_before: int
    stock_after: int
    reference: str | None = None
    reason: str | None = None


class MovementReport(BaseModel):
    start_date: date
    end_date: date
    movements: list[MovementReportRow]
    totals_by_type: dict[str, int]


class DashboardReport(BaseModel):
    date: date
    sales_today: Money
    sales_yesterday: Money
    sales_change_percentage: float
    invoices_today: int
    active_orders: int
    tables_by_status: dict[str, int]
    occupancy_percentage: float
    reservations_today: int
    low_stock_count: int
