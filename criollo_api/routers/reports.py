"""
Report endpoints. Every response is a typed DTO.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from criollo_api.services.domain import ReportService
from criollo_shared.config.constants import BILLING_ROLES, INVENTORY_ROLES, Roles
from criollo_shared.infrastructure.db import get_db
from criollo_shared.security.auth import require_admin, require_any_role
from criollo_shared.utils.report_schemas import (
    CategorySalesReport,
    DailySalesReport,
    DashboardReport,
    EmployeeSalesReport,
    InventoryReport,
    MovementReport,
    ProductSalesReport,
    ServiceTimeReport,
    TableOccupancyReport,
)

router = APIRouter(prefix="/api/Reporte", tags=["reports"])

sales_readers = require_any_role(BILLING_ROLES)
stock_readers = require_any_role(INVENTORY_ROLES)
managers = require_any_role(Roles.ADMIN, Roles.RECEPTION)


@router.get("/ventas/diarias", response_model=DailySalesReport)
def daily_sales(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(sales_readers),
) -> DailySalesReport:
    return ReportService(db).daily_sales(start_date, end_date)


@router.get("/ventas/productos", response_model=ProductSalesReport)
def product_sales(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    top: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    ctx: dict = Depends(sales_readers),
) -> ProductSalesReport:
    """Best sellers by quantity."""
    return ReportService(db).product_sales(start_date, end_date, top)


@router.get("/ventas/categorias", response_model=CategorySalesReport)
def category_sales(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(sales_readers),
) -> CategorySalesReport:
    return ReportService(db).category_sales(start_date, end_date)


@router.get("/ventas/meseros", response_model=EmployeeSalesReport)
def employee_sales(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(require_admin),
) -> EmployeeSalesReport:
    return ReportService(db).employee_sales(start_date, end_date)


@router.get("/operacional/ocupacion-mesas", response_model=TableOccupancyReport)
def table_occupancy(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(managers),
) -> TableOccupancyReport:
    return ReportService(db).table_occupancy(start_date, end_date)


@router.get("/operacional/tiempos-servicio", response_model=ServiceTimeReport)
def service_time(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(managers),
) -> ServiceTimeReport:
    return ReportService(db).service_time(start_date, end_date)


@router.get("/inventario/actual", response_model=InventoryReport)
def current_inventory(db: Session = Depends(get_db), ctx: dict = Depends(stock_readers)) -> InventoryReport:
    return ReportService(db).inventory()


@router.get("/inventario/movimientos", response_model=MovementReport)
def inventory_movements(
    start_date: date = Query(alias="desde"),
    end_date: date = Query(alias="hasta"),
    db: Session = Depends(get_db),
    ctx: dict = Depends(stock_readers),
) -> MovementReport:
    return ReportService(db).movements(start_date, end_date)


@router.get("/dashboard/ejecutivo", response_model=DashboardReport)
def executive_dashboard(db: Session = Depends(get_db), ctx: dict = Depends(require_admin)) -> DashboardReport:
    """Today at a glance: sales against yesterday, floor status, reservations and stock alerts."""
    return ReportService(db).dashboard()
