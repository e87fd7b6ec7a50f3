"""
Report Service.

Sales figures only count PAID invoices. Date ranges are inclusive calendar
days in restaurant local time.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from criollo_api.models import Category, Combo, Employee, Invoice, Order, OrderItem, Product, Reservation, Table
from criollo_shared.config.constants import (
    ACTIVE_ORDER_STATUSES,
    InvoiceStatus,
    OrderStatus,
    ReservationStatus,
    TableStatus,
)
from criollo_shared.utils.clock import day_bounds, now_local, today_local
from criollo_shared.utils.exceptions import ValidationError
from criollo_shared.utils.money import ZERO, money
from criollo_shared.utils.report_schemas import (
    CategorySalesReport,
    CategorySalesRow,
    DailySalesReport,
    DailySalesRow,
    DashboardReport,
    EmployeeSalesReport,
    EmployeeSalesRow,
    InventoryReport,
    InventoryReportRow,
    MovementReport,
    MovementReportRow,
    ProductSalesReport,
    ProductSalesRow,
    ServiceTimeReport,
    TableOccupancyReport,
    TableOccupancyRow,
)

from ..base_service import BaseService
from .inventory_service import InventoryService
from .table_service import TableService


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60


class ReportService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)
        self._inventory = InventoryService(db)
        self._tables = TableService(db)

    @staticmethod
    def _range(start_date: date, end_date: date):
        if end_date < start_date:
            raise ValidationError("La fecha final debe ser posterior a la inicial", field="end_date")
        start, _ = day_bounds(start_date)
        _, end = day_bounds(end_date)
        return start, end

    def _paid_invoices(self, start_date: date, end_date: date) -> list[Invoice]:
        start, end = self._range(start_date, end_date)
        return list(
            self._db.execute(
                select(Invoice)
                .where(
                    Invoice.status == InvoiceStatus.PAID,
                    Invoice.issued_at >= start,
                    Invoice.issued_at < end,
                )
                .order_by(Invoice.issued_at)
            ).scalars().all()
        )

    def _sold_lines(self, start_date: date, end_date: date):
        """(item, product, category, combo) rows of orders billed with a paid invoice."""
        start, end = self._range(start_date, end_date)
        return self._db.execute(
            select(OrderItem, Product, Category, Combo)
            .join(Order, OrderItem.order_id == Order.id)
            .join(Invoice, Invoice.order_id == Order.id)
            .outerjoin(Product, OrderItem.product_id == Product.id)
            .outerjoin(Category, Product.category_id == Category.id)
            .outerjoin(Combo, OrderItem.combo_id == Combo.id)
            .where(
                Invoice.status == InvoiceStatus.PAID,
                Invoice.issued_at >= start,
                Invoice.issued_at < end,
            )
        ).unique().all()

    # =========================================================================
    # Sales
    # =========================================================================

    def daily_sales(self, start_date: date, end_date: date) -> DailySalesReport:
        invoices = self._paid_invoices(start_date, end_date)
        by_day: dict[date, list[Invoice]] = defaultdict(list)
        for invoice in invoices:
            by_day[invoice.issued_at.date()].append(invoice)

        days = []
        current = start_date
        while current <= end_date:
            rows = by_day.get(current, [])
            days.append(
                DailySalesRow(
                    date=current,
                    invoices=len(rows),
                    subtotal=money(sum((i.subtotal for i in rows), ZERO)),
                    discounts=money(sum((i.discount for i in rows), ZERO)),
                    tax=money(sum((i.tax for i in rows), ZERO)),
                    tips=money(sum((i.tip for i in rows), ZERO)),
                    total=money(sum((i.total for i in rows), ZERO)),
                )
            )
            current += timedelta(days=1)

        total = money(sum((i.total for i in invoices), ZERO))
        return DailySalesReport(
            start_date=start_date,
            end_date=end_date,
            days=days,
            invoices=len(invoices),
            total=total,
            average_ticket=money(total / len(invoices)) if invoices else ZERO,
        )

    def product_sales(self, start_date: date, end_date: date, top: int = 10) -> ProductSalesReport:
        quantities: Counter[tuple[str, str | None]] = Counter()
        revenue: dict[tuple[str, str | None], Decimal] = defaultdict(lambda: ZERO)
        for item, product, category, combo in self._sold_lines(start_date, end_date):
            if product is not None:
                key = (product.name, category.name if category else None)
            else:
                key = (combo.name, "Combos")
            quantities[key] += item.quantity
            revenue[key] += item.subtotal

        ranked = sorted(quantities, key=lambda k: (-quantities[k], -revenue[k], k[0]))[:top]
        return ProductSalesReport(
            start_date=start_date,
            end_date=end_date,
            products=[
                ProductSalesRow(name=name, category=cat, quantity=quantities[(name, cat)], revenue=money(revenue[(name, cat)]))
                for name, cat in ranked
            ],
        )

    def category_sales(self, start_date: date, end_date: date) -> CategorySalesReport:
        quantities: Counter[str] = Counter()
        revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for item, product, category, _combo in self._sold_lines(start_date, end_date):
            name = category.name if product is not None and category else "Combos"
            quantities[name] += item.quantity
            revenue[name] += item.subtotal

        total = money(sum(revenue.values(), ZERO))
        rows = [
            CategorySalesRow(
                category=name,
                quantity=quantities[name],
                revenue=money(revenue[name]),
                percentage=round(float(revenue[name] * 100 / total), 2) if total else 0.0,
            )
            for name in sorted(revenue, key=lambda n: -revenue[n])
        ]
        return CategorySalesReport(start_date=start_date, end_date=end_date, categories=rows, total=total)

    def employee_sales(self, start_date: date, end_date: date) -> EmployeeSalesReport:
        grouped: dict[int | None, list[Invoice]] = defaultdict(list)
        for invoice in self._paid_invoices(start_date, end_date):
            grouped[invoice.employee_id].append(invoice)

        names = {
            e.id: e.full_name
            for e in self._db.execute(
                select(Employee).where(Employee.id.in_([k for k in grouped if k is not None]))
            ).scalars()
        }
        rows = []
        for employee_id, invoices in grouped.items():
            total = money(sum((i.total for i in invoices), ZERO))
            rows.append(
                EmployeeSalesRow(
                    employee_id=employee_id,
                    employee_name=names.get(employee_id, "Sin asignar"),
                    invoices=len(invoices),
                    total=total,
                    tips=money(sum((i.tip for i in invoices), ZERO)),
                    average_ticket=money(total / len(invoices)),
                )
            )
        rows.sort(key=lambda r: -r.total)
        return EmployeeSalesReport(start_date=start_date, end_date=end_date, employees=rows)

    # =========================================================================
    # Operations
    # =========================================================================

    def table_occupancy(self, start_date: date, end_date: date) -> TableOccupancyReport:
        """Orders, revenue and seated time (order creation to invoice) per table."""
        start, end = self._range(start_date, end_date)
        rows = self._db.execute(
            select(Order.table_id, Order.created_at, Invoice.issued_at, Invoice.total, Invoice.status)
            .join(Invoice, Invoice.order_id == Order.id, isouter=True)
            .where(
                Order.table_id.is_not(None),
                Order.created_at >= start,
                Order.created_at < end,
                Order.status != OrderStatus.CANCELLED,
            )
        ).all()

        orders: Counter[int] = Counter()
        revenue: dict[int, Decimal] = defaultdict(lambda: ZERO)
        minutes: dict[int, list[float]] = defaultdict(list)
        for table_id, created_at, issued_at, total, status in rows:
            orders[table_id] += 1
            if status == InvoiceStatus.PAID:
                revenue[table_id] += total
            if issued_at is not None:
                minutes[table_id].append(_minutes(issued_at - created_at))

        tables = self._db.execute(
            select(Table).where(Table.is_active.is_(True)).order_by(Table.number)
        ).scalars().all()
        return TableOccupancyReport(
            start_date=start_date,
            end_date=end_date,
            tables=[
                TableOccupancyRow(
                    table_id=t.id,
                    number=t.number,
                    capacity=t.capacity,
                    orders=orders[t.id],
                    revenue=money(revenue[t.id]),
                    average_minutes=round(sum(minutes[t.id]) / len(minutes[t.id]), 1) if minutes[t.id] else 0.0,
                )
                for t in tables
            ],
        )

    def service_time(self, start_date: date, end_date: date) -> ServiceTimeReport:
        """Minutes from order creation to its last update, over invoiced orders."""
        start, end = self._range(start_date, end_date)
        rows = self._db.execute(
            select(Order.created_at, Order.updated_at).where(
                Order.status == OrderStatus.INVOICED,
                Order.created_at >= start,
                Order.created_at < end,
                Order.updated_at.is_not(None),
            )
        ).all()
        durations = [_minutes(updated - created) for created, updated in rows]
        return ServiceTimeReport(
            start_date=start_date,
            end_date=end_date,
            orders=len(durations),
            average_minutes=round(sum(durations) / len(durations), 1) if durations else 0.0,
            min_minutes=round(min(durations), 1) if durations else 0.0,
            max_minutes=round(max(durations), 1) if durations else 0.0,
        )

    def inventory(self) -> InventoryReport:
        rows = [
            InventoryReportRow(
                product_id=inv.product_id,
                product_name=inv.product.name,
                category=inv.product.category.name if inv.product.category else None,
                available=inv.available,
                minimum=inv.minimum,
                is_low=inv.is_low,
                stock_value=money(inv.available * (inv.product.cost or inv.product.price)),
            )
            for inv in self._inventory.list_stock()
        ]
        return InventoryReport(
            generated_at=now_local(),
            products=rows,
            low_stock_count=sum(1 for r in rows if r.is_low),
            total_stock_value=money(sum((r.stock_value for r in rows), ZERO)),
        )

    def movements(self, start_date: date, end_date: date) -> MovementReport:
        start, end = self._range(start_date, end_date)
        movements = self._inventory.movements(start=start, end=end, limit=1000)
        totals: Counter[str] = Counter()
        for m in movements:
            totals[m.movement_type.value] += m.quantity
        return MovementReport(
            start_date=start_date,
            end_date=end_date,
            movements=[
                MovementReportRow(
                    created_at=m.created_at,
                    product_name=m.product.name,
                    movement_type=m.movement_type,
                    quantity=m.quantity,
                    stock_before=m.stock_before,
                    stock_after=m.stock_after,
                    reference=m.reference,
                    reason=m.reason,
                )
                for m in movements
            ],
            totals_by_type=dict(totals),
        )

    def dashboard(self) -> DashboardReport:
        today = today_local()
        yesterday = today - timedelta(days=1)
        paid_today = self._paid_invoices(today, today)
        sales_today = money(sum((i.total for i in paid_today), ZERO))
        sales_yesterday = money(sum((i.total for i in self._paid_invoices(yesterday, yesterday)), ZERO))
        if sales_yesterday:
            change = round(float((sales_today - sales_yesterday) * 100 / sales_yesterday), 2)
        else:
            change = 100.0 if sales_today else 0.0

        active_orders = self._db.scalar(
            select(func.count(Order.id)).where(Order.status.in_(ACTIVE_ORDER_STATUSES))
        ) or 0
        table_stats = self._tables.stats()
        start, end = day_bounds(today)
        reservations_today = self._db.scalar(
            select(func.count(Reservation.id)).where(
                Reservation.start_at >= start,
                Reservation.start_at < end,
                Reservation.status != ReservationStatus.CANCELLED,
            )
        ) or 0

        return DashboardReport(
            date=today,
            sales_today=sales_today,
            sales_yesterday=sales_yesterday,
            sales_change_percentage=change,
            invoices_today=len(paid_today),
            active_orders=active_orders,
            tables_by_status={
                TableStatus.FREE.value: table_stats.free,
                TableStatus.OCCUPIED.value: table_stats.occupied,
                TableStatus.RESERVED.value: table_stats.reserved,
                TableStatus.MAINTENANCE.value: table_stats.maintenance,
            },
            occupancy_percentage=table_stats.occupancy_percentage,
            reservations_today=reservations_today,
            low_stock_count=len(self._inventory.low_stock()),
        )
