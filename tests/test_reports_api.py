"""
Tests for the report endpoints.
"""

import pytest

from criollo_api.services.domain import BillingService, OrderService
from criollo_shared.config.constants import OrderStatus
from criollo_shared.utils.clock import today_local
from criollo_shared.utils.schemas import InvoiceCreate, OrderCreate, OrderItemInput


@pytest.fixture
def billed_dinner(db_session, table_by_number, product_by_name):
    """Pollo Guisado x2 and Tostones x1 on table 5, paid with a 10% tip."""
    orders = OrderService(db_session)
    order, _ = orders.create_order(
        OrderCreate(
            table_id=table_by_number(5).id,
            items=[
                OrderItemInput(product_id=product_by_name("Pollo Guisado").id, quantity=2),
                OrderItemInput(product_id=product_by_name("Tostones").id, quantity=1),
            ],
        )
    )
    for target in (OrderStatus.IN_PREPARATION, OrderStatus.READY, OrderStatus.DELIVERED):
        orders.change_status(order.id, target)
    return BillingService(db_session).generate(InvoiceCreate(order_id=order.id, tip_percentage=10))


def _today_range():
    today = today_local().isoformat()
    return {"desde": today, "hasta": today}


class TestSalesReports:

    def test_daily_sales(self, client, cashier_headers, billed_dinner):
        response = client.get("/api/Reporte/ventas/diarias", params=_today_range(), headers=cashier_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["invoices"] == 1
        # 850 + 153 ITBIS + 85 tip
        assert data["total"] == 1088.0
        assert data["days"][0]["tax"] == 153.0

    def test_product_sales_ranked_by_quantity(self, client, cashier_headers, billed_dinner):
        response = client.get("/api/Reporte/ventas/productos", params=_today_range(), headers=cashier_headers)

        products = response.json()["products"]
        assert [p["name"] for p in products] == ["Pollo Guisado", "Tostones"]
        assert products[0]["revenue"] == 700.0

    def test_category_sales(self, client, cashier_headers, billed_dinner):
        response = client.get("/api/Reporte/ventas/categorias", params=_today_range(), headers=cashier_headers)

        data = response.json()
        assert data["total"] == 850.0
        assert sum(row["percentage"] for row in data["categories"]) == pytest.approx(100.0)

    def test_inverted_range_rejected(self, client, cashier_headers):
        response = client.get(
            "/api/Reporte/ventas/diarias",
            params={"desde": "2025-03-10", "hasta": "2025-03-01"},
            headers=cashier_headers,
        )
        assert response.status_code == 400

    def test_waiter_cannot_read_sales(self, client, waiter_headers):
        response = client.get("/api/Reporte/ventas/diarias", params=_today_range(), headers=waiter_headers)
        assert response.status_code == 403

    def test_employee_sales_admin_only(self, client, cashier_headers, admin_headers, billed_dinner):
        forbidden = client.get("/api/Reporte/ventas/meseros", params=_today_range(), headers=cashier_headers)
        allowed = client.get("/api/Reporte/ventas/meseros", params=_today_range(), headers=admin_headers)

        assert forbidden.status_code == 403
        assert allowed.status_code == 200


class TestOperationalReports:

    def test_table_occupancy(self, client, admin_headers, billed_dinner):
        response = client.get(
            "/api/Reporte/operacional/ocupacion-mesas", params=_today_range(), headers=admin_headers
        )

        rows = {row["number"]: row for row in response.json()["tables"]}
        assert rows[5]["orders"] == 1
        assert rows[5]["revenue"] == 1088.0

    def test_service_time(self, client, reception_headers, billed_dinner):
        response = client.get(
            "/api/Reporte/operacional/tiempos-servicio", params=_today_range(), headers=reception_headers
        )
        assert response.json()["orders"] == 1


class TestInventoryReports:

    def test_current_inventory(self, client, kitchen_headers):
        response = client.get("/api/Reporte/inventario/actual", headers=kitchen_headers)

        data = response.json()
        assert len(data["products"]) == 14
        assert data["low_stock_count"] == 0
        assert data["total_stock_value"] > 0


class TestDashboard:

    def test_dashboard_after_dinner(self, client, admin_headers, billed_dinner):
        response = client.get("/api/Reporte/dashboard/ejecutivo", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["sales_today"] == 1088.0
        assert data["sales_change_percentage"] == 100.0
        assert data["invoices_today"] == 1
        assert data["active_orders"] == 0
        assert data["tables_by_status"]["FREE"] == 10

    def test_dashboard_admin_only(self, client, cashier_headers):
        response = client.get("/api/Reporte/dashboard/ejecutivo", headers=cashier_headers)
        assert response.status_code == 403
