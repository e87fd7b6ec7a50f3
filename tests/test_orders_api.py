"""
End-to-end tests for the order flow: a waiter takes the order, the kitchen
prepares it and the cashier bills it.
"""

import pytest


@pytest.fixture
def pollo_order(client, waiter_headers, table_by_number, product_by_name):
    """Two Pollo Guisado on table 5, placed through the API."""
    def _create(quantity: int = 2):
        response = client.post(
            "/api/Orden",
            json={
                "table_id": table_by_number(5).id,
                "items": [{"product_id": product_by_name("Pollo Guisado").id, "quantity": quantity}],
            },
            headers=waiter_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


class TestOrderFlow:

    def test_table_five_dinner(
        self, client, pollo_order, waiter_headers, kitchen_headers, cashier_headers, table_by_number
    ):
        """Should run the whole dinner and leave table 5 free again."""
        order = pollo_order()
        assert order["status"] == "PENDING"
        assert order["subtotal"] == 700.0
        assert order["table_number"] == 5
        assert order["employee_name"] is not None

        table_id = table_by_number(5).id
        table = client.get(f"/api/Mesas/{table_id}", headers=waiter_headers).json()
        assert table["status"] == "OCCUPIED"

        assert client.post(f"/api/Orden/{order['id']}/preparar", headers=kitchen_headers).status_code == 200
        assert client.post(f"/api/Orden/{order['id']}/lista", headers=kitchen_headers).json()["status"] == "READY"
        delivered = client.post(f"/api/Orden/{order['id']}/entregar", headers=waiter_headers)
        assert delivered.json()["status"] == "DELIVERED"

        invoice = client.post(
            "/api/Factura",
            json={"order_id": order["id"], "tip_percentage": 10, "payment_method": "CASH"},
            headers=cashier_headers,
        )

        assert invoice.status_code == 201, invoice.text
        data = invoice.json()
        assert data["subtotal"] == 700.0
        assert data["tax"] == 126.0
        assert data["tip"] == 70.0
        assert data["total"] == 896.0
        assert data["status"] == "PAID"
        assert data["table_number"] == 5

        table = client.get(f"/api/Mesas/{table_id}", headers=waiter_headers).json()
        assert table["status"] == "FREE"
        order_after = client.get(f"/api/Orden/{order['id']}", headers=waiter_headers).json()
        assert order_after["status"] == "INVOICED"

    def test_totals_preview(self, client, pollo_order, waiter_headers):
        order = pollo_order()
        totals = client.get(f"/api/Orden/{order['id']}/totales", headers=waiter_headers).json()

        assert totals["subtotal"] == 700.0
        assert totals["tax"] == 126.0
        assert totals["total"] == 826.0
        assert totals["item_count"] == 2

    def test_status_endpoint_rejects_skipping(self, client, pollo_order, waiter_headers):
        order = pollo_order()

        response = client.put(
            f"/api/Orden/{order['id']}/estado", json={"status": "DELIVERED"}, headers=waiter_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidOrderTransition"

    def test_status_endpoint_does_not_accept_invoiced(self, client, pollo_order, waiter_headers):
        order = pollo_order()
        response = client.put(
            f"/api/Orden/{order['id']}/estado", json={"status": "INVOICED"}, headers=waiter_headers
        )
        assert response.status_code == 400

    def test_cashier_cannot_take_orders(self, client, cashier_headers, table_by_number, product_by_name):
        response = client.post(
            "/api/Orden",
            json={
                "table_id": table_by_number(5).id,
                "items": [{"product_id": product_by_name("Tostones").id, "quantity": 1}],
            },
            headers=cashier_headers,
        )
        assert response.status_code == 403

    def test_waiter_cannot_bill(self, client, pollo_order, waiter_headers):
        order = pollo_order()
        response = client.post("/api/Factura", json={"order_id": order["id"]}, headers=waiter_headers)
        assert response.status_code == 403

    def test_invoice_before_delivery_rejected(self, client, pollo_order, cashier_headers):
        order = pollo_order()
        response = client.post("/api/Factura", json={"order_id": order["id"]}, headers=cashier_headers)
        assert response.status_code == 400

    def test_cancel_order_releases_table(self, client, pollo_order, waiter_headers, table_by_number):
        order = pollo_order()

        response = client.post(
            f"/api/Orden/{order['id']}/cancelar", json={"reason": "Cliente se retiró"}, headers=waiter_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        table = client.get(f"/api/Mesas/{table_by_number(5).id}", headers=waiter_headers).json()
        assert table["status"] == "FREE"


class TestOrderStock:

    def test_anonymous_order_rejected(self, client):
        response = client.post(
            "/api/Orden",
            json={"order_type": "TAKEOUT", "items": [{"product_id": 1, "quantity": 1}]},
        )
        assert response.status_code == 401

    def test_insufficient_stock_rejected(self, client, waiter_headers, product_by_name):
        response = client.post(
            "/api/Orden",
            json={
                "order_type": "TAKEOUT",
                "items": [{"product_id": product_by_name("Chivo Guisado").id, "quantity": 21}],
            },
            headers=waiter_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "InsufficientStock"

    def test_low_stock_alert_is_emailed(self, client, waiter_headers, product_by_name, mail_transport):
        response = client.post(
            "/api/Orden",
            json={
                "order_type": "TAKEOUT",
                "items": [{"product_id": product_by_name("Pescado Frito con Tostones").id, "quantity": 12}],
            },
            headers=waiter_headers,
        )

        assert response.status_code == 201
        assert response.json()["low_stock_products"] == ["Pescado Frito con Tostones"]
        assert mail_transport.recipients == ["gerencia@elcriollo.com.do"]

    def test_unknown_order(self, client, waiter_headers):
        response = client.get("/api/Orden/99999", headers=waiter_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "NotFound"


class TestKitchen:

    def test_kitchen_sees_queue(self, client, pollo_order, kitchen_headers):
        order = pollo_order()

        queue = client.get("/api/Orden/cocina", headers=kitchen_headers).json()
        summary = client.get("/api/Orden/cocina/resumen", headers=kitchen_headers).json()

        assert [o["order_number"] for o in queue] == [order["order_number"]]
        assert queue[0]["is_delayed"] is False
        assert summary["pending"] == 1


class TestInvoiceEmail:

    def test_invoice_email_goes_to_client(
        self, client, waiter_headers, kitchen_headers, cashier_headers, table_by_number, product_by_name,
        seed_client, mail_transport,
    ):
        order = client.post(
            "/api/Orden",
            json={
                "table_id": table_by_number(3).id,
                "client_id": seed_client.id,
                "items": [{"product_id": product_by_name("Sancocho de Siete Carnes").id, "quantity": 1}],
            },
            headers=waiter_headers,
        ).json()
        for step in ("preparar", "lista"):
            client.post(f"/api/Orden/{order['id']}/{step}", headers=kitchen_headers)
        client.post(f"/api/Orden/{order['id']}/entregar", headers=waiter_headers)

        response = client.post("/api/Factura", json={"order_id": order["id"]}, headers=cashier_headers)

        assert response.status_code == 201
        assert response.json()["total"] == 649.0
        assert mail_transport.recipients == ["maria.rodriguez@gmail.com"]
