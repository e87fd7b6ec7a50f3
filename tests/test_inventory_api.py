"""
Tests for the inventory endpoints and low-stock alerts.
"""


class TestInventoryEndpoints:

    def test_list_stock(self, client, waiter_headers):
        response = client.get("/api/Inventario", headers=waiter_headers)

        assert response.status_code == 200
        assert len(response.json()) == 14
        assert not any(row["is_low"] for row in response.json())

    def test_product_stock(self, client, waiter_headers, product_by_name):
        product = product_by_name("Cerveza Presidente")

        data = client.get(f"/api/Inventario/producto/{product.id}", headers=waiter_headers).json()

        assert data["available"] == 120
        assert data["minimum"] == 5
        assert data["product_name"] == "Cerveza Presidente"

    def test_entry_by_kitchen(self, client, kitchen_headers, product_by_name, mail_transport):
        product = product_by_name("Yuca con Cebolla")

        response = client.post(
            "/api/Inventario/movimientos",
            json={"product_id": product.id, "movement_type": "ENTRY", "quantity": 10, "reference": "OC-77"},
            headers=kitchen_headers,
        )

        assert response.status_code == 201
        assert response.json()["stock_after"] == 50
        assert mail_transport.messages == []

    def test_exit_below_minimum_sends_alert(self, client, kitchen_headers, product_by_name, mail_transport):
        product = product_by_name("Dulce de Leche Cortado")

        response = client.post(
            "/api/Inventario/movimientos",
            json={"product_id": product.id, "movement_type": "EXIT", "quantity": 17, "reason": "Merma"},
            headers=kitchen_headers,
        )

        assert response.status_code == 201
        assert response.json()["stock_after"] == 3
        assert mail_transport.recipients == ["gerencia@elcriollo.com.do"]

        low = client.get("/api/Inventario/stock-bajo", headers=kitchen_headers).json()
        assert [row["product_id"] for row in low] == [product.id]

    def test_adjustment_to_zero_lists_out_of_stock(self, client, admin_headers, product_by_name):
        product = product_by_name("Moro de Guandules")
        client.post(
            "/api/Inventario/movimientos",
            json={"product_id": product.id, "movement_type": "ADJUSTMENT", "quantity": 0, "reason": "Conteo"},
            headers=admin_headers,
        )

        response = client.get("/api/Inventario/agotados", headers=admin_headers)

        assert [row["product_name"] for row in response.json()] == ["Moro de Guandules"]

    def test_exit_beyond_stock(self, client, kitchen_headers, product_by_name):
        response = client.post(
            "/api/Inventario/movimientos",
            json={
                "product_id": product_by_name("Mangú con Los Tres Golpes").id,
                "movement_type": "EXIT",
                "quantity": 31,
            },
            headers=kitchen_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "InsufficientStock"

    def test_waiter_cannot_move_stock(self, client, waiter_headers, product_by_name):
        response = client.post(
            "/api/Inventario/movimientos",
            json={"product_id": product_by_name("Moro de Guandules").id, "movement_type": "ENTRY", "quantity": 1},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_update_minimum(self, client, admin_headers, product_by_name):
        product = product_by_name("Sancocho de Siete Carnes")

        response = client.put(
            f"/api/Inventario/producto/{product.id}/stock-minimo", json={"minimum": 30}, headers=admin_headers
        )

        assert response.json()["minimum"] == 30
        assert response.json()["is_low"] is True

    def test_movement_history_filtered_by_product(self, client, kitchen_headers, product_by_name):
        product = product_by_name("Tostones")
        client.post(
            "/api/Inventario/movimientos",
            json={"product_id": product.id, "movement_type": "ENTRY", "quantity": 5},
            headers=kitchen_headers,
        )

        response = client.get(
            "/api/Inventario/movimientos", params={"producto": product.id}, headers=kitchen_headers
        )

        assert [m["movement_type"] for m in response.json()] == ["ENTRY"]
