"""
Tests for the table endpoints.
"""


class TestTableEndpoints:

    def test_list_tables(self, client, waiter_headers):
        response = client.get("/api/Mesas", headers=waiter_headers)

        assert response.status_code == 200
        assert [t["number"] for t in response.json()] == list(range(1, 11))

    def test_list_requires_token(self, client):
        assert client.get("/api/Mesas").status_code == 401

    def test_available_for_party(self, client, waiter_headers):
        response = client.get("/api/Mesas/disponibles", params={"personas": 7}, headers=waiter_headers)
        assert [t["capacity"] for t in response.json()] == [8, 10]

    def test_best_available(self, client, waiter_headers):
        response = client.get("/api/Mesas/mejor-disponible", params={"personas": 5}, headers=waiter_headers)
        assert response.json()["number"] == 6

    def test_occupy_release_and_stats(self, client, waiter_headers, table_by_number):
        table_id = table_by_number(1).id

        occupied = client.post(f"/api/Mesas/{table_id}/ocupar", headers=waiter_headers)
        assert occupied.json()["status"] == "OCCUPIED"

        stats = client.get("/api/Mesas/estadisticas", headers=waiter_headers).json()
        assert stats["occupied"] == 1
        assert stats["occupancy_percentage"] == 10.0
        assert stats["total_capacity"] == 50

        released = client.post(f"/api/Mesas/{table_id}/liberar", headers=waiter_headers)
        assert released.json()["status"] == "FREE"

    def test_occupy_twice_rejected(self, client, waiter_headers, table_by_number):
        table_id = table_by_number(2).id
        client.post(f"/api/Mesas/{table_id}/ocupar", headers=waiter_headers)

        response = client.post(f"/api/Mesas/{table_id}/ocupar", headers=waiter_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidTransition"

    def test_maintenance_cycle(self, client, waiter_headers, table_by_number):
        table_id = table_by_number(4).id

        response = client.post(
            f"/api/Mesas/{table_id}/mantenimiento", json={"reason": "Pata floja"}, headers=waiter_headers
        )
        assert response.json()["status"] == "MAINTENANCE"
        assert response.json()["status_reason"] == "Pata floja"

        done = client.post(f"/api/Mesas/{table_id}/completar-mantenimiento", headers=waiter_headers)
        assert done.json()["status"] == "FREE"
        assert done.json()["last_cleaned_at"] is not None

    def test_filter_by_status(self, client, waiter_headers, table_by_number):
        client.post(f"/api/Mesas/{table_by_number(9).id}/ocupar", headers=waiter_headers)

        response = client.get("/api/Mesas", params={"estado": "OCCUPIED"}, headers=waiter_headers)

        assert [t["number"] for t in response.json()] == [9]

    def test_cashier_cannot_change_tables(self, client, cashier_headers, table_by_number):
        response = client.post(f"/api/Mesas/{table_by_number(1).id}/ocupar", headers=cashier_headers)
        assert response.status_code == 403


class TestTableAdministration:

    def test_create_table(self, client, admin_headers):
        response = client.post(
            "/api/Mesas", json={"number": 11, "capacity": 4, "location": "Terraza"}, headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["status"] == "FREE"

    def test_duplicate_number_conflict(self, client, admin_headers):
        response = client.post("/api/Mesas", json={"number": 3, "capacity": 4}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "Duplicate"

    def test_waiter_cannot_create(self, client, waiter_headers):
        response = client.post("/api/Mesas", json={"number": 12, "capacity": 2}, headers=waiter_headers)
        assert response.status_code == 403

    def test_reset_all(self, client, admin_headers, table_by_number):
        client.post(f"/api/Mesas/{table_by_number(1).id}/ocupar", headers=admin_headers)

        response = client.post("/api/Mesas/reiniciar-todas", headers=admin_headers)

        assert response.json() == {"reset": [1], "skipped": []}

    def test_unknown_table(self, client, admin_headers):
        response = client.get("/api/Mesas/9999", headers=admin_headers)
        assert response.status_code == 404
