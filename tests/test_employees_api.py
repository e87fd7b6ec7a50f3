"""
Tests for the employee endpoints (administrator only).
"""


class TestEmployees:

    def test_list_includes_admin(self, client, admin_headers):
        response = client.get("/api/Empleado", headers=admin_headers)

        assert response.status_code == 200
        assert "001-0000001-1" in {e["cedula"] for e in response.json()}

    def test_create_employee(self, client, admin_headers):
        response = client.post(
            "/api/Empleado",
            json={
                "cedula": "031-7654321-0",
                "first_name": "Rosa",
                "last_name": "Almonte",
                "phone": "849 555 0101",
                "position": "Mesera",
                "salary": "25000.00",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["full_name"] == "Rosa Almonte"
        assert data["phone"] == "849-555-0101"
        assert data["salary"] == 25000.0

    def test_duplicate_cedula(self, client, admin_headers):
        response = client.post(
            "/api/Empleado",
            json={"cedula": "001-0000001-1", "first_name": "Otro", "last_name": "Admin"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_non_admin_forbidden(self, client, cashier_headers):
        assert client.get("/api/Empleado", headers=cashier_headers).status_code == 403

    def test_link_user_already_linked(self, client, admin_headers, admin_user, waiter_user):
        response = client.post(
            f"/api/Empleado/{waiter_user.employee.id}/usuario",
            json={"user_id": admin_user.id},
            headers=admin_headers,
        )
        assert response.status_code == 400
