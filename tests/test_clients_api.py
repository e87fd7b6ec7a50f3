"""
Tests for the client (CRM) endpoints.
"""


def _register(client, headers, **overrides):
    body = {
        "cedula": "40212345679",
        "first_name": "Juan",
        "last_name": "Pérez",
        "phone": "(829) 555 7788",
        "email": "Juan.Perez@Hotmail.com",
    }
    body.update(overrides)
    return client.post("/api/Cliente", json=body, headers=headers)


class TestClientRegistration:

    def test_register_normalizes_and_welcomes(self, client, reception_headers, mail_transport):
        response = _register(client, reception_headers)

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["cedula"] == "402-1234567-9"
        assert data["phone"] == "829-555-7788"
        assert data["email"] == "juan.perez@hotmail.com"
        assert data["full_name"] == "Juan Pérez"
        assert mail_transport.recipients == ["juan.perez@hotmail.com"]

    def test_client_without_email_gets_no_message(self, client, reception_headers, mail_transport):
        response = _register(client, reception_headers, email=None)

        assert response.status_code == 201
        assert mail_transport.messages == []

    def test_duplicate_cedula(self, client, reception_headers, seed_client):
        response = _register(client, reception_headers, cedula=seed_client.cedula, email=None)

        assert response.status_code == 409
        assert response.json()["code"] == "Duplicate"

    def test_duplicate_email_ignores_case(self, client, reception_headers, seed_client):
        response = _register(client, reception_headers, email="MARIA.RODRIGUEZ@gmail.com")
        assert response.status_code == 409

    def test_invalid_cedula(self, client, reception_headers):
        response = _register(client, reception_headers, cedula="123")

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "cedula"

    def test_invalid_phone_prefix(self, client, reception_headers):
        response = _register(client, reception_headers, phone="305-555-1234")
        assert response.status_code == 400


class TestClientQueries:

    def test_search_by_name(self, client, reception_headers, seed_client):
        response = client.get("/api/Cliente/buscar", params={"q": "rodríguez"}, headers=reception_headers)

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [seed_client.id]

    def test_search_by_cedula(self, client, reception_headers, seed_client):
        response = client.get("/api/Cliente/buscar", params={"q": "402-1234567"}, headers=reception_headers)
        assert [c["id"] for c in response.json()] == [seed_client.id]

    def test_birthdays_by_month(self, client, reception_headers, seed_client):
        may = client.get("/api/Cliente/cumpleanos", params={"mes": 5}, headers=reception_headers).json()
        june = client.get("/api/Cliente/cumpleanos", params={"mes": 6}, headers=reception_headers).json()

        assert [c["id"] for c in may] == [seed_client.id]
        assert june == []

    def test_stats_for_new_client(self, client, reception_headers, seed_client):
        response = client.get(f"/api/Cliente/{seed_client.id}/estadisticas", headers=reception_headers)

        data = response.json()
        assert data["visits"] == 0
        assert data["total_spent"] == 0.0
        assert data["last_visit"] is None

    def test_update_client(self, client, reception_headers, seed_client):
        response = client.put(
            f"/api/Cliente/{seed_client.id}", json={"category": "VIP"}, headers=reception_headers
        )
        assert response.json()["category"] == "VIP"


class TestClientDeletion:

    def test_delete_requires_admin(self, client, reception_headers, seed_client):
        response = client.delete(f"/api/Cliente/{seed_client.id}", headers=reception_headers)
        assert response.status_code == 403

    def test_admin_soft_deletes(self, client, admin_headers, seed_client):
        response = client.delete(f"/api/Cliente/{seed_client.id}", headers=admin_headers)
        assert response.status_code == 204

        assert client.get(f"/api/Cliente/{seed_client.id}", headers=admin_headers).status_code == 404
