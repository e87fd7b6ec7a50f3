"""
Tests for the authentication endpoints and the shared error shape.
"""

from sqlalchemy import select

from criollo_api.models import EmailTransaction
from criollo_shared.config.constants import EmailStatus, Roles


def _login(client, username="admin", password="Admin123!"):
    return client.post("/api/Auth/login", json={"username": username, "password": password})


class TestLogin:

    def test_login_success(self, client):
        """Should return a token pair and the user profile."""
        response = _login(client)

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "Bearer"
        assert data["user"]["username"] == "admin"
        assert data["user"]["role"] == Roles.ADMIN

    def test_login_by_email(self, client):
        response = _login(client, username="ADMIN@elcriollo.com.do")
        assert response.status_code == 200

    def test_login_wrong_password(self, client):
        """Should reject with 401 and the Unauthorized code."""
        response = _login(client, password="incorrecta")

        assert response.status_code == 401
        assert response.json()["code"] == "Unauthorized"

    def test_login_missing_fields(self, client):
        """Should answer 400 with a per-field error list."""
        response = client.post("/api/Auth/login", json={"username": "admin"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "ValidationError"
        assert any(err["field"] == "password" for err in body["errors"])


class TestTokens:

    def test_me_with_login_token(self, client):
        token = _login(client).json()["access_token"]

        response = client.get("/api/Auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["employee_id"] is not None

    def test_me_without_token(self, client):
        response = client.get("/api/Auth/me")
        assert response.status_code == 401

    def test_me_with_malformed_header(self, client):
        response = client.get("/api/Auth/me", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_refresh_rotates_token(self, client):
        """Should issue a new pair and reject the old refresh token afterwards."""
        first = _login(client).json()["refresh_token"]

        rotated = client.post("/api/Auth/refresh", json={"refresh_token": first})
        assert rotated.status_code == 200
        assert rotated.json()["refresh_token"] != first

        replay = client.post("/api/Auth/refresh", json={"refresh_token": first})
        assert replay.status_code == 401

    def test_access_token_is_not_a_refresh_token(self, client):
        access = _login(client).json()["access_token"]
        response = client.post("/api/Auth/refresh", json={"refresh_token": access})
        assert response.status_code == 401

    def test_logout_revokes_refresh_token(self, client):
        tokens = _login(client).json()
        headers = {"Authorization": f"Bearer {tokens['access_token']}"}

        assert client.post("/api/Auth/logout", headers=headers).status_code == 200
        response = client.post("/api/Auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401


class TestRegister:

    def test_admin_registers_staff_and_welcome_email_is_sent(
        self, client, admin_headers, mail_transport, db_session
    ):
        response = client.post(
            "/api/Auth/register",
            json={
                "username": "nuevo.mesero",
                "email": "nuevo.mesero@elcriollo.com.do",
                "password": "Temporal123",
                "role": Roles.WAITER,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["requires_password_change"] is True
        assert mail_transport.recipients == ["nuevo.mesero@elcriollo.com.do"]
        logged = db_session.scalars(select(EmailTransaction)).all()
        assert [t.status for t in logged] == [EmailStatus.SENT]

    def test_new_user_can_log_in(self, client, admin_headers):
        client.post(
            "/api/Auth/register",
            json={
                "username": "cajera2",
                "email": "cajera2@elcriollo.com.do",
                "password": "Temporal123",
                "role": Roles.CASHIER,
            },
            headers=admin_headers,
        )

        response = _login(client, "cajera2", "Temporal123")

        assert response.status_code == 200
        assert response.json()["user"]["requires_password_change"] is True

    def test_duplicate_username(self, client, admin_headers):
        response = client.post(
            "/api/Auth/register",
            json={
                "username": "admin",
                "email": "otro@elcriollo.com.do",
                "password": "Temporal123",
                "role": Roles.WAITER,
            },
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_weak_password(self, client, admin_headers):
        response = client.post(
            "/api/Auth/register",
            json={"username": "debil", "email": "debil@elcriollo.com.do", "password": "corta", "role": Roles.WAITER},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_waiter_cannot_register(self, client, waiter_headers):
        """Should answer 403 for non-admin roles."""
        response = client.post(
            "/api/Auth/register",
            json={
                "username": "intruso",
                "email": "intruso@elcriollo.com.do",
                "password": "Temporal123",
                "role": Roles.ADMIN,
            },
            headers=waiter_headers,
        )

        assert response.status_code == 403
        assert response.json()["code"] == "Forbidden"


class TestChangePassword:

    def test_change_password(self, client, waiter_user, waiter_headers):
        response = client.post(
            "/api/Auth/change-password",
            json={"current_password": "Clave1234", "new_password": "NuevaClave99"},
            headers=waiter_headers,
        )

        assert response.status_code == 200
        assert _login(client, "mesero", "NuevaClave99").status_code == 200

    def test_wrong_current_password(self, client, waiter_headers):
        response = client.post(
            "/api/Auth/change-password",
            json={"current_password": "equivocada1", "new_password": "NuevaClave99"},
            headers=waiter_headers,
        )
        assert response.status_code == 400
