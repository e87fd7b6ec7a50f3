"""
Tests for health checks and the common error shape.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from criollo_api.main import app
from criollo_shared.infrastructure.db import get_session_factory


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed_health(self, client):
        response = client.get("/api/health/detailed")

        assert response.status_code == 200
        assert response.json()["dependencies"]["database"]["status"] == "healthy"

    def test_detailed_health_database_down(self, client):
        """Should answer 503 when the database cannot be reached."""
        broken = create_engine("sqlite:////nonexistent-dir/criollo.db")
        app.dependency_overrides[get_session_factory] = lambda: sessionmaker(bind=broken)

        response = client.get("/api/health/detailed")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"


class TestErrorShape:

    def test_unknown_route(self, client):
        response = client.get("/api/NoExiste")

        assert response.status_code == 404
        assert response.json()["code"] == "NotFound"

    def test_correlation_id_header(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_public_menu_needs_no_token(self, client):
        response = client.get("/api/Productos/menu-digital")

        assert response.status_code == 200
        categories = {c["category_name"] for c in response.json()}
        assert "Bebidas" in categories
