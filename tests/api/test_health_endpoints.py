"""
Tests for health, configuration and database status endpoints.
"""
import pytest
from httpx import ASGITransport, AsyncClient

from portfolio.database import Database
from portfolio.main import create_app

pytestmark = pytest.mark.asyncio


class TestHealth:
    """Tests for GET /api/health."""

    async def test_reports_components(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert body["email"] == "disabled"
        assert "timestamp" in body

    async def test_email_enabled(self, email_client):
        response = await email_client.get("/api/health")
        assert response.json()["email"] == "enabled"


class TestClientConfig:
    """Tests for GET /api/config."""

    async def test_allowed_origins(self, app_factory, settings_factory):
        app = app_factory(settings_factory(allowed_origins="https://jo.dev, https://www.jo.dev", log_requests=True))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/config")

        assert response.json() == {
            "allowedOrigins": ["https://jo.dev", "https://www.jo.dev"],
            "logRequests": True,
        }


class TestDatabaseHealth:
    """Tests for the database health and status endpoints."""

    async def test_healthy(self, client):
        response = await client.get("/api/db/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "healthy"

    async def test_disconnected_is_503(self, test_settings):
        app = create_app(config=test_settings, database=Database(config=test_settings))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/db/health")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Database connection failed"
        assert body["status"] == "disconnected"

    async def test_status(self, client):
        response = await client.get("/api/db/status")

        data = response.json()["data"]
        assert data["connected"] is True
        assert data["state"] == "CONNECTED"
        assert data["backend"] == "sqlite"
        assert data["connectedAt"] is not None


class TestErrors:
    """Tests for the shared error envelope."""

    async def test_unknown_route(self, client):
        response = await client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}

    async def test_dev_routes_hidden_outside_development(self, client):
        response = await client.get("/api/dev/contacts/all")
        assert response.status_code == 404
