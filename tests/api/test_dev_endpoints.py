"""
Tests for development-only contact management endpoints.
"""
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def dev_client(app_factory, settings_factory):
    app = app_factory(settings_factory(environment="development", enable_dev_routes=True))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_contact(client, **payload) -> dict:
    response = await client.post("/api/dev/test-contact", json=payload or None)
    assert response.status_code == 200
    return response.json()["data"]


class TestTestContact:
    """Tests for POST /api/dev/test-contact."""

    async def test_creates_canned_submission(self, dev_client):
        data = await create_contact(dev_client)

        assert data["email"].startswith("test")
        assert data["email"].endswith("@example.com")
        assert data["ipAddress"] == "127.0.0.1"
        assert data["status"] == "new"

    async def test_custom_sender(self, dev_client):
        data = await create_contact(dev_client, name="Jo Smith", email="jo@x.io")
        assert data["name"] == "Jo Smith"
        assert data["email"] == "jo@x.io"

    async def test_invalid_sender(self, dev_client):
        response = await dev_client.post("/api/dev/test-contact", json={"email": "nope"})
        assert response.status_code == 400


class TestContactManagement:
    """Tests for listing, reading and updating submissions."""

    async def test_list_and_get(self, dev_client):
        created = await create_contact(dev_client, email="jo@x.io")

        listed = (await dev_client.get("/api/dev/contacts/all")).json()
        assert listed["count"] == 1
        assert listed["data"][0]["id"] == created["id"]

        fetched = await dev_client.get(f"/api/dev/contacts/{created['id']}")
        assert fetched.json()["data"]["email"] == "jo@x.io"

    async def test_get_unknown(self, dev_client):
        missing = uuid4()
        response = await dev_client.get(f"/api/dev/contacts/{missing}")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": f"Contact not found: {missing}"}

    async def test_status_update_and_filter(self, dev_client):
        first = await create_contact(dev_client, email="a@x.io")
        await create_contact(dev_client, email="b@x.io")

        response = await dev_client.patch(f"/api/dev/contacts/{first['id']}/status", json={"status": "read"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "read"

        listed = (await dev_client.get("/api/dev/contacts/all", params={"status": "read"})).json()
        assert [c["email"] for c in listed["data"]] == ["a@x.io"]

    async def test_spam_is_hidden(self, dev_client):
        spam = await create_contact(dev_client, email="spam@x.io")

        await dev_client.patch(f"/api/dev/contacts/{spam['id']}/status", json={"status": "spam"})

        assert (await dev_client.get(f"/api/dev/contacts/{spam['id']}")).status_code == 404
        assert (await dev_client.get("/api/dev/contacts/all")).json()["count"] == 0

    async def test_invalid_status(self, dev_client):
        created = await create_contact(dev_client)

        response = await dev_client.patch(f"/api/dev/contacts/{created['id']}/status", json={"status": "bogus"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "status"


class TestDiagnostics:
    """Tests for rate checks, stats and cleanup."""

    async def test_check_rate(self, dev_client):
        await create_contact(dev_client, email="jo@x.io")
        await create_contact(dev_client, email="other@x.io")

        body = (await dev_client.get("/api/dev/check-rate", params={"email": "jo@x.io", "ip": "198.51.100.1"})).json()

        assert body["count"] == 1
        assert body["timeWindow"] == "5 minutes"
        assert body["data"][0]["email"] == "jo@x.io"

    async def test_check_rate_by_address(self, dev_client):
        await create_contact(dev_client, email="a@x.io")
        await create_contact(dev_client, email="b@x.io")

        body = (await dev_client.get("/api/dev/check-rate")).json()

        assert body["count"] == 2

    async def test_db_stats(self, dev_client):
        created = await create_contact(dev_client)
        await dev_client.patch(f"/api/dev/contacts/{created['id']}/status", json={"status": "replied"})
        await create_contact(dev_client)

        body = (await dev_client.get("/api/dev/db-stats")).json()

        assert body["data"]["total"] == 2
        assert body["data"]["replied"] == 1
        assert body["data"]["responseRate"] == 50
        assert body["database"]["connected"] is True

    async def test_clear_contacts(self, dev_client):
        await create_contact(dev_client, email="a@x.io")
        await create_contact(dev_client, email="b@x.io")

        body = (await dev_client.delete("/api/dev/contacts")).json()

        assert body == {"success": True, "message": "Cleared 2 contacts", "deletedCount": 2}

    async def test_reset_testing(self, dev_client):
        await create_contact(dev_client)

        body = (await dev_client.post("/api/dev/reset-testing")).json()

        assert body["deletedCount"] == 1
