"""
Contact API Tests
"""

from unittest.mock import AsyncMock, patch

import pytest


MESSAGE = {
    "name": "Jane Doe",
    "email": "Jane@Example.com",
    "subject": "Partnership",
    "message": "I would like to talk about a partnership.",
}


class TestSubmitContact:

    @pytest.mark.asyncio
    async def test_records_client_details(self, client, admin_headers):
        response = await client.post(
            "/api/v1/contact",
            json=MESSAGE,
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "pytest-agent"},
        )
        assert response.status_code == 201
        contact_id = response.json()["id"]

        listing = (await client.get("/api/v1/contact", headers=admin_headers)).json()
        stored = listing["data"][0]
        assert stored["id"] == contact_id
        assert stored["email"] == "jane@example.com"
        assert stored["ipAddress"] == "203.0.113.7"
        assert stored["userAgent"] == "pytest-agent"
        assert stored["status"] == "new"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field, value",
        [
            ("name", "J"),
            ("email", "not-an-email"),
            ("subject", "x" * 121),
            ("message", "too short"),
            ("message", "x" * 2001),
        ],
    )
    async def test_validation(self, client, field, value):
        response = await client.post("/api/v1/contact", json={**MESSAGE, field: value})

        assert response.status_code == 400
        assert response.json()["message"].startswith(field)

    @pytest.mark.asyncio
    async def test_support_is_alerted(self, client):
        with patch("app.services.notification_service.send_email", new=AsyncMock(return_value=True)) as send:
            await client.post("/api/v1/contact", json=MESSAGE)

        send.assert_awaited_once()
        assert send.await_args.args[0].to == "support@swiftdesk.test"


class TestContactAdmin:

    @pytest.mark.asyncio
    async def test_inbox_requires_admin(self, client, user_headers):
        assert (await client.get("/api/v1/contact")).status_code == 401
        assert (await client.get("/api/v1/contact", headers=user_headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_status_update_and_filter(self, client, admin_headers):
        first = (await client.post("/api/v1/contact", json=MESSAGE)).json()["id"]
        await client.post("/api/v1/contact", json=MESSAGE)

        response = await client.put(
            f"/api/v1/contact/{first}/status", json={"status": "replied"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "replied"

        replied = (await client.get("/api/v1/contact?status=replied", headers=admin_headers)).json()
        assert [c["id"] for c in replied["data"]] == [first]

    @pytest.mark.asyncio
    async def test_invalid_status_is_400(self, client, admin_headers):
        contact_id = (await client.post("/api/v1/contact", json=MESSAGE)).json()["id"]

        response = await client.put(
            f"/api/v1/contact/{contact_id}/status", json={"status": "archived"}, headers=admin_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client, admin_headers):
        contact_id = (await client.post("/api/v1/contact", json=MESSAGE)).json()["id"]

        assert (await client.delete(f"/api/v1/contact/{contact_id}", headers=admin_headers)).status_code == 200
        assert (await client.delete(f"/api/v1/contact/{contact_id}", headers=admin_headers)).status_code == 404
