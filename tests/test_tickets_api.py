"""
Ticket API Tests

End-to-end ticket lifecycle through the HTTP interface.
"""

from unittest.mock import AsyncMock, patch

import pytest


async def _create_ticket(client, **overrides) -> dict:
    body = {"email": "a@b.com", "message": "help"}
    body.update(overrides)
    response = await client.post("/api/v1/tickets", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestTicketLifecycle:

    @pytest.mark.asyncio
    async def test_full_scenario(self, client, admin_headers):
        ticket = await _create_ticket(client)
        ticket_id = ticket["ticketId"]

        assert ticket["status"] == "open"
        assert ticket["lastReplyBy"] == "user"
        assert ticket["subject"] == "No subject"
        assert len(ticket["messages"]) == 1

        response = await client.post(
            f"/api/v1/tickets/{ticket_id}/reply",
            json={"sender": "admin", "message": "On it"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "open"
        assert body["lastReplyBy"] == "admin"
        assert len(body["messages"]) == 2

        response = await client.post(
            f"/api/v1/tickets/{ticket_id}/reply",
            json={"sender": "user", "message": "Thanks"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "pending"

        response = await client.patch(f"/api/v1/tickets/{ticket_id}/close", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "closed"
        assert len(body["messages"]) == 4
        assert body["messages"][3]["sender"] == "system"

        response = await client.post(
            f"/api/v1/tickets/{ticket_id}/reply",
            json={"sender": "user", "message": "One more thing"},
        )
        assert response.status_code == 403
        assert "message" in response.json()

        response = await client.get(f"/api/v1/tickets/{ticket_id}")
        assert len(response.json()["messages"]) == 4

    @pytest.mark.asyncio
    async def test_close_twice_adds_one_system_message(self, client, admin_headers):
        ticket = await _create_ticket(client)
        url = f"/api/v1/tickets/{ticket['ticketId']}/close"

        first = await client.patch(url, headers=admin_headers)
        second = await client.patch(url, headers=admin_headers)

        assert second.status_code == 200
        assert first.json()["messages"] == second.json()["messages"]
        assert [m["sender"] for m in second.json()["messages"]].count("system") == 1

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, client):
        ticket = await _create_ticket(client)

        response = await client.get(f"/api/v1/tickets/{ticket['ticketId'].lower()}")

        assert response.status_code == 200
        assert response.json()["ticketId"] == ticket["ticketId"]

    @pytest.mark.asyncio
    async def test_unknown_ticket_is_404(self, client):
        response = await client.get("/api/v1/tickets/AAA-BBB-CCCC")

        assert response.status_code == 404
        assert response.json() == {"message": "Ticket not found"}


class TestTicketValidation:

    @pytest.mark.asyncio
    async def test_invalid_email_is_400(self, client):
        response = await client.post("/api/v1/tickets", json={"email": "nope", "message": "help"})

        assert response.status_code == 400
        assert "email" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_blank_message_is_400(self, client):
        response = await client.post("/api/v1/tickets", json={"email": "a@b.com", "message": "   "})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_system_sender_is_rejected(self, client):
        ticket = await _create_ticket(client)

        response = await client.post(
            f"/api/v1/tickets/{ticket['ticketId']}/reply",
            json={"sender": "system", "message": "spoof"},
        )

        assert response.status_code == 400


class TestTicketAuthorization:

    @pytest.mark.asyncio
    async def test_admin_reply_requires_session(self, client):
        ticket = await _create_ticket(client)

        response = await client.post(
            f"/api/v1/tickets/{ticket['ticketId']}/reply",
            json={"sender": "admin", "message": "spoof"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_reply_requires_admin_role(self, client, user_headers):
        ticket = await _create_ticket(client)

        response = await client.post(
            f"/api/v1/tickets/{ticket['ticketId']}/reply",
            json={"sender": "admin", "message": "spoof"},
            headers=user_headers,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_close_requires_admin(self, client, user_headers):
        ticket = await _create_ticket(client)

        response = await client.patch(
            f"/api/v1/tickets/{ticket['ticketId']}/close", headers=user_headers
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_requires_admin(self, client, user_headers):
        assert (await client.get("/api/v1/tickets")).status_code == 401
        assert (await client.get("/api/v1/tickets", headers=user_headers)).status_code == 403


class TestTicketListing:

    @pytest.mark.asyncio
    async def test_paginated_and_filtered(self, client, admin_headers):
        for i in range(3):
            await _create_ticket(client, email=f"user{i}@example.com")
        pending = await _create_ticket(client)
        await client.post(
            f"/api/v1/tickets/{pending['ticketId']}/reply",
            json={"sender": "user", "message": "bump"},
        )

        response = await client.get("/api/v1/tickets?page=1&limit=2", headers=admin_headers)
        body = response.json()
        assert response.status_code == 200
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 4, "totalPages": 2}
        assert "messages" not in body["data"][0]

        response = await client.get("/api/v1/tickets?status=pending", headers=admin_headers)
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["ticketId"] == pending["ticketId"]

    @pytest.mark.asyncio
    async def test_limit_is_capped(self, client, admin_headers):
        response = await client.get("/api/v1/tickets?limit=500", headers=admin_headers)

        assert response.status_code == 400


class TestTicketNotifications:

    @pytest.mark.asyncio
    async def test_submitter_and_support_are_emailed(self, client):
        with patch("app.services.notification_service.send_email", new=AsyncMock(return_value=True)) as send:
            ticket = await _create_ticket(client, subject="Login broken")

        recipients = {call.args[0].to for call in send.await_args_list}
        assert recipients == {"a@b.com", "support@swiftdesk.test"}
        assert any(ticket["ticketId"] in call.args[0].body for call in send.await_args_list)

    @pytest.mark.asyncio
    async def test_failing_email_does_not_affect_response(self, client):
        failing = AsyncMock()
        failing.name = "broken"
        failing.send = AsyncMock(side_effect=RuntimeError("smtp down"))

        with patch("app.services.notification_service.get_email_sender", return_value=failing), \
                patch("app.services.notification_service.RETRY_BACKOFF_BASE", 0):
            response = await client.post("/api/v1/tickets", json={"email": "a@b.com", "message": "help"})

        assert response.status_code == 201
        assert failing.send.await_count > 0
