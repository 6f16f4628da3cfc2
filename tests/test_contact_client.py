"""Tests for the contact API client using a mocked HTTP transport."""

import json

import httpx
import pytest

from contact_triage.config import Config
from contact_triage.contact_client import ContactClient
from contact_triage.models import MessageStatus, NetworkError, NotFoundError

BASE_URL = "https://shop.example.com/api"

CONTACT_PAYLOAD = {
    "_id": "c1",
    "name": "Alice",
    "email": "alice@example.com",
    "subject": "Order",
    "message": "Where is my order?",
    "status": "new",
    "priority": "high",
    "createdAt": "2026-10-18T10:00:00Z",
}


def make_client(handler, token="secret-token"):
    return ContactClient(BASE_URL, access_token=token, transport=httpx.MockTransport(handler))


class TestContactClient:
    @pytest.mark.asyncio
    async def test_fetch_all_contacts(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(
                200,
                json={"success": True, "contacts": [CONTACT_PAYLOAD, {"name": "no id"}]},
            )

        async with make_client(handler) as client:
            contacts = await client.fetch_all_contacts(limit=50)

        assert seen["url"] == f"{BASE_URL}/contact/contacts?limit=50"
        assert seen["auth"] == "Bearer secret-token"
        # Malformed payloads are skipped
        assert [c.id for c in contacts] == ["c1"]

    @pytest.mark.asyncio
    async def test_update_contact_status_body(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["method"] = request.method
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            await client.update_contact_status(
                "c1", status=MessageStatus.RESOLVED, assigned_to="agent_1", note="done"
            )

        assert captured["method"] == "PUT"
        assert captured["path"] == "/api/contact/contacts/c1/status"
        assert captured["body"] == {"status": "resolved", "assignedTo": "agent_1", "note": "done"}

    @pytest.mark.asyncio
    async def test_add_response_body(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        async with make_client(handler) as client:
            await client.add_contact_response("c1", "Thanks", "Admin")

        assert captured["body"] == {"responseText": "Thanks", "sentBy": "Admin"}

    @pytest.mark.asyncio
    async def test_delete_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"success": False, "message": "Contact not found"})

        async with make_client(handler) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.delete_contact("c404")

        assert exc_info.value.message_id == "c404"

    @pytest.mark.asyncio
    async def test_server_error_becomes_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"success": False, "message": "Server error"})

        async with make_client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.fetch_all_contacts()

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_becomes_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkError):
                await client.delete_contact("c1")

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "message": "Not allowed"})

        async with make_client(handler) as client:
            with pytest.raises(NetworkError, match="Not allowed"):
                await client.get_contact_stats()

    @pytest.mark.asyncio
    async def test_connection_check(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/contact/stats"):
                return httpx.Response(200, json={"success": True, "stats": {"totalContacts": 3}})
            return httpx.Response(404)

        async with make_client(handler, token=None) as client:
            assert await client.test_connection() is True
            assert await client.get_contact_stats() == {"totalContacts": 3}

        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with make_client(failing) as client:
            assert await client.test_connection() is False


@pytest.mark.asyncio
async def test_client_from_config():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"success": True, "contacts": []})

    config = Config(api_base_url=BASE_URL, api_token="cfg-token", api_timeout_seconds=12)
    async with ContactClient.from_config(config, transport=httpx.MockTransport(handler)) as client:
        assert client.client.timeout.read == 12.0
        await client.fetch_all_contacts(limit=5)

    assert seen["url"] == f"{BASE_URL}/contact/contacts?limit=5"
    assert seen["auth"] == "Bearer cfg-token"
