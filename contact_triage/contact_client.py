"""Async client for the contact messages API."""

import logging
from typing import Any

import httpx

from .config import Config
from .models import (
    ContactMessage,
    MessagePriority,
    MessageStatus,
    NetworkError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ContactClient:
    """Thin wrapper over the admin contact endpoints.

    Every failure surfaces as NetworkError (or NotFoundError for a 404 on a
    single-record call) so callers only deal with the triage error taxonomy.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self.client = httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout, transport=transport
        )

    @classmethod
    def from_config(
        cls, config: Config, transport: httpx.AsyncBaseTransport | None = None
    ) -> "ContactClient":
        return cls(
            config.api_base_url,
            access_token=config.api_token,
            timeout=float(config.api_timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "ContactClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        json_data: dict | None = None,
        record_id: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(method, endpoint, params=params, json=json_data)
            response.raise_for_status()
            data = response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"Contact API error: {status_code} - {e.response.text}")
            if status_code == 404 and record_id is not None:
                raise NotFoundError(record_id) from e
            raise NetworkError(
                f"Contact API returned {status_code} for {method} {endpoint}", status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Request error: {str(e)}")
            raise NetworkError(f"Request to {endpoint} failed: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid JSON from {endpoint}: {e}")
            raise NetworkError(f"Invalid response body from {endpoint}") from e

        if isinstance(data, dict) and data.get("success") is False:
            raise NetworkError(data.get("message") or f"{method} {endpoint} was rejected")
        return data

    async def fetch_all_contacts(self, limit: int = 100) -> list[ContactMessage]:
        """Fetch the most recent contact messages."""
        data = await self._request("GET", "/contact/contacts", params={"limit": limit})

        contacts = []
        for payload in data.get("contacts") or []:
            try:
                contacts.append(ContactMessage.from_api(payload))
            except ValidationError as e:
                logger.warning(f"Skipping malformed contact payload: {e}")

        logger.info(f"Fetched {len(contacts)} contact messages")
        return contacts

    async def update_contact_status(
        self,
        contact_id: str,
        status: MessageStatus | None = None,
        priority: MessagePriority | None = None,
        assigned_to: str | None = None,
        note: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if status is not None:
            body["status"] = MessageStatus(status).value
        if priority is not None:
            body["priority"] = MessagePriority(priority).value
        if assigned_to is not None:
            body["assignedTo"] = assigned_to
        if note:
            body["note"] = note
        return await self._request(
            "PUT", f"/contact/contacts/{contact_id}/status", json_data=body, record_id=contact_id
        )

    async def add_contact_response(self, contact_id: str, text: str, sent_by: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/contact/contacts/{contact_id}/response",
            json_data={"responseText": text, "sentBy": sent_by},
            record_id=contact_id,
        )

    async def delete_contact(self, contact_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/contact/contacts/{contact_id}", record_id=contact_id)

    async def get_contact_stats(self) -> dict[str, Any]:
        data = await self._request("GET", "/contact/stats")
        return data.get("stats", {})

    async def test_connection(self) -> bool:
        try:
            await self._request("GET", "/contact/stats")
            return True
        except NetworkError as e:
            logger.warning(f"Contact API connection test failed: {e}")
            return False

    async def close(self):
        await self.client.aclose()
