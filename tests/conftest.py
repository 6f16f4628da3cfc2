"""Test configuration and fixtures for contact-triage."""

from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from contact_triage.contact_client import ContactClient
from contact_triage.models import (
    MessagePriority,
    MessageSource,
    MessageStatus,
)
from contact_triage.session import TriageSession
from contact_triage.store import MessageStore
from tests.factories import NOW, make_message


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def test_messages():
    """Provide a small, varied inbox."""
    return [
        make_message(
            "msg_1",
            name="Alice Smith",
            email="alice@acme.com",
            company="Acme, Inc.",
            subject="Billing question",
            message="My invoice looks wrong",
            status=MessageStatus.NEW,
            priority=MessagePriority.HIGH,
            source=MessageSource.WEBSITE,
            tags={"billing"},
            response_time=1.5,
            created_at=NOW - timedelta(days=1),
        ),
        make_message(
            "msg_2",
            name="Bob Jones",
            email="bob@globex.com",
            company="Globex",
            subject="Refill delivery",
            message="When will my cylinder arrive?",
            status=MessageStatus.IN_PROGRESS,
            priority=MessagePriority.MEDIUM,
            source=MessageSource.EMAIL,
            assigned_to="agent_1",
            tags={"shipping", "refill"},
            response_time=12,
            created_at=NOW - timedelta(days=3),
        ),
        make_message(
            "msg_3",
            name="Carol White",
            email="carol@example.org",
            subject="Thanks!",
            message="Great support",
            status=MessageStatus.RESOLVED,
            priority=MessagePriority.LOW,
            source=MessageSource.SOCIAL,
            response_time=30,
            created_at=NOW - timedelta(days=10),
        ),
        make_message(
            "msg_4",
            name="Dan Brown",
            email="dan@initech.com",
            company="Initech",
            subject="Broken machine",
            message="The carbonator leaks",
            status=MessageStatus.NEW,
            priority=MessagePriority.URGENT,
            source=MessageSource.PHONE,
            tags={"warranty"},
            created_at=NOW - timedelta(days=40),
        ),
    ]


@pytest.fixture
def store(test_messages):
    return MessageStore(test_messages)


@pytest.fixture
def mock_contact_client(test_messages):
    """Provide a mock ContactClient for testing."""
    client = Mock(spec=ContactClient)
    client.fetch_all_contacts = AsyncMock(return_value=test_messages)
    client.update_contact_status = AsyncMock(return_value={"success": True})
    client.add_contact_response = AsyncMock(return_value={"success": True})
    client.delete_contact = AsyncMock(return_value={"success": True})
    client.get_contact_stats = AsyncMock(return_value={})
    client.test_connection = AsyncMock(return_value=True)
    return client


@pytest.fixture
def local_session(store):
    """A session with no backend; actions apply to the store only."""
    return TriageSession(store=store)


@pytest.fixture
def remote_session(mock_contact_client):
    """A session backed by a mocked contact API with an empty store."""
    return TriageSession(client=mock_contact_client)
