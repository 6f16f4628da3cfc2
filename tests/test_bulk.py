"""Tests for bulk triage actions."""

from unittest.mock import AsyncMock

import pytest

from contact_triage.bulk import BulkActionOrchestrator, requires_confirmation
from contact_triage.models import (
    BulkAction,
    BulkActionRequest,
    MessageStatus,
    MissingAssigneeError,
    NetworkError,
    NoSelectionError,
)


@pytest.fixture
def orchestrator(store):
    return BulkActionOrchestrator(store)


@pytest.fixture
def remote_orchestrator(store, mock_contact_client):
    return BulkActionOrchestrator(store, mock_contact_client, max_concurrency=2)


class TestValidation:
    def test_empty_selection_rejected(self, orchestrator, store):
        before = store.snapshot()
        with pytest.raises(NoSelectionError) as exc_info:
            orchestrator.apply(BulkActionRequest(action="resolve", target_ids=[]))
        assert exc_info.value.code == "NoSelection"
        assert store.snapshot() == before

    def test_assign_without_assignee_rejected(self, orchestrator, store):
        before = [m.assigned_to for m in store.snapshot()]
        with pytest.raises(MissingAssigneeError) as exc_info:
            orchestrator.apply(BulkActionRequest(action="assign", target_ids=["msg_1", "msg_2"]))
        assert exc_info.value.code == "MissingAssignee"
        assert [m.assigned_to for m in store.snapshot()] == before

    def test_blank_assignee_rejected(self, orchestrator):
        with pytest.raises(MissingAssigneeError):
            orchestrator.apply(
                BulkActionRequest(action="assign", target_ids=["msg_1"], assignee_id="  ")
            )

    def test_only_delete_needs_confirmation(self):
        assert requires_confirmation(BulkActionRequest(action="delete", target_ids=["a"]))
        assert not requires_confirmation(BulkActionRequest(action="archive", target_ids=["a"]))


class TestLocalApply:
    def test_resolve(self, orchestrator, store):
        result = orchestrator.apply(BulkActionRequest(action="resolve", target_ids=["msg_1", "msg_2"]))
        assert result.updated_count == 2
        assert result.failed_ids == []
        assert store.get("msg_1").status == MessageStatus.RESOLVED
        assert store.get("msg_2").status == MessageStatus.RESOLVED

    def test_archive(self, orchestrator, store):
        orchestrator.apply(BulkActionRequest(action=BulkAction.ARCHIVE, target_ids=["msg_3"]))
        assert store.get("msg_3").status == MessageStatus.CLOSED

    def test_assign(self, orchestrator, store):
        result = orchestrator.apply(
            BulkActionRequest(action="assign", target_ids=["msg_1", "msg_4"], assignee_id="agent_9")
        )
        assert result.updated_count == 2
        assert store.get("msg_1").assigned_to == "agent_9"
        assert store.get("msg_4").assigned_to == "agent_9"

    def test_unknown_ids_reported_not_fatal(self, orchestrator, store):
        result = orchestrator.apply(
            BulkActionRequest(action="resolve", target_ids=["ghost", "msg_1", "phantom"])
        )
        assert result.updated_count == 1
        assert result.failed_ids == ["ghost", "phantom"]
        assert store.get("msg_1").status == MessageStatus.RESOLVED
        assert not result.succeeded

    def test_delete_without_confirmation_is_noop(self, orchestrator, store):
        result = orchestrator.apply(BulkActionRequest(action="delete", target_ids=["msg_1"]))
        assert result.requires_confirmation
        assert result.updated_count == 0
        assert "msg_1" in store

    def test_delete_with_confirmation(self, orchestrator, store):
        result = orchestrator.apply(
            BulkActionRequest(action="delete", target_ids=["msg_1"]), confirmed=True
        )
        assert result.updated_count == 1
        assert "msg_1" not in store
        assert len(store) == 3


class TestRemoteApply:
    @pytest.mark.asyncio
    async def test_resolve_calls_backend_then_mirrors(self, remote_orchestrator, store, mock_contact_client):
        result = await remote_orchestrator.apply_remote(
            BulkActionRequest(action="resolve", target_ids=["msg_1", "msg_2"])
        )

        assert result.updated_count == 2
        assert mock_contact_client.update_contact_status.await_count == 2
        mock_contact_client.update_contact_status.assert_any_await(
            "msg_1", status=MessageStatus.RESOLVED
        )
        assert store.get("msg_2").status == MessageStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_assign_sends_assignee(self, remote_orchestrator, mock_contact_client):
        await remote_orchestrator.apply_remote(
            BulkActionRequest(action="assign", target_ids=["msg_3"], assignee_id="agent_5")
        )
        mock_contact_client.update_contact_status.assert_awaited_once_with(
            "msg_3", assigned_to="agent_5"
        )

    @pytest.mark.asyncio
    async def test_partial_network_failure(self, remote_orchestrator, store, mock_contact_client):
        async def flaky(message_id, **kwargs):
            if message_id == "msg_2":
                raise NetworkError("boom", status_code=500)
            return {"success": True}

        mock_contact_client.update_contact_status = AsyncMock(side_effect=flaky)

        result = await remote_orchestrator.apply_remote(
            BulkActionRequest(action="archive", target_ids=["msg_1", "msg_2", "missing", "msg_3"])
        )

        assert result.updated_count == 2
        assert result.failed_ids == ["msg_2", "missing"]
        assert store.get("msg_2").status == MessageStatus.IN_PROGRESS
        assert store.get("msg_3").status == MessageStatus.CLOSED

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, remote_orchestrator, store, mock_contact_client):
        result = await remote_orchestrator.apply_remote(
            BulkActionRequest(action="delete", target_ids=["msg_1"])
        )
        assert result.requires_confirmation
        mock_contact_client.delete_contact.assert_not_awaited()
        assert "msg_1" in store

        result = await remote_orchestrator.apply_remote(
            BulkActionRequest(action="delete", target_ids=["msg_1"]), confirmed=True
        )
        assert result.updated_count == 1
        mock_contact_client.delete_contact.assert_awaited_once_with("msg_1")
        assert "msg_1" not in store

    @pytest.mark.asyncio
    async def test_validation_happens_before_backend(self, remote_orchestrator, mock_contact_client):
        with pytest.raises(MissingAssigneeError):
            await remote_orchestrator.apply_remote(
                BulkActionRequest(action="assign", target_ids=["msg_1"])
            )
        mock_contact_client.update_contact_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_client(self, orchestrator):
        with pytest.raises(RuntimeError):
            await orchestrator.apply_remote(BulkActionRequest(action="resolve", target_ids=["msg_1"]))

    def test_concurrency_must_be_positive(self, store):
        with pytest.raises(ValueError):
            BulkActionOrchestrator(store, max_concurrency=0)
