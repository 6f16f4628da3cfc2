"""Bulk status, assignment and deletion actions over a selection of messages."""

import asyncio
import logging
from typing import Any

from .contact_client import ContactClient
from .models import (
    BulkAction,
    BulkActionRequest,
    BulkActionResult,
    MessageStatus,
    MissingAssigneeError,
    NetworkError,
    NoSelectionError,
    NotFoundError,
)
from .store import MessageStore

logger = logging.getLogger(__name__)

DESTRUCTIVE_ACTIONS = frozenset({BulkAction.DELETE})

# Field changes applied locally for each non-destructive action
_STATUS_FOR_ACTION = {
    BulkAction.RESOLVE: MessageStatus.RESOLVED,
    BulkAction.ARCHIVE: MessageStatus.CLOSED,
}


def requires_confirmation(request: BulkActionRequest) -> bool:
    return request.action in DESTRUCTIVE_ACTIONS


class BulkActionOrchestrator:
    """Applies one bulk action to every selected message.

    Validation happens before anything is touched. Unknown ids do not abort the
    batch; they are reported in ``failed_ids``. Deletion only proceeds once the
    caller passes ``confirmed=True``.
    """

    def __init__(
        self, store: MessageStore, client: ContactClient | None = None, max_concurrency: int = 5
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.store = store
        self.client = client
        self.max_concurrency = max_concurrency

    def validate(self, request: BulkActionRequest):
        if not request.target_ids:
            raise NoSelectionError()
        if request.action == BulkAction.ASSIGN and not (request.assignee_id or "").strip():
            raise MissingAssigneeError()

    def _needs_confirmation(self, request: BulkActionRequest, confirmed: bool) -> BulkActionResult | None:
        if requires_confirmation(request) and not confirmed:
            logger.info(
                f"Bulk {request.action.value} of {len(request.target_ids)} messages awaiting confirmation"
            )
            return BulkActionResult(action=request.action, requires_confirmation=True)
        return None

    def _changes_for(self, request: BulkActionRequest) -> dict[str, Any]:
        if request.action == BulkAction.ASSIGN:
            return {"assigned_to": request.assignee_id.strip()}
        return {"status": _STATUS_FOR_ACTION[request.action]}

    def _apply_locally(self, request: BulkActionRequest, message_id: str):
        if request.action == BulkAction.DELETE:
            self.store.remove(message_id)
        else:
            self.store.patch(message_id, **self._changes_for(request))

    def apply(self, request: BulkActionRequest, confirmed: bool = False) -> BulkActionResult:
        """Apply the action to the local store, one message at a time."""
        self.validate(request)
        pending = self._needs_confirmation(request, confirmed)
        if pending:
            return pending

        result = BulkActionResult(action=request.action)
        for message_id in request.target_ids:
            try:
                self._apply_locally(request, message_id)
                result.updated_count += 1
            except NotFoundError:
                logger.warning(f"Bulk {request.action.value}: message {message_id} not found")
                result.failed_ids.append(message_id)

        logger.info(
            f"Bulk {request.action.value} applied to {result.updated_count} messages, "
            f"{len(result.failed_ids)} failed"
        )
        return result

    async def _call_backend(self, request: BulkActionRequest, message_id: str):
        if request.action == BulkAction.DELETE:
            await self.client.delete_contact(message_id)
        elif request.action == BulkAction.ASSIGN:
            await self.client.update_contact_status(message_id, assigned_to=request.assignee_id.strip())
        else:
            await self.client.update_contact_status(message_id, status=_STATUS_FOR_ACTION[request.action])

    async def apply_remote(self, request: BulkActionRequest, confirmed: bool = False) -> BulkActionResult:
        """Apply the action through the contact API, then mirror successes locally.

        Backend calls run concurrently, bounded by ``max_concurrency``.
        """
        if self.client is None:
            raise RuntimeError("apply_remote requires a ContactClient")

        self.validate(request)
        pending = self._needs_confirmation(request, confirmed)
        if pending:
            return pending

        result = BulkActionResult(action=request.action)
        known_ids = []
        for message_id in request.target_ids:
            if message_id in self.store:
                known_ids.append(message_id)
            else:
                result.failed_ids.append(message_id)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_one(message_id: str) -> bool:
            async with semaphore:
                try:
                    await self._call_backend(request, message_id)
                    return True
                except (NetworkError, NotFoundError) as e:
                    logger.error(f"Bulk {request.action.value} failed for {message_id}: {e}")
                    return False

        outcomes = await asyncio.gather(*(run_one(message_id) for message_id in known_ids))

        for message_id, succeeded in zip(known_ids, outcomes, strict=True):
            if not succeeded:
                result.failed_ids.append(message_id)
                continue
            try:
                self._apply_locally(request, message_id)
                result.updated_count += 1
            except NotFoundError:
                # Removed locally while the backend call was in flight
                result.failed_ids.append(message_id)

        # Report failures in selection order
        order = {message_id: index for index, message_id in enumerate(request.target_ids)}
        result.failed_ids.sort(key=order.__getitem__)

        logger.info(
            f"Bulk {request.action.value} (remote) applied to {result.updated_count} messages, "
            f"{len(result.failed_ids)} failed"
        )
        return result
