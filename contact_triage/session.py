"""Triage session: the state behind the admin contact screen."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .analytics import aggregate, contact_stats
from .bulk import BulkActionOrchestrator
from .config import Config
from .contact_client import ContactClient
from .export import to_csv, write_export
from .filters import FilterSpec, filter_messages
from .models import (
    AnalyticsReport,
    BulkAction,
    BulkActionRequest,
    BulkActionResult,
    ContactMessage,
    ContactNote,
    ContactResponse,
    MessagePriority,
    MessageStatus,
    NetworkError,
    NotFoundError,
    Notification,
    ValidationError,
    parse_enum,
)
from .store import MessageStore

logger = logging.getLogger(__name__)


class TriageSession:
    """Coordinates the message store, the contact API and the UI's selection.

    Collaborator failures never escape: they become error notifications and the
    store keeps its last known-good state. Validation errors are recorded as
    notifications and re-raised so the caller can correct its input.
    """

    def __init__(
        self,
        store: MessageStore | None = None,
        client: ContactClient | None = None,
        config: Config | None = None,
    ):
        # An empty store is falsy, so test against None
        self.store = store if store is not None else MessageStore()
        self.client = client
        self.fetch_limit = config.fetch_limit if config else 100
        self.acting_user = config.acting_user if config else "Admin"
        self.period_days = config.default_period_days if config else 30
        self.export_dir = config.export_dir if config else None
        self.bulk = BulkActionOrchestrator(
            self.store, client, max_concurrency=config.bulk_max_concurrency if config else 5
        )

        # View state
        self.filter_spec = FilterSpec()
        self.selected_ids: list[str] = []
        self.bulk_panel_open = False
        self.notifications: list[Notification] = []

        self._refresh_active = False
        self._last_error: str | None = None

    @classmethod
    def from_config(cls, config: Config, store: MessageStore | None = None) -> "TriageSession":
        """Create a session backed by a contact API client built from ``config``."""
        return cls(store=store, client=ContactClient.from_config(config), config=config)

    # Notifications

    def _notify(self, level: str, text: str):
        self.notifications.append(Notification(level=level, text=text))
        if level == "error":
            self._last_error = text

    def drain_notifications(self) -> list[Notification]:
        """Return and clear pending notifications."""
        pending, self.notifications = self.notifications, []
        return pending

    def _reject(self, error: ValidationError):
        logger.info(f"Rejected triage action ({error.code}): {error}")
        self._notify("error", str(error))

    # Store refresh

    async def refresh(self) -> bool:
        """Reload the store from the contact API.

        Returns True when the fetched data was applied. A failed fetch, or one
        overtaken by a newer action, leaves the store as it was.
        """
        if self.client is None:
            return False

        generation = self.store.next_generation()
        self._refresh_active = True
        try:
            contacts = await self.client.fetch_all_contacts(limit=self.fetch_limit)
        except NetworkError as e:
            logger.error(f"Failed to fetch contact messages: {e}")
            self._notify("error", "Failed to fetch contact messages")
            return False
        finally:
            self._refresh_active = False

        applied = self.store.replace(contacts, generation)
        if applied:
            # Drop selections for messages that no longer exist
            self.selected_ids = [mid for mid in self.selected_ids if mid in self.store]
        return applied

    # Derived views

    def set_filter(self, spec: FilterSpec | None = None, **fields: Any) -> FilterSpec:
        self.filter_spec = spec if spec is not None else FilterSpec(**fields)
        return self.filter_spec

    def view(self) -> list[ContactMessage]:
        return filter_messages(self.store.snapshot(), self.filter_spec)

    def report(self, period_days: int | None = None, now: datetime | None = None) -> AnalyticsReport:
        return aggregate(self.store.snapshot(), period_days or self.period_days, now=now)

    def stats(self) -> dict[str, Any]:
        return contact_stats(self.store.snapshot())

    def export_csv(self) -> str:
        return to_csv(self.view())

    def export_to_file(self, export_dir: str | Path | None = None) -> Path:
        target = export_dir or self.export_dir
        if target is None:
            raise ValidationError("InvalidField", "No export directory configured")
        path = write_export(self.view(), target)
        self._notify("success", f"Exported contacts to {path.name}")
        return path

    # Selection and bulk panel

    def select(self, *message_ids: str):
        for message_id in message_ids:
            if message_id not in self.selected_ids:
                self.selected_ids.append(message_id)

    def deselect(self, *message_ids: str):
        self.selected_ids = [mid for mid in self.selected_ids if mid not in message_ids]

    def toggle_selection(self, message_id: str):
        if message_id in self.selected_ids:
            self.deselect(message_id)
        else:
            self.select(message_id)

    def select_all_visible(self):
        self.selected_ids = [message.id for message in self.view()]

    def clear_selection(self):
        self.selected_ids = []

    def open_bulk_panel(self):
        self.bulk_panel_open = True

    def close_bulk_panel(self):
        self.bulk_panel_open = False

    async def run_bulk_action(
        self, action: BulkAction | str, assignee_id: str | None = None, confirmed: bool = False
    ) -> BulkActionResult:
        """Apply a bulk action to the current selection.

        A destructive action without confirmation returns a result flagged
        ``requires_confirmation`` and leaves selection and store untouched.
        """
        try:
            request = BulkActionRequest(
                action=action, target_ids=list(self.selected_ids), assignee_id=assignee_id
            )
            if self.client is not None:
                result = await self.bulk.apply_remote(request, confirmed=confirmed)
            else:
                result = self.bulk.apply(request, confirmed=confirmed)
        except ValidationError as e:
            self._reject(e)
            raise

        if result.requires_confirmation:
            return result

        self.clear_selection()
        self.close_bulk_panel()

        if result.failed_ids:
            self._notify(
                "warning",
                f"{request.action.value.capitalize()} applied to {result.updated_count} messages; "
                f"{len(result.failed_ids)} failed",
            )
        else:
            self._notify(
                "success",
                f"{request.action.value.capitalize()} applied to {result.updated_count} messages",
            )

        if self.client is not None:
            await self.refresh()
        return result

    # Per-message actions

    def _require(self, message_id: str) -> ContactMessage:
        try:
            return self.store.get(message_id)
        except NotFoundError:
            self._notify("error", f"Contact message {message_id} not found")
            raise

    async def update_status(
        self,
        message_id: str,
        status: MessageStatus | str | None = None,
        priority: MessagePriority | str | None = None,
        assigned_to: str | None = None,
        note: str | None = None,
        author: str | None = None,
    ) -> ContactMessage | None:
        """Change status, priority or assignee and optionally append a note.

        Only the fields passed are changed. The note is credited to ``author``,
        or to the acting user when no author is given. Returns the updated
        message, or None when the contact API call failed.
        """
        self._require(message_id)
        changes: dict[str, Any] = {}
        try:
            if status is not None:
                changes["status"] = parse_enum(MessageStatus, status, "status")
            if priority is not None:
                changes["priority"] = parse_enum(MessagePriority, priority, "priority")
        except ValidationError as e:
            self._reject(e)
            raise
        if assigned_to is not None:
            changes["assigned_to"] = assigned_to or None

        if self.client is not None:
            try:
                await self.client.update_contact_status(
                    message_id,
                    status=changes.get("status"),
                    priority=changes.get("priority"),
                    assigned_to=assigned_to,
                    note=note,
                )
            except (NetworkError, NotFoundError) as e:
                logger.error(f"Error updating contact status for {message_id}: {e}")
                self._notify("error", "Failed to update contact status")
                return None

        updated = self.store.patch(message_id, **changes) if changes else self.store.get(message_id)
        if note and note.strip():
            self.store.append_note(message_id, note, author or self.acting_user)
        self._notify("success", "Contact status updated successfully")
        return updated

    async def add_response(
        self, message_id: str, text: str, sent_by: str | None = None
    ) -> ContactMessage | None:
        """Attach the staff response, replacing any earlier one.

        The message becomes resolved unless it is already closed.
        """
        if not text or not text.strip():
            error = ValidationError("EmptyResponse", "Response text is required")
            self._reject(error)
            raise error
        current = self._require(message_id)
        sent_by = sent_by or self.acting_user

        if self.client is not None:
            try:
                await self.client.add_contact_response(message_id, text, sent_by)
            except (NetworkError, NotFoundError) as e:
                logger.error(f"Error adding response to {message_id}: {e}")
                self._notify("error", "Failed to add response")
                return None

        changes: dict[str, Any] = {
            "response": ContactResponse(text=text, sent_at=datetime.now(UTC), sent_by=sent_by)
        }
        if current.status != MessageStatus.CLOSED:
            changes["status"] = MessageStatus.RESOLVED
        updated = self.store.patch(message_id, **changes)
        self._notify("success", "Response added successfully")
        return updated

    async def delete_message(self, message_id: str, confirmed: bool = False) -> bool:
        """Delete one message. Does nothing unless ``confirmed`` is True."""
        self._require(message_id)
        if not confirmed:
            return False

        if self.client is not None:
            try:
                await self.client.delete_contact(message_id)
            except (NetworkError, NotFoundError) as e:
                logger.error(f"Error deleting contact {message_id}: {e}")
                self._notify("error", "Failed to delete contact message")
                return False

        self.store.remove(message_id)
        self.deselect(message_id)
        self._notify("success", "Contact message deleted successfully")
        return True

    def toggle_star(self, message_id: str) -> ContactMessage:
        current = self._require(message_id)
        return self.store.patch(message_id, starred=not current.starred)

    def add_tag(self, message_id: str, tag: str) -> ContactMessage:
        if not tag or not tag.strip():
            error = ValidationError("InvalidField", "Tag is required")
            self._reject(error)
            raise error
        current = self._require(message_id)
        return self.store.patch(message_id, tags=current.tags | {tag.strip()})

    def add_note(self, message_id: str, text: str) -> ContactNote:
        self._require(message_id)
        try:
            return self.store.append_note(message_id, text, self.acting_user)
        except ValidationError as e:
            self._reject(e)
            raise

    def set_follow_up(self, message_id: str, follow_up: datetime | None) -> ContactMessage:
        self._require(message_id)
        return self.store.patch(message_id, follow_up_date=follow_up)

    def get_status(self) -> dict[str, Any]:
        """Session state for status displays."""
        return {
            "message_count": len(self.store),
            "visible_count": len(self.view()),
            "selected_count": len(self.selected_ids),
            "bulk_panel_open": self.bulk_panel_open,
            "refresh_active": self._refresh_active,
            "last_refreshed": self.store.last_refreshed.isoformat()
            if self.store.last_refreshed
            else None,
            "last_error": self._last_error,
        }
