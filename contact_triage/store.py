"""In-memory message store shared by the triage screen."""

import logging
import threading
from collections.abc import Iterable
from dataclasses import fields, replace
from datetime import UTC, datetime
from typing import Any

from .models import (
    ContactMessage,
    ContactNote,
    MessagePriority,
    MessageSource,
    MessageStatus,
    NotFoundError,
    ValidationError,
    parse_enum,
)

logger = logging.getLogger(__name__)

# Fields that triage actions may never overwrite through patch()
_IMMUTABLE_FIELDS = {"id", "created_at", "notes"}
_PATCHABLE_FIELDS = {f.name for f in fields(ContactMessage)} - _IMMUTABLE_FIELDS
_ENUM_FIELDS = {"status": MessageStatus, "priority": MessagePriority, "source": MessageSource}


class MessageStore:
    """Ordered, single-writer collection of contact messages.

    The store is refreshed wholesale from the contact API and patched in place
    by triage actions. Every refresh and mutation takes a generation number so
    that a slow fetch cannot overwrite state from a newer action.
    """

    def __init__(self, messages: Iterable[ContactMessage] | None = None):
        self._messages: dict[str, ContactMessage] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self.last_refreshed: datetime | None = None
        if messages is not None:
            self._load(messages)

    def _load(self, messages: Iterable[ContactMessage]):
        loaded: dict[str, ContactMessage] = {}
        for message in messages:
            if message.id in loaded:
                raise ValidationError("InvalidField", f"Duplicate contact message id {message.id}")
            loaded[message.id] = message
        self._messages = loaded

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    @property
    def generation(self) -> int:
        return self._generation

    def next_generation(self) -> int:
        """Issue a new request generation."""
        with self._lock:
            self._generation += 1
            return self._generation

    def snapshot(self) -> list[ContactMessage]:
        """Return the messages in store order."""
        with self._lock:
            return list(self._messages.values())

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._messages)

    def get(self, message_id: str) -> ContactMessage:
        try:
            return self._messages[message_id]
        except KeyError:
            raise NotFoundError(message_id) from None

    def replace(self, messages: Iterable[ContactMessage], generation: int | None = None) -> bool:
        """Replace the whole store.

        Returns False and leaves the store untouched when ``generation`` is older
        than a generation already issued to a later request.
        """
        with self._lock:
            if generation is not None and generation < self._generation:
                logger.debug(
                    f"Discarding stale refresh (generation {generation}, current {self._generation})"
                )
                return False
            self._load(messages)
            self.last_refreshed = datetime.now(UTC)

        logger.debug(f"Store replaced with {len(self._messages)} messages")
        return True

    def patch(self, message_id: str, **changes: Any) -> ContactMessage:
        """Update fields of one message in place and return it."""
        blocked = set(changes) & _IMMUTABLE_FIELDS
        if blocked:
            raise ValidationError(
                "InvalidField", f"Cannot modify immutable field(s): {', '.join(sorted(blocked))}"
            )
        unknown = set(changes) - _PATCHABLE_FIELDS
        if unknown:
            raise ValidationError("InvalidField", f"Unknown field(s): {', '.join(sorted(unknown))}")

        for name, enum_cls in _ENUM_FIELDS.items():
            if name in changes:
                changes[name] = parse_enum(enum_cls, changes[name], name)

        with self._lock:
            current = self._messages.get(message_id)
            if current is None:
                raise NotFoundError(message_id)
            updated = replace(current, **changes)
            self._messages[message_id] = updated
            self._generation += 1
            return updated

    def append_note(self, message_id: str, text: str, created_by: str) -> ContactNote:
        """Append to a message's note log; notes are never edited or removed."""
        with self._lock:
            current = self._messages.get(message_id)
            if current is None:
                raise NotFoundError(message_id)
            note = current.add_note(text, created_by)
            self._generation += 1
            return note

    def remove(self, message_id: str) -> ContactMessage:
        """Delete one message from the store."""
        with self._lock:
            removed = self._messages.pop(message_id, None)
            if removed is None:
                raise NotFoundError(message_id)
            self._generation += 1
            return removed
