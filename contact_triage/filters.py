"""Filter engine for deriving views of the contact inbox."""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from .models import (
    ContactMessage,
    MessagePriority,
    MessageSource,
    MessageStatus,
    ResponseTimeBucket,
    ValidationError,
    parse_enum,
    parse_timestamp,
)

ALL = "all"

FAST_RESPONSE_HOURS = 2.0
MEDIUM_RESPONSE_HOURS = 24.0


class MessagePredicate(Protocol):
    def matches(self, message: ContactMessage) -> bool: ...


def response_time_bucket(response_time: float | None) -> ResponseTimeBucket:
    """Classify a response time in hours.

    A message without a measured response time counts as 0 hours and
    therefore lands in the fast bucket.
    """
    hours = response_time or 0.0
    if hours <= FAST_RESPONSE_HOURS:
        return ResponseTimeBucket.FAST
    if hours <= MEDIUM_RESPONSE_HOURS:
        return ResponseTimeBucket.MEDIUM
    return ResponseTimeBucket.SLOW


def _parse_choice(enum_cls, value, field_name: str):
    """Map the "all" sentinel (any case) or an empty value to ALL, else parse."""
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", ALL)):
        return ALL
    if enum_cls is None:
        return value.strip()
    return parse_enum(enum_cls, value, field_name)


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle in haystack.lower()


@dataclass
class FilterSpec:
    """Filter parameters for the inbox view.

    Every field is optional: ``"all"`` or an empty value means no constraint.
    Fields combine with AND; selected tags combine with OR.
    """

    search_text: str = ""
    status: MessageStatus | str = ALL
    priority: MessagePriority | str = ALL
    source: MessageSource | str = ALL
    assignee: str = ALL
    date_from: datetime | str | None = None
    date_to: datetime | str | None = None
    company: str = ""
    subject: str = ""
    tags: set[str] = field(default_factory=set)
    response_time: ResponseTimeBucket | str = ResponseTimeBucket.ALL

    def __post_init__(self):
        self.status = _parse_choice(MessageStatus, self.status, "status")
        self.priority = _parse_choice(MessagePriority, self.priority, "priority")
        self.source = _parse_choice(MessageSource, self.source, "source")
        self.response_time = parse_enum(ResponseTimeBucket, self.response_time, "response time")
        self.search_text = (self.search_text or "").strip()
        self.company = (self.company or "").strip()
        self.subject = (self.subject or "").strip()
        self.assignee = _parse_choice(None, self.assignee, "assignee")
        self.tags = {tag.strip() for tag in self.tags or () if tag and tag.strip()}
        self.date_from = parse_timestamp(self.date_from)
        self.date_to = parse_timestamp(self.date_to)
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("InvalidField", "date_from must not be after date_to")

    def matches(self, message: ContactMessage) -> bool:
        if self.search_text:
            needle = self.search_text.lower()
            if not any(
                _contains(value, needle)
                for value in (
                    message.name,
                    message.email,
                    message.subject,
                    message.message,
                    message.company,
                )
            ):
                return False

        if self.status != ALL and message.status != self.status:
            return False
        if self.priority != ALL and message.priority != self.priority:
            return False
        if self.source != ALL and message.source != self.source:
            return False
        if self.assignee != ALL and (message.assigned_to or "").lower() != self.assignee.lower():
            return False

        if self.date_from and message.created_at < self.date_from:
            return False
        if self.date_to and message.created_at > self.date_to:
            return False

        if self.company and not _contains(message.company, self.company.lower()):
            return False
        if self.subject and message.subject.strip().lower() != self.subject.lower():
            return False

        if self.tags:
            selected = {tag.lower() for tag in self.tags}
            if not selected & {tag.lower() for tag in message.tags}:
                return False

        if (
            self.response_time != ResponseTimeBucket.ALL
            and response_time_bucket(message.response_time) != self.response_time
        ):
            return False

        return True

    def is_wildcard(self) -> bool:
        """True when this spec constrains nothing."""
        return self == FilterSpec()

    def __and__(self, other: MessagePredicate) -> "AllOf":
        return AllOf([self, other])


@dataclass
class AllOf:
    """Conjunction of several predicates."""

    predicates: list[MessagePredicate]

    def matches(self, message: ContactMessage) -> bool:
        return all(predicate.matches(message) for predicate in self.predicates)

    def __and__(self, other: MessagePredicate) -> "AllOf":
        return AllOf([*self.predicates, other])


def filter_messages(
    messages: Iterable[ContactMessage], spec: MessagePredicate | None = None
) -> list[ContactMessage]:
    """Return the messages matching ``spec``, preserving input order."""
    if spec is None:
        return list(messages)
    return [message for message in messages if spec.matches(message)]


def messages_for_email(messages: Iterable[ContactMessage], email: str) -> list[ContactMessage]:
    """All messages sent from one email address, newest first."""
    if not email or not email.strip():
        raise ValidationError("InvalidField", "Email is required")
    wanted = email.strip().lower()
    found = [message for message in messages if message.email.lower() == wanted]
    return sorted(found, key=lambda message: message.created_at, reverse=True)


@dataclass
class Page:
    items: list[ContactMessage]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


def paginate(messages: Sequence[ContactMessage], page: int = 1, limit: int = 10) -> Page:
    """Slice a (newest-first) listing into one page."""
    if limit < 1:
        raise ValidationError("InvalidField", f"limit must be at least 1, got {limit}")
    page = max(page, 1)
    start = (page - 1) * limit
    return Page(items=list(messages[start : start + limit]), page=page, limit=limit, total=len(messages))


def newest_first(messages: Iterable[ContactMessage]) -> list[ContactMessage]:
    return sorted(messages, key=lambda message: message.created_at, reverse=True)
