"""Data models for the contact triage engine."""

import math
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class TriageError(Exception):
    """Base class for all triage engine errors."""


class ValidationError(TriageError):
    """Raised before any mutation when a request or field is invalid."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code  # 'NoSelection', 'MissingAssignee', 'EmptyResponse', 'InvalidField'


class NoSelectionError(ValidationError):
    def __init__(self, message: str = "No messages selected"):
        super().__init__("NoSelection", message)


class MissingAssigneeError(ValidationError):
    def __init__(self, message: str = "An assignee is required for the assign action"):
        super().__init__("MissingAssignee", message)


class NetworkError(TriageError):
    """Raised when a call to the contact API fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TriageError):
    """Raised when a message id is not present in the store or backend."""

    def __init__(self, message_id: str):
        super().__init__(f"Contact message {message_id} not found")
        self.message_id = message_id


class MessageStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class MessagePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MessageSource(str, Enum):
    WEBSITE = "website"
    EMAIL = "email"
    PHONE = "phone"
    SOCIAL = "social"
    REFERRAL = "referral"


class ResponseTimeBucket(str, Enum):
    """Response time classes used by the filter engine."""

    ALL = "all"
    FAST = "fast"  # <= 2h
    MEDIUM = "medium"  # (2h, 24h]
    SLOW = "slow"  # > 24h


class BulkAction(str, Enum):
    RESOLVE = "resolve"
    ASSIGN = "assign"
    ARCHIVE = "archive"
    DELETE = "delete"


def parse_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Enum:
    """Coerce a wire string into an enum member, raising ValidationError on junk."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            "InvalidField", f"Invalid {field_name} '{value}'. Must be one of: {allowed}"
        ) from e


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (trailing 'Z' allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError("InvalidField", f"Invalid timestamp '{value}'") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_response_time(value: Any) -> float | None:
    """Parse a response time in hours; it must be a finite, non-negative number."""
    if value is None or value == "":
        return None
    try:
        hours = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError("InvalidField", f"Invalid response time '{value}'") from e
    if not math.isfinite(hours) or hours < 0:
        raise ValidationError("InvalidField", f"Invalid response time '{value}'")
    return hours


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class ContactResponse:
    """The single staff reply attached to a message."""

    text: str
    sent_at: datetime
    sent_by: str


@dataclass
class ContactNote:
    """An internal note; notes form an append-only log on the message."""

    text: str
    created_by: str
    created_at: datetime


@dataclass
class ContactMessage:
    """An inbound contact message as shown on the triage screen."""

    id: str
    name: str
    email: str
    subject: str
    message: str
    created_at: datetime
    status: MessageStatus = MessageStatus.NEW
    priority: MessagePriority = MessagePriority.MEDIUM
    source: MessageSource = MessageSource.WEBSITE
    phone: str | None = None
    company: str | None = None
    assigned_to: str | None = None
    tags: set[str] = field(default_factory=set)
    starred: bool = False
    response: ContactResponse | None = None
    notes: list[ContactNote] = field(default_factory=list)
    follow_up_date: datetime | None = None
    response_time: float | None = None  # hours
    updated_at: datetime | None = None

    def __post_init__(self):
        # Timestamps are always timezone-aware; naive values are taken as UTC
        self.created_at = parse_timestamp(self.created_at)
        self.follow_up_date = parse_timestamp(self.follow_up_date)
        self.updated_at = parse_timestamp(self.updated_at)
        self.response_time = parse_response_time(self.response_time)

    def add_note(self, text: str, created_by: str, created_at: datetime | None = None) -> ContactNote:
        """Append a note to the message's note log."""
        if not text or not text.strip():
            raise ValidationError("InvalidField", "Note text is required")
        note = ContactNote(
            text=text.strip(),
            created_by=created_by,
            created_at=created_at or datetime.now(UTC),
        )
        self.notes.append(note)
        return note

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "ContactMessage":
        """Build a message from the contact API's camelCase JSON shape."""
        message_id = payload.get("_id") or payload.get("id")
        if not message_id:
            raise ValidationError("InvalidField", "Contact payload is missing an id")

        created_at = parse_timestamp(payload.get("createdAt"))
        if created_at is None:
            raise ValidationError("InvalidField", f"Contact {message_id} has no createdAt")

        response = None
        raw_response = payload.get("response")
        if raw_response and raw_response.get("text"):
            response = ContactResponse(
                text=raw_response["text"],
                sent_at=parse_timestamp(raw_response.get("sentAt")) or created_at,
                sent_by=raw_response.get("sentBy") or "",
            )

        notes = [
            ContactNote(
                text=note.get("text", ""),
                created_by=note.get("createdBy") or "",
                created_at=parse_timestamp(note.get("createdAt")) or created_at,
            )
            for note in payload.get("notes") or []
        ]

        return cls(
            id=str(message_id),
            name=payload.get("name") or "",
            email=payload.get("email") or "",
            subject=payload.get("subject") or "",
            message=payload.get("message") or "",
            created_at=created_at,
            status=parse_enum(MessageStatus, payload.get("status") or "new", "status"),
            priority=parse_enum(MessagePriority, payload.get("priority") or "medium", "priority"),
            source=parse_enum(MessageSource, payload.get("source") or "website", "source"),
            phone=payload.get("phone") or None,
            company=payload.get("company") or None,
            assigned_to=payload.get("assignedTo") or None,
            tags={tag.strip() for tag in payload.get("tags") or [] if tag and tag.strip()},
            starred=bool(payload.get("starred", False)),
            response=response,
            notes=notes,
            follow_up_date=parse_timestamp(payload.get("followUpDate")),
            response_time=parse_response_time(payload.get("responseTime")),
            updated_at=parse_timestamp(payload.get("updatedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used by the contact API."""
        return {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "subject": self.subject,
            "message": self.message,
            "status": self.status.value,
            "priority": self.priority.value,
            "source": self.source.value,
            "assignedTo": self.assigned_to,
            "tags": sorted(self.tags),
            "starred": self.starred,
            "response": {
                "text": self.response.text,
                "sentAt": _isoformat(self.response.sent_at),
                "sentBy": self.response.sent_by,
            }
            if self.response
            else None,
            "notes": [
                {
                    "text": note.text,
                    "createdBy": note.created_by,
                    "createdAt": _isoformat(note.created_at),
                }
                for note in self.notes
            ],
            "followUpDate": _isoformat(self.follow_up_date),
            "responseTime": self.response_time,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class AnalyticsReport:
    """Snapshot of inbox metrics over one lookback period."""

    period_days: int
    total_messages: int
    new_messages: int
    resolved_messages: int
    average_response_time: float
    resolution_rate: float
    urgent_messages: int
    status_breakdown: dict[MessageStatus, int]
    source_breakdown: dict[MessageSource, int]
    priority_breakdown: dict[MessagePriority, int]
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("status_breakdown", "source_breakdown", "priority_breakdown"):
            data[key] = {member.value: count for member, count in data[key].items()}
        data["generated_at"] = self.generated_at.isoformat()
        return data


@dataclass
class BulkActionRequest:
    """One bulk action over a selection of message ids."""

    action: BulkAction
    target_ids: list[str]
    assignee_id: str | None = None

    def __post_init__(self):
        self.action = parse_enum(BulkAction, self.action, "action")
        # Preserve selection order, drop duplicates
        self.target_ids = list(dict.fromkeys(self.target_ids or []))


@dataclass
class BulkActionResult:
    """Outcome of a bulk action."""

    action: BulkAction
    updated_count: int = 0
    failed_ids: list[str] = field(default_factory=list)
    requires_confirmation: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.requires_confirmation and not self.failed_ids


@dataclass
class Notification:
    """A user-visible, non-fatal message surfaced by the triage session."""

    level: str  # 'success' | 'error' | 'warning'
    text: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
