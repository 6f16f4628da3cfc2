"""Contact Triage - filtering, analytics, bulk actions and export for a support inbox."""

__version__ = "0.1.0"
__description__ = "Message triage engine for the admin contact inbox"

from .analytics import aggregate, contact_stats
from .bulk import BulkActionOrchestrator
from .config import Config
from .contact_client import ContactClient
from .export import export_filename, to_csv
from .filters import FilterSpec, filter_messages, response_time_bucket
from .models import (
    AnalyticsReport,
    BulkAction,
    BulkActionRequest,
    BulkActionResult,
    ContactMessage,
    MessagePriority,
    MessageSource,
    MessageStatus,
    MissingAssigneeError,
    NetworkError,
    NoSelectionError,
    NotFoundError,
    ResponseTimeBucket,
    TriageError,
    ValidationError,
)
from .session import TriageSession
from .store import MessageStore

__all__ = [
    "MessageStore",
    "FilterSpec",
    "filter_messages",
    "response_time_bucket",
    "aggregate",
    "contact_stats",
    "BulkActionOrchestrator",
    "to_csv",
    "export_filename",
    "ContactClient",
    "TriageSession",
    "Config",
    "ContactMessage",
    "AnalyticsReport",
    "BulkAction",
    "BulkActionRequest",
    "BulkActionResult",
    "MessageStatus",
    "MessagePriority",
    "MessageSource",
    "ResponseTimeBucket",
    "TriageError",
    "ValidationError",
    "NoSelectionError",
    "MissingAssigneeError",
    "NetworkError",
    "NotFoundError",
]
