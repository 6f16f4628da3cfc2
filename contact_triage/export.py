"""CSV export of filtered contact views."""

import csv
import io
import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from pathlib import Path

from .models import ContactMessage

logger = logging.getLogger(__name__)

CSV_MIME_TYPE = "text/csv"
CSV_COLUMNS = [
    "Name",
    "Email",
    "Phone",
    "Company",
    "Subject",
    "Status",
    "Priority",
    "Source",
    "CreatedDate",
]


def _row(message: ContactMessage, date_format: str) -> list[str]:
    return [
        message.name,
        message.email,
        message.phone or "",
        message.company or "",
        message.subject,
        message.status.value,
        message.priority.value,
        message.source.value,
        message.created_at.strftime(date_format),
    ]


def to_csv(messages: Iterable[ContactMessage], date_format: str = "%Y-%m-%d") -> str:
    """Serialize messages to CSV, one row per message in input order.

    Fields containing a comma, quote or line break are quoted with inner
    quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(CSV_COLUMNS)
    for message in messages:
        writer.writerow(_row(message, date_format))
    return buffer.getvalue()


def export_filename(on: date | None = None) -> str:
    """Download name for an export, e.g. contacts-2024-03-01.csv."""
    on = on or datetime.now(UTC).date()
    return f"contacts-{on.isoformat()}.csv"


def write_export(
    messages: Iterable[ContactMessage], export_dir: str | Path, on: date | None = None
) -> Path:
    """Write the CSV export into ``export_dir`` and return the file path."""
    messages = list(messages)
    directory = Path(export_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(on)

    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(messages))

    logger.info(f"Exported {len(messages)} contact messages to {path}")
    return path
