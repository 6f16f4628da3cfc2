"""Windowed inbox analytics."""

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from .models import (
    AnalyticsReport,
    ContactMessage,
    MessagePriority,
    MessageSource,
    MessageStatus,
    ValidationError,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

SUPPORTED_PERIODS = (7, 30, 90)
URGENT_PRIORITIES = frozenset({MessagePriority.HIGH, MessagePriority.URGENT})


def _breakdown(enum_cls, values: Iterable) -> dict:
    """Count values per enum member, listing every member even when zero."""
    counts = Counter(values)
    return {member: counts.get(member, 0) for member in enum_cls}


def period_cutoff(period_days: int, now: datetime | None = None) -> datetime:
    if period_days not in SUPPORTED_PERIODS:
        raise ValidationError(
            "InvalidField",
            f"Unsupported period {period_days}. Must be one of: {', '.join(map(str, SUPPORTED_PERIODS))}",
        )
    now = parse_timestamp(now) or datetime.now(UTC)
    return now - timedelta(days=period_days)


def aggregate(
    messages: Iterable[ContactMessage], period_days: int = 30, now: datetime | None = None
) -> AnalyticsReport:
    """Compute the analytics report for messages created within the period.

    Args:
        messages: Messages to aggregate (usually a store snapshot)
        period_days: Lookback window, one of 7, 30 or 90
        now: Reference time, defaults to the current UTC time

    Returns:
        AnalyticsReport; averages and rates are 0 for an empty period
    """
    now = parse_timestamp(now) or datetime.now(UTC)
    cutoff = period_cutoff(period_days, now)
    period = [message for message in messages if message.created_at >= cutoff]

    total = len(period)
    status_breakdown = _breakdown(MessageStatus, (m.status for m in period))
    resolved = status_breakdown[MessageStatus.RESOLVED]

    if total > 0:
        average_response_time = sum(m.response_time or 0.0 for m in period) / total
        resolution_rate = resolved / total * 100
    else:
        average_response_time = 0.0
        resolution_rate = 0.0

    report = AnalyticsReport(
        period_days=period_days,
        total_messages=total,
        new_messages=status_breakdown[MessageStatus.NEW],
        resolved_messages=resolved,
        average_response_time=average_response_time,
        resolution_rate=resolution_rate,
        urgent_messages=sum(1 for m in period if m.priority in URGENT_PRIORITIES),
        status_breakdown=status_breakdown,
        source_breakdown=_breakdown(MessageSource, (m.source for m in period)),
        priority_breakdown=_breakdown(MessagePriority, (m.priority for m in period)),
        generated_at=now,
    )

    logger.debug(
        f"Aggregated {total} messages over {period_days} days "
        f"(resolution rate {resolution_rate:.1f}%)"
    )
    return report


def contact_stats(messages: Iterable[ContactMessage]) -> dict[str, Any]:
    """All-time counts by status, priority and subject."""
    messages = list(messages)
    subjects = Counter(m.subject for m in messages)
    return {
        "total_contacts": len(messages),
        "by_status": {
            member.value: count
            for member, count in _breakdown(MessageStatus, (m.status for m in messages)).items()
        },
        "by_priority": {
            member.value: count
            for member, count in _breakdown(MessagePriority, (m.priority for m in messages)).items()
        },
        # Most frequent first, ties broken alphabetically
        "by_subject": [
            {"subject": subject, "count": count}
            for subject, count in sorted(subjects.items(), key=lambda item: (-item[1], item[0]))
        ],
    }
