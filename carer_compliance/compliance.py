"""
Compliance rule engine.

Maps a carer's documents onto a green/amber/red traffic light and rolls
carers up into agency statistics. Everything here is a pure function of its
arguments: callers pass `today` explicitly and get fresh values back.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from carer_compliance.config import DEFAULT_THRESHOLDS, ComplianceThresholds
from carer_compliance.models import (
    Carer,
    CarerDocument,
    CarerStatus,
    ComplianceStats,
    DocumentStatus,
)

_STATUS_COLORS = {
    CarerStatus.GREEN: "bg-green-100 text-green-800 border-green-200",
    CarerStatus.AMBER: "bg-yellow-100 text-yellow-800 border-yellow-200",
    CarerStatus.RED: "bg-red-100 text-red-800 border-red-200",
}

_STATUS_ICONS = {
    CarerStatus.GREEN: "✓",
    CarerStatus.AMBER: "⚠",
    CarerStatus.RED: "✕",
}


def days_until_expiry(expires_on: date, today: date) -> int:
    """Whole calendar days from `today` until `expires_on` (negative once past)."""
    return (expires_on - today).days


def classify_document(
    document: CarerDocument,
    today: date,
    thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
) -> CarerStatus:
    days = days_until_expiry(document.expires_on, today)
    if (
        days <= thresholds.red_threshold_days
        or document.status == DocumentStatus.EXPIRED
    ):
        return CarerStatus.RED
    if days <= thresholds.amber_threshold_days:
        return CarerStatus.AMBER
    return CarerStatus.GREEN


def worst_status(statuses: Iterable[CarerStatus]) -> CarerStatus:
    """Most severe status in `statuses`; red when there are none."""
    return max(statuses, key=lambda s: s.severity, default=CarerStatus.RED)


def calculate_carer_status(
    carer: Carer | None,
    documents: Sequence[CarerDocument],
    today: date,
    thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
) -> CarerStatus:
    """
    Overall status of a carer: the worst status among its documents.

    A carer with no documents at all is red. `carer` itself is not inspected.
    """
    if not documents:
        return CarerStatus.RED
    return worst_status(
        classify_document(doc, today, thresholds) for doc in documents
    )


def calculate_agency_stats(carers: Sequence[Carer]) -> ComplianceStats:
    """
    Aggregate carers' cached `status` fields into agency statistics.

    The score weights green at 100 and amber at 50 and rounds half up, so
    2 green + 1 amber + 1 red scores 63.
    """
    stats = ComplianceStats(total_carers=len(carers))

    for carer in carers:
        match carer.status:
            case CarerStatus.GREEN:
                stats.green_count += 1
            case CarerStatus.AMBER:
                stats.amber_count += 1
                stats.expiring_soon += 1
            case CarerStatus.RED:
                stats.red_count += 1
                stats.overdue += 1

    if stats.total_carers:
        raw = (stats.green_count * 100 + stats.amber_count * 50) / stats.total_carers
        stats.overall_score = math.floor(raw + 0.5)

    return stats


def get_expiring_documents(
    documents: Iterable[CarerDocument],
    today: date,
    days: int = DEFAULT_THRESHOLDS.expiring_window_days,
) -> list[CarerDocument]:
    """Documents with `today <= expires_on <= today + days`."""
    horizon = today + timedelta(days=days)
    return [doc for doc in documents if today <= doc.expires_on <= horizon]


def get_expired_documents(
    documents: Iterable[CarerDocument], today: date
) -> list[CarerDocument]:
    return [
        doc
        for doc in documents
        if doc.expires_on < today or doc.status == DocumentStatus.EXPIRED
    ]


def sort_documents_by_urgency(
    documents: Iterable[CarerDocument], today: date
) -> list[CarerDocument]:
    """
    Expired documents first (most recently expired leading), then the rest by
    soonest expiry.
    """

    def key(doc: CarerDocument) -> tuple[int, int]:
        days = days_until_expiry(doc.expires_on, today)
        if days < 0:
            return (0, -days)
        return (1, days)

    return sorted(documents, key=key)


def group_documents_by_status(
    documents: Iterable[CarerDocument],
    today: date,
    thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
) -> dict[CarerStatus, list[CarerDocument]]:
    groups: dict[CarerStatus, list[CarerDocument]] = {s: [] for s in CarerStatus}
    for doc in sort_documents_by_urgency(documents, today):
        groups[classify_document(doc, today, thresholds)].append(doc)
    return groups


def format_expiry_info(
    expires_on: date,
    today: date,
    thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
) -> str:
    days = days_until_expiry(expires_on, today)
    if days < 0:
        return f"Expired {abs(days)} days ago"
    if days == 0:
        return "Expires today"
    if days <= thresholds.amber_threshold_days:
        return f"Expires in {days} days"
    return f"Valid for {days} days"


# presentation tokens


def status_color(status: CarerStatus) -> str:
    return _STATUS_COLORS[status]


def status_icon(status: CarerStatus) -> str:
    return _STATUS_ICONS[status]


def score_color(
    score: int, thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS
) -> str:
    if score >= thresholds.score_green_band:
        return "text-green-600"
    if score >= thresholds.score_amber_band:
        return "text-yellow-600"
    return "text-red-600"


def score_insight(
    score: int, thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS
) -> str:
    if score >= thresholds.score_green_band:
        return "Excellent compliance level"
    if score >= thresholds.score_amber_band:
        return "Good progress, room for improvement"
    return "Action needed to improve compliance"
