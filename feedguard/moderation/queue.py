"""Moderation queue operations over a :class:`StoreState`.

These functions hold the queue rules (auto-escalation, ordering, the
status state machine, cleanup); the service wraps them in locking and
store transactions.
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime
from typing import Iterable, Optional

from feedguard.analysis.models import AnalysisResult, Severity
from feedguard.errors import InvalidTransitionError
from feedguard.moderation.models import (
    ContentType,
    QueueItem,
    QueueStatus,
    ReviewDecision,
)
from feedguard.moderation.store import StoreState

ESCALATION_CONFIDENCE = 0.8

# Allowed reviewer transitions; reviewed is terminal
_TRANSITIONS: dict[QueueStatus, set[QueueStatus]] = {
    QueueStatus.PENDING: {QueueStatus.REVIEWED, QueueStatus.ESCALATED},
    QueueStatus.ESCALATED: {QueueStatus.REVIEWED},
    QueueStatus.REVIEWED: set(),
}


def needs_escalation(severity: Severity, confidence: float) -> bool:
    return severity == Severity.HIGH or confidence > ESCALATION_CONFIDENCE


def new_queue_item(
    content_id: str,
    content_type: ContentType,
    content: str,
    user_id: str,
    analysis: AnalysisResult,
    created_at: str,
) -> QueueItem:
    """Build a pending queue item from an analysis result."""
    return QueueItem(
        id=uuid.uuid4().hex[:16],
        content_id=content_id,
        content_type=content_type,
        content=content,
        user_id=user_id,
        flag_reason=analysis.flag_reason or "Flagged by automated system",
        severity=analysis.severity,
        confidence=analysis.confidence,
        moderation_tags=analysis.moderation_tags,
        created_at=created_at,
        status=QueueStatus.PENDING,
        analysis=analysis,
    )


def enqueue(state: StoreState, item: QueueItem) -> QueueItem:
    """Insert *item* as pending, escalating high-risk items on the way in."""
    if item.id in state.queue:
        raise ValueError(f"Queue item '{item.id}' already exists")
    status = (
        QueueStatus.ESCALATED
        if needs_escalation(item.severity, item.confidence)
        else QueueStatus.PENDING
    )
    item = dataclasses.replace(item, status=status)
    state.queue[item.id] = item
    return item


def _sort_key(item: QueueItem) -> tuple[int, datetime]:
    return (item.severity.rank, datetime.fromisoformat(item.created_at))


def list_items(
    items: Iterable[QueueItem],
    *,
    status: Optional[QueueStatus] = None,
    severity: Optional[Severity] = None,
    content_type: Optional[ContentType] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> list[QueueItem]:
    """Filter items, then order by severity (high first) and newest first."""
    matched = [
        i
        for i in items
        if (status is None or i.status == status)
        and (severity is None or i.severity == severity)
        and (content_type is None or i.content_type == content_type)
    ]
    # Reverse insertion order first so equal keys come out newest-inserted first.
    ordered = sorted(reversed(matched), key=_sort_key, reverse=True)
    end = None if limit is None else offset + limit
    return ordered[offset:end]


def apply_decision(
    state: StoreState, queue_id: str, decision: ReviewDecision
) -> Optional[QueueItem]:
    """Move an item to the decision's target status.

    Returns the updated item, or ``None`` when *queue_id* is unknown.
    """
    item = state.queue.get(queue_id)
    if item is None:
        return None
    target = decision.target_status
    if target not in _TRANSITIONS[item.status]:
        raise InvalidTransitionError(queue_id, item.status.value, decision.value)
    updated = dataclasses.replace(item, status=target)
    state.queue[queue_id] = updated
    return updated


def prune_reviewed(state: StoreState, cutoff: datetime) -> int:
    """Drop reviewed items created at or before *cutoff*; return how many."""
    before = len(state.queue)
    state.queue = {
        qid: item
        for qid, item in state.queue.items()
        if item.status != QueueStatus.REVIEWED
        or datetime.fromisoformat(item.created_at) > cutoff
    }
    return before - len(state.queue)
