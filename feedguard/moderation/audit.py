"""Audit log of moderation actions.

Every automated block and every reviewer decision becomes one
:class:`ModerationAction`. The log is append-only: queue cleanup never
touches it. Provides per-content history, statistics and export.
"""

from __future__ import annotations

import csv
import io
import json
import uuid
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from feedguard.analysis.models import Severity
from feedguard.moderation.models import (
    ActionType,
    ContentType,
    ModerationAction,
    ModerationStats,
    QueueItem,
    QueueStats,
    QueueStatus,
)
from feedguard.moderation.store import StoreState

_EXPORT_FIELDS = [
    "id",
    "timestamp",
    "content_id",
    "content_type",
    "action",
    "automated",
    "severity",
    "reviewer_id",
    "reason",
]


def record_action(
    state: StoreState,
    *,
    content_id: str,
    content_type: ContentType,
    action: ActionType,
    severity: Severity,
    reason: str,
    timestamp: str,
    reviewer_id: Optional[str] = None,
    moderation_tags: tuple[str, ...] = (),
) -> ModerationAction:
    """Append an action to the log. Automated iff no reviewer is given."""
    entry = ModerationAction(
        id=uuid.uuid4().hex[:16],
        content_id=content_id,
        content_type=content_type,
        action=action,
        automated=reviewer_id is None,
        severity=severity,
        reason=reason,
        timestamp=timestamp,
        reviewer_id=reviewer_id,
        moderation_tags=moderation_tags,
    )
    state.actions.append(entry)
    return entry


def _newest_first(actions: Iterable[ModerationAction]) -> list[ModerationAction]:
    # Reverse first so same-timestamp entries keep newest-appended first.
    return sorted(
        reversed(list(actions)),
        key=lambda a: datetime.fromisoformat(a.timestamp),
        reverse=True,
    )


def history(actions: Iterable[ModerationAction], content_id: str) -> list[ModerationAction]:
    """Return all actions for *content_id*, newest first."""
    return _newest_first(a for a in actions if a.content_id == content_id)


def in_window(
    actions: Iterable[ModerationAction],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[ModerationAction]:
    result = []
    for a in actions:
        ts = datetime.fromisoformat(a.timestamp)
        if start is not None and ts < start:
            continue
        if end is not None and ts > end:
            continue
        result.append(a)
    return result


def compute_stats(
    actions: list[ModerationAction],
    queue_items: Iterable[QueueItem],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> ModerationStats:
    """Aggregate the log (optionally within a window) plus the queue backlog."""
    actions = in_window(actions, start, end)
    total = len(actions)
    automated = sum(1 for a in actions if a.automated)

    by_action = Counter(a.action for a in actions)
    by_severity = Counter(a.severity for a in actions)
    by_status = Counter(i.status for i in queue_items)

    return ModerationStats(
        total=total,
        automated=automated,
        manual=total - automated,
        action_breakdown={t.value: by_action.get(t, 0) for t in ActionType},
        severity_breakdown={s.value: by_severity.get(s, 0) for s in Severity},
        queue=QueueStats(
            pending=by_status.get(QueueStatus.PENDING, 0),
            escalated=by_status.get(QueueStatus.ESCALATED, 0),
            total_in_queue=by_status.get(QueueStatus.PENDING, 0)
            + by_status.get(QueueStatus.ESCALATED, 0),
        ),
        automation_rate=(automated / total * 100) if total > 0 else 0.0,
    )


def export_actions(actions: Iterable[ModerationAction], fmt: str = "json") -> str:
    """Export actions newest first as ``json`` or ``csv``."""
    ordered = _newest_first(actions)
    if fmt == "csv":
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=_EXPORT_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for a in ordered:
            writer.writerow(a.to_dict())
        return buf.getvalue()
    return json.dumps([a.to_dict() for a in ordered], indent=2)
