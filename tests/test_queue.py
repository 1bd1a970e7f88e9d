"""Tests for queue rules: escalation, ordering, transitions and cleanup."""

from datetime import datetime, timezone

import pytest

from feedguard.analysis.models import AnalysisResult, Severity
from feedguard.errors import InvalidTransitionError
from feedguard.moderation import queue
from feedguard.moderation.models import ContentType, QueueStatus, ReviewDecision
from feedguard.moderation.store import StoreState


def _item(severity=Severity.MEDIUM, confidence=0.5, created_at="2026-01-01T12:00:00+00:00", **kw):
    analysis = AnalysisResult(severity=severity, confidence=confidence, should_flag=True)
    return queue.new_queue_item(
        content_id=kw.get("content_id", "mod_abc"),
        content_type=kw.get("content_type", ContentType.POST),
        content="some text",
        user_id="user-1",
        analysis=analysis,
        created_at=created_at,
    )


def test_new_item_is_pending_with_fallback_reason():
    item = _item()
    assert item.status == QueueStatus.PENDING
    assert item.flag_reason == "Flagged by automated system"
    assert len(item.id) == 16


def test_enqueue_keeps_ordinary_items_pending():
    state = StoreState()
    stored = queue.enqueue(state, _item())
    assert stored.status == QueueStatus.PENDING
    assert state.queue[stored.id] is stored


@pytest.mark.parametrize(
    "severity,confidence",
    [(Severity.HIGH, 0.1), (Severity.LOW, 0.81)],
)
def test_enqueue_escalates_high_risk(severity, confidence):
    state = StoreState()
    stored = queue.enqueue(state, _item(severity=severity, confidence=confidence))
    assert stored.status == QueueStatus.ESCALATED


def test_confidence_at_boundary_is_not_escalated():
    assert queue.needs_escalation(Severity.MEDIUM, 0.8) is False


def test_enqueue_rejects_duplicate_id():
    state = StoreState()
    item = _item()
    queue.enqueue(state, item)
    with pytest.raises(ValueError):
        queue.enqueue(state, item)


def test_list_orders_by_severity_then_newest():
    state = StoreState()
    low_old = queue.enqueue(state, _item(Severity.LOW, created_at="2026-01-01T00:00:00+00:00"))
    med_old = queue.enqueue(state, _item(Severity.MEDIUM, created_at="2026-01-01T00:00:00+00:00"))
    med_new = queue.enqueue(state, _item(Severity.MEDIUM, created_at="2026-01-02T00:00:00+00:00"))
    high = queue.enqueue(state, _item(Severity.HIGH, created_at="2025-12-01T00:00:00+00:00"))

    ordered = queue.list_items(state.queue.values())
    assert [i.id for i in ordered] == [high.id, med_new.id, med_old.id, low_old.id]


def test_list_ties_put_latest_insert_first():
    state = StoreState()
    first = queue.enqueue(state, _item())
    second = queue.enqueue(state, _item())
    assert [i.id for i in queue.list_items(state.queue.values())] == [second.id, first.id]


def test_list_filters_and_paginates():
    state = StoreState()
    for day in range(1, 6):
        queue.enqueue(state, _item(created_at=f"2026-01-0{day}T00:00:00+00:00"))
    queue.enqueue(state, _item(content_type=ContentType.REPLY))
    queue.enqueue(state, _item(Severity.HIGH))

    posts = queue.list_items(state.queue.values(), content_type=ContentType.POST, status=QueueStatus.PENDING)
    assert len(posts) == 5

    page = queue.list_items(
        state.queue.values(), content_type=ContentType.POST, status=QueueStatus.PENDING, limit=2, offset=1
    )
    assert [i.created_at[:10] for i in page] == ["2026-01-04", "2026-01-03"]

    escalated = queue.list_items(state.queue.values(), status=QueueStatus.ESCALATED)
    assert len(escalated) == 1


def test_apply_decision_transitions():
    state = StoreState()
    item = queue.enqueue(state, _item())

    escalated = queue.apply_decision(state, item.id, ReviewDecision.ESCALATE)
    assert escalated.status == QueueStatus.ESCALATED

    reviewed = queue.apply_decision(state, item.id, ReviewDecision.APPROVE)
    assert reviewed.status == QueueStatus.REVIEWED
    assert state.queue[item.id].status == QueueStatus.REVIEWED


def test_apply_decision_unknown_item():
    assert queue.apply_decision(StoreState(), "missing", ReviewDecision.APPROVE) is None


def test_reviewed_items_are_terminal():
    state = StoreState()
    item = queue.enqueue(state, _item())
    queue.apply_decision(state, item.id, ReviewDecision.REJECT)

    for decision in ReviewDecision:
        with pytest.raises(InvalidTransitionError):
            queue.apply_decision(state, item.id, decision)


def test_escalating_twice_is_rejected():
    state = StoreState()
    item = queue.enqueue(state, _item(Severity.HIGH))
    with pytest.raises(InvalidTransitionError) as exc_info:
        queue.apply_decision(state, item.id, ReviewDecision.ESCALATE)
    assert exc_info.value.status == "escalated"


def test_prune_only_removes_old_reviewed_items():
    state = StoreState()
    old_reviewed = queue.enqueue(state, _item(created_at="2026-01-01T00:00:00+00:00"))
    new_reviewed = queue.enqueue(state, _item(created_at="2026-03-01T00:00:00+00:00"))
    old_pending = queue.enqueue(state, _item(created_at="2026-01-01T00:00:00+00:00"))
    queue.apply_decision(state, old_reviewed.id, ReviewDecision.APPROVE)
    queue.apply_decision(state, new_reviewed.id, ReviewDecision.APPROVE)

    removed = queue.prune_reviewed(state, datetime(2026, 2, 1, tzinfo=timezone.utc))
    assert removed == 1
    assert set(state.queue) == {new_reviewed.id, old_pending.id}
