"""Tests for the audit log: history, statistics and export."""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from feedguard.analysis.models import Severity
from feedguard.moderation import audit
from feedguard.moderation.models import ActionType, ContentType
from feedguard.moderation.store import StoreState


def _record(state, content_id="mod_1", action=ActionType.BLOCKED, ts="2026-01-01T00:00:00+00:00", **kw):
    return audit.record_action(
        state,
        content_id=content_id,
        content_type=ContentType.POST,
        action=action,
        severity=kw.get("severity", Severity.HIGH),
        reason=kw.get("reason", "Flagged for: potential threat"),
        timestamp=ts,
        reviewer_id=kw.get("reviewer_id"),
    )


def test_record_marks_automated_when_no_reviewer():
    state = StoreState()
    auto = _record(state)
    manual = _record(state, action=ActionType.APPROVED, reviewer_id="rev-1")
    assert auto.automated is True and auto.reviewer_id is None
    assert manual.automated is False and manual.reviewer_id == "rev-1"
    assert state.actions == [auto, manual]


def test_history_is_newest_first_and_scoped():
    state = StoreState()
    first = _record(state, ts="2026-01-01T00:00:00+00:00")
    second = _record(state, ts="2026-01-02T00:00:00+00:00", reviewer_id="rev-1")
    _record(state, content_id="mod_other")

    assert audit.history(state.actions, "mod_1") == [second, first]
    assert audit.history(state.actions, "mod_unknown") == []


def test_history_same_timestamp_latest_append_first():
    state = StoreState()
    first = _record(state)
    second = _record(state, reviewer_id="rev-1")
    assert audit.history(state.actions, "mod_1") == [second, first]


def test_compute_stats():
    state = StoreState()
    _record(state, severity=Severity.HIGH)
    _record(state, action=ActionType.APPROVED, severity=Severity.MEDIUM, reviewer_id="rev-1")
    _record(state, action=ActionType.FLAGGED, severity=Severity.MEDIUM, reviewer_id="rev-2")
    _record(state, action=ActionType.BLOCKED, severity=Severity.LOW, reviewer_id="rev-2")

    stats = audit.compute_stats(state.actions, [])
    assert stats.total == 4
    assert stats.automated == 1
    assert stats.manual == 3
    assert stats.action_breakdown == {"approved": 1, "blocked": 2, "flagged": 1}
    assert stats.severity_breakdown == {"low": 1, "medium": 2, "high": 1}
    assert stats.automation_rate == pytest.approx(25.0)
    assert stats.queue.total_in_queue == 0


def test_compute_stats_empty_log():
    stats = audit.compute_stats([], [])
    assert stats.total == 0
    assert stats.automation_rate == 0.0


def test_stats_window_is_inclusive():
    state = StoreState()
    _record(state, ts="2026-01-01T00:00:00+00:00")
    _record(state, ts="2026-01-05T00:00:00+00:00")
    _record(state, ts="2026-01-10T00:00:00+00:00")

    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    end = datetime(2026, 1, 5, tzinfo=timezone.utc)
    assert audit.compute_stats(state.actions, [], start, end).total == 2
    assert audit.compute_stats(state.actions, [], start=end).total == 2


def test_export_json_and_csv():
    state = StoreState()
    _record(state, ts="2026-01-01T00:00:00+00:00")
    _record(state, ts="2026-01-02T00:00:00+00:00", reviewer_id="rev-1", reason="Looks fine")

    exported = json.loads(audit.export_actions(state.actions, "json"))
    assert [e["timestamp"][:10] for e in exported] == ["2026-01-02", "2026-01-01"]

    rows = list(csv.DictReader(io.StringIO(audit.export_actions(state.actions, "csv"))))
    assert len(rows) == 2
    assert rows[0]["reviewer_id"] == "rev-1"
    assert rows[0]["reason"] == "Looks fine"
    assert "moderation_tags" not in rows[0]
