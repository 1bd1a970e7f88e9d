"""Moderation service -- the single entry point for the submission flow.

Composes the analyzer, the baseline filter, the review queue and the
audit log. All mutations are serialised behind one lock (and the
store's own lock, which also excludes other processes) and each runs as
one store transaction, so a queue status change is never visible without
its audit record.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from feedguard.analysis.analyzer import ContentAnalyzer
from feedguard.analysis.models import AnalysisOptions, Severity, SuggestedAction
from feedguard.moderation import audit, queue
from feedguard.moderation.models import (
    ActionType,
    ContentSubmission,
    ContentType,
    ModerationAction,
    ModerationStats,
    PublishDecision,
    QueueItem,
    QueueStatus,
    ReviewDecision,
)
from feedguard.moderation.settings import DEFAULT_SETTINGS, merge_settings
from feedguard.moderation.store import MemoryStore, ModerationStore, StoreState, with_retry

log = logging.getLogger(__name__)

HOLD_THREAT = 0.3

# Upper bound accepted for day-count windows (cleanup age, stats range).
MAX_WINDOW_DAYS = 36500

_DEFAULT_REASONS = {
    ReviewDecision.APPROVE: "Approved by moderator",
    ReviewDecision.REJECT: "Rejected by moderator",
    ReviewDecision.ESCALATE: "Escalated by moderator",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_content_id() -> str:
    return f"mod_{uuid.uuid4().hex[:12]}"


class ModerationService:
    """Screens submissions and manages the review queue.

    Parameters
    ----------
    store : ModerationStore | None
        Backing store; defaults to a fresh :class:`MemoryStore`.
    settings : AnalysisOptions | None
        Initial analyzer settings; defaults to ``DEFAULT_SETTINGS``.
    analyzer : ContentAnalyzer | None
        Analyzer to use; defaults to one built from the shipped tables.
    clock : callable | None
        Returns the current aware UTC datetime. Injectable for tests.
    max_workers : int
        Thread pool size for :meth:`bulk_moderate`.
    """

    def __init__(
        self,
        store: Optional[ModerationStore] = None,
        settings: Optional[AnalysisOptions] = None,
        analyzer: Optional[ContentAnalyzer] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_workers: int = 8,
    ) -> None:
        self._store = store or MemoryStore()
        self._settings = settings or DEFAULT_SETTINGS
        self._analyzer = analyzer or ContentAnalyzer()
        self._clock = clock or _utcnow
        self._max_workers = max_workers
        self._lock = threading.RLock()

    @property
    def analyzer(self) -> ContentAnalyzer:
        return self._analyzer

    # -- internals -----------------------------------------------------------

    def _now(self) -> str:
        return self._clock().isoformat()

    @contextmanager
    def _transaction(self) -> Iterator[StoreState]:
        """Yield a private copy of the state; commit it if the block succeeds and changed it.

        The store lock is held from load to commit so writers in other
        processes cannot interleave.
        """
        with self._lock, self._store.lock():
            state = with_retry(self._store.load)
            original = state.copy()
            yield state
            if state != original:
                with_retry(lambda: self._store.commit(state))

    def _snapshot(self) -> StoreState:
        with self._lock:
            return with_retry(self._store.load)

    # -- submission ----------------------------------------------------------

    def moderate_before_publish(
        self,
        text: str,
        content_type: ContentType,
        author_id: str,
        content_id: Optional[str] = None,
    ) -> PublishDecision:
        """Decide whether *text* may be published.

        Blocking takes precedence over queueing, and queueing over
        passive filtering.
        """
        content_id = content_id or generate_content_id()
        settings = self.get_settings()
        baseline = self._analyzer.content_filter.validate(text)
        result = self._analyzer.analyze(text, settings)

        if result.suggested_action == SuggestedAction.BLOCK:
            with self._transaction() as state:
                audit.record_action(
                    state,
                    content_id=content_id,
                    content_type=content_type,
                    action=ActionType.BLOCKED,
                    severity=result.severity,
                    reason=result.flag_reason or "Blocked by automated system",
                    timestamp=self._now(),
                    moderation_tags=result.moderation_tags,
                )
            log.info(
                "Blocked %s %s by %s (tags=%s)",
                content_type.value, content_id, author_id, ",".join(result.moderation_tags),
            )
            return PublishDecision(
                allowed=False, filtered=False, analysis=result, content_id=content_id
            )

        if result.should_flag:
            item = queue.new_queue_item(
                content_id=content_id,
                content_type=content_type,
                content=text,
                user_id=author_id,
                analysis=result,
                created_at=self._now(),
            )
            with self._transaction() as state:
                item = queue.enqueue(state, item)
            if item.status == QueueStatus.ESCALATED:
                log.info("Escalated %s %s on entry (queue id %s)", content_type.value, content_id, item.id)
            else:
                log.debug("Queued %s %s for review (queue id %s)", content_type.value, content_id, item.id)
            allowed = not (result.severity == Severity.HIGH or result.scores.threat > HOLD_THREAT)
            return PublishDecision(
                allowed=allowed,
                filtered=False,
                analysis=result,
                content_id=content_id,
                queue_id=item.id,
            )

        if baseline.filtered_content and baseline.filtered_content != text:
            return PublishDecision(
                allowed=True,
                filtered=True,
                analysis=result,
                content_id=content_id,
                filtered_content=baseline.filtered_content,
            )

        return PublishDecision(allowed=True, filtered=False, analysis=result, content_id=content_id)

    def bulk_moderate(self, submissions: Sequence[ContentSubmission]) -> list[PublishDecision]:
        """Moderate several submissions concurrently; results follow input order."""
        if not submissions:
            return []
        workers = max(1, min(self._max_workers, len(submissions)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feedguard") as pool:
            return list(
                pool.map(
                    lambda s: self.moderate_before_publish(
                        s.text, s.content_type, s.author_id, s.content_id
                    ),
                    submissions,
                )
            )

    # -- review queue --------------------------------------------------------

    def list_queue(
        self,
        status: Optional[QueueStatus] = None,
        severity: Optional[Severity] = None,
        content_type: Optional[ContentType] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[QueueItem]:
        """Queue items matching every given filter, highest severity and newest first."""
        state = self._snapshot()
        return queue.list_items(
            state.queue.values(),
            status=status,
            severity=severity,
            content_type=content_type,
            limit=limit,
            offset=offset,
        )

    def get_item(self, queue_id: str) -> Optional[QueueItem]:
        return self._snapshot().queue.get(queue_id)

    def process_decision(
        self,
        queue_id: str,
        decision: ReviewDecision,
        reviewer_id: str,
        reason: Optional[str] = None,
    ) -> Optional[QueueItem]:
        """Apply a reviewer decision and return the updated item.

        Returns ``None`` if *queue_id* is unknown. Raises
        :class:`~feedguard.errors.InvalidTransitionError` when the item's
        status does not allow the decision.
        """
        with self._transaction() as state:
            item = queue.apply_decision(state, queue_id, decision)
            if item is None:
                return None
            audit.record_action(
                state,
                content_id=item.content_id,
                content_type=item.content_type,
                action=decision.action,
                severity=item.severity,
                reason=reason or _DEFAULT_REASONS[decision],
                timestamp=self._now(),
                reviewer_id=reviewer_id,
                moderation_tags=item.moderation_tags,
            )
        log.info("Reviewer %s applied '%s' to queue item %s", reviewer_id, decision.value, queue_id)
        return item

    def cleanup(self, max_age_days: float = 30) -> int:
        """Remove reviewed items older than *max_age_days*. The audit log is untouched."""
        if max_age_days < 0:
            raise ValueError("max_age_days must not be negative")
        try:
            cutoff = self._clock() - timedelta(days=max_age_days)
        except OverflowError:
            cutoff = datetime.min.replace(tzinfo=timezone.utc)
        with self._transaction() as state:
            removed = queue.prune_reviewed(state, cutoff)
        if removed:
            log.info("Cleaned up %d reviewed queue item(s)", removed)
        return removed

    # -- audit & statistics --------------------------------------------------

    def get_history(self, content_id: str) -> list[ModerationAction]:
        return audit.history(self._snapshot().actions, content_id)

    def get_stats(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> ModerationStats:
        state = self._snapshot()
        return audit.compute_stats(state.actions, state.queue.values(), start, end)

    def export_history(self, fmt: str = "json") -> str:
        return audit.export_actions(self._snapshot().actions, fmt)

    # -- settings ------------------------------------------------------------

    def get_settings(self) -> AnalysisOptions:
        with self._lock:
            return self._settings

    def update_settings(self, partial: Mapping[str, Any]) -> AnalysisOptions:
        """Merge *partial* over the current settings and return the result."""
        with self._lock:
            self._settings = merge_settings(self._settings, partial)
            return self._settings
