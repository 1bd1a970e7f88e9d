"""Data models for the moderation queue and audit log."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from feedguard.analysis.models import AnalysisResult, Severity


class ContentType(Enum):
    POST = "post"
    REPLY = "reply"
    PROFILE = "profile"


class QueueStatus(Enum):
    """Lifecycle of a queue item: pending -> {reviewed, escalated}, escalated -> reviewed."""

    PENDING = "pending"
    ESCALATED = "escalated"
    REVIEWED = "reviewed"


class ActionType(Enum):
    APPROVED = "approved"
    BLOCKED = "blocked"
    FLAGGED = "flagged"


class ReviewDecision(Enum):
    """A human reviewer's verdict on a queue item."""

    APPROVE = "approve"
    REJECT = "reject"
    ESCALATE = "escalate"

    @property
    def action(self) -> ActionType:
        return {
            ReviewDecision.APPROVE: ActionType.APPROVED,
            ReviewDecision.REJECT: ActionType.BLOCKED,
            ReviewDecision.ESCALATE: ActionType.FLAGGED,
        }[self]

    @property
    def target_status(self) -> QueueStatus:
        if self is ReviewDecision.ESCALATE:
            return QueueStatus.ESCALATED
        return QueueStatus.REVIEWED


@dataclass(frozen=True)
class ContentSubmission:
    """Text submitted for publication. Never persisted by the pipeline."""

    text: str
    content_type: ContentType
    author_id: str
    content_id: Optional[str] = None


@dataclass(frozen=True)
class QueueItem:
    """Flagged content awaiting human review.

    Items are replaced, not mutated, when their status changes.
    """

    id: str
    content_id: str
    content_type: ContentType
    content: str
    user_id: str
    flag_reason: str
    severity: Severity
    confidence: float
    moderation_tags: tuple[str, ...]
    created_at: str
    status: QueueStatus
    analysis: AnalysisResult

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content_id": self.content_id,
            "content_type": self.content_type.value,
            "content": self.content,
            "user_id": self.user_id,
            "flag_reason": self.flag_reason,
            "severity": self.severity.value,
            "confidence": self.confidence,
            "moderation_tags": list(self.moderation_tags),
            "created_at": self.created_at,
            "status": self.status.value,
            "analysis": self.analysis.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> QueueItem:
        return cls(
            id=data["id"],
            content_id=data["content_id"],
            content_type=ContentType(data["content_type"]),
            content=data.get("content", ""),
            user_id=data.get("user_id", ""),
            flag_reason=data.get("flag_reason", ""),
            severity=Severity(data.get("severity", "low")),
            confidence=data.get("confidence", 0.0),
            moderation_tags=tuple(data.get("moderation_tags", [])),
            created_at=data["created_at"],
            status=QueueStatus(data.get("status", "pending")),
            analysis=AnalysisResult.from_dict(data.get("analysis", {})),
        )


@dataclass(frozen=True)
class ModerationAction:
    """One audit-log record. Append-only; never mutated or deleted."""

    id: str
    content_id: str
    content_type: ContentType
    action: ActionType
    automated: bool
    severity: Severity
    reason: str
    timestamp: str
    reviewer_id: Optional[str] = None
    moderation_tags: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content_id": self.content_id,
            "content_type": self.content_type.value,
            "action": self.action.value,
            "automated": self.automated,
            "severity": self.severity.value,
            "reason": self.reason,
            "timestamp": self.timestamp,
            "reviewer_id": self.reviewer_id,
            "moderation_tags": list(self.moderation_tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ModerationAction:
        return cls(
            id=data["id"],
            content_id=data["content_id"],
            content_type=ContentType(data["content_type"]),
            action=ActionType(data["action"]),
            automated=data.get("automated", True),
            severity=Severity(data.get("severity", "low")),
            reason=data.get("reason", ""),
            timestamp=data["timestamp"],
            reviewer_id=data.get("reviewer_id"),
            moderation_tags=tuple(data.get("moderation_tags", [])),
        )


@dataclass(frozen=True)
class PublishDecision:
    """What the submission flow must honour before persisting content."""

    allowed: bool
    filtered: bool
    analysis: AnalysisResult
    content_id: str
    filtered_content: Optional[str] = None
    queue_id: Optional[str] = None


@dataclass
class QueueStats:
    pending: int = 0
    escalated: int = 0
    total_in_queue: int = 0


@dataclass
class ModerationStats:
    """Audit-log aggregates plus the current queue backlog."""

    total: int = 0
    automated: int = 0
    manual: int = 0
    action_breakdown: dict[str, int] = field(default_factory=dict)
    severity_breakdown: dict[str, int] = field(default_factory=dict)
    queue: QueueStats = field(default_factory=QueueStats)
    automation_rate: float = 0.0
