"""Moderation pipeline: allow/block/queue decisions, review queue and audit log.

This package provides:
- The decision policy applied before publication
- A review queue with automatic escalation and a small status state machine
- An append-only audit log with history and statistics
- In-memory and file-backed stores
"""

from feedguard.moderation.models import (
    ActionType,
    ContentSubmission,
    ContentType,
    ModerationAction,
    PublishDecision,
    QueueItem,
    QueueStatus,
    ReviewDecision,
)
from feedguard.moderation.service import ModerationService
from feedguard.moderation.store import JsonFileStore, MemoryStore

__all__ = [
    "ActionType",
    "ContentSubmission",
    "ContentType",
    "ModerationAction",
    "PublishDecision",
    "QueueItem",
    "QueueStatus",
    "ReviewDecision",
    "ModerationService",
    "JsonFileStore",
    "MemoryStore",
]
