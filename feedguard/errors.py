"""Exception hierarchy for feedguard.

The analyzer never raises for bad input; these errors cover configuration,
queue state transitions, and persistence.
"""

from __future__ import annotations


class FeedguardError(Exception):
    """Base class for all feedguard errors."""


class PatternTableError(FeedguardError):
    """A detection pattern table is malformed or contains an invalid regex."""


class SettingsValidationError(FeedguardError):
    """A settings update carried an invalid value and was not applied."""


class InvalidTransitionError(FeedguardError):
    """A reviewer decision is not legal for the queue item's current status."""

    def __init__(self, queue_id: str, status: str, decision: str) -> None:
        self.queue_id = queue_id
        self.status = status
        self.decision = decision
        super().__init__(
            f"Cannot apply '{decision}' to queue item '{queue_id}' with status '{status}'"
        )


class StoreError(FeedguardError):
    """Persistence failed and retrying will not help."""


class TransientStoreError(StoreError):
    """Persistence failed in a way that may succeed if retried."""
