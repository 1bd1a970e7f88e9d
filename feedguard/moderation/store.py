"""Storage backends for the moderation queue and audit log.

A store holds one :class:`StoreState` (queue items plus the action log)
and replaces it wholesale on commit, so a status change and its audit
record are always persisted together or not at all.

- :class:`MemoryStore` keeps state in process, for tests and embedding.
- :class:`JsonFileStore` persists to ``~/.feedguard/moderation/state.json``
  (or a configured directory) using write-then-rename. Writers in other
  processes are excluded by ``state.json.lock``.
"""

from __future__ import annotations

import json
import logging
import os
import random
import tempfile
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ContextManager, Iterator, Optional, TypeVar

from filelock import FileLock, Timeout

from feedguard.errors import StoreError, TransientStoreError
from feedguard.moderation.models import ModerationAction, QueueItem

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StoreState:
    """Queue items keyed by id (insertion ordered) and the audit log."""

    queue: dict[str, QueueItem] = field(default_factory=dict)
    actions: list[ModerationAction] = field(default_factory=list)

    def copy(self) -> StoreState:
        # Items are immutable, so copying the containers is enough.
        return StoreState(queue=dict(self.queue), actions=list(self.actions))


class ModerationStore(ABC):
    """Load/commit interface shared by all backends."""

    @abstractmethod
    def load(self) -> StoreState:
        """Return a private copy of the committed state."""

    @abstractmethod
    def commit(self, state: StoreState) -> None:
        """Atomically replace the committed state with *state*."""

    def lock(self) -> ContextManager[None]:
        """Exclude other writers for the duration of a load/commit cycle.

        In-process backends need nothing beyond the caller's own lock.
        """
        return nullcontext()


class MemoryStore(ModerationStore):
    """In-process store."""

    def __init__(self, state: Optional[StoreState] = None) -> None:
        self._state = state or StoreState()

    def load(self) -> StoreState:
        return self._state.copy()

    def commit(self, state: StoreState) -> None:
        self._state = state.copy()


class JsonFileStore(ModerationStore):
    """File-based JSON store.

    Storage path: ``~/.feedguard/moderation/`` with:
    - ``state.json`` -- ``{"queue": [...], "actions": [...]}``
    - ``state.json.lock`` -- held across each read-modify-write cycle
    """

    def __init__(self, base_dir: str | Path | None = None, lock_timeout: float = 10.0) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".feedguard" / "moderation"
        self._base.mkdir(parents=True, exist_ok=True)
        self._state_path = self._base / "state.json"
        self._file_lock = FileLock(str(self._state_path) + ".lock", timeout=lock_timeout)

    @property
    def path(self) -> Path:
        return self._state_path

    @contextmanager
    def lock(self) -> Iterator[None]:
        try:
            self._file_lock.acquire()
        except Timeout as exc:
            raise TransientStoreError(f"Timed out waiting for {self._file_lock.lock_file}") from exc
        try:
            yield
        finally:
            self._file_lock.release()

    def load(self) -> StoreState:
        if not self._state_path.exists():
            return StoreState()
        try:
            data = json.loads(self._state_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise TransientStoreError(f"Cannot read {self._state_path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreError(f"Corrupt moderation state in {self._state_path}: {exc}") from exc

        items = [QueueItem.from_dict(d) for d in data.get("queue", [])]
        return StoreState(
            queue={item.id: item for item in items},
            actions=[ModerationAction.from_dict(d) for d in data.get("actions", [])],
        )

    def commit(self, state: StoreState) -> None:
        payload = {
            "queue": [item.to_dict() for item in state.queue.values()],
            "actions": [action.to_dict() for action in state.actions],
        }
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._base, prefix=".state-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2)
                os.replace(tmp_path, self._state_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            raise TransientStoreError(f"Cannot write {self._state_path}: {exc}") from exc


def with_retry(
    operation: Callable[[], T],
    attempts: int = 3,
    base_delay: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run *operation*, retrying :class:`TransientStoreError` with exponential backoff."""
    for attempt in range(attempts):
        try:
            return operation()
        except TransientStoreError as exc:
            if attempt == attempts - 1:
                log.error("Store operation failed after %d attempts: %s", attempts, exc)
                raise
            delay = base_delay * (2 ** attempt) + random.uniform(0, base_delay)
            log.warning(
                "Store operation failed, retrying in %.2fs (attempt %d/%d): %s",
                delay, attempt + 1, attempts, exc,
            )
            sleep(delay)
    raise StoreError("Retry loop exited without a result")
