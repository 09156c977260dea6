"""Read flags and per-category last-seen checkpoints."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from backoffice.core.types import SourceType, now_millis
from backoffice.notifications.models import Notification, NotificationCounts
from backoffice.notifications.storage import KeyValueStorage, StorageError
from backoffice.notifications.store import NotificationStore

logger = logging.getLogger(__name__)

TIME_CHECKPOINTS = frozenset({SourceType.REVIEW, SourceType.LEAD})
COUNT_CHECKPOINTS = frozenset({SourceType.ORDER, SourceType.QUESTION})


def checkpoint_key(category: SourceType) -> str:
    suffix = "Time" if category in TIME_CHECKPOINTS else "Count"
    return f"lastSeen:{category}{suffix}"


class CheckpointStore:
    """Persisted "already seen" scalars, one per category.

    Reviews and leads record the epoch-millis instant of the last visit;
    orders and questions record how many were pending at that visit.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def get(self, category: SourceType) -> int:
        key = checkpoint_key(category)
        try:
            raw = self._storage.get(key)
        except StorageError as exc:
            logger.warning("Checkpoint %s unreadable: %s", key, exc)
            return 0
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring non-numeric checkpoint %s=%r", key, raw)
            return 0

    def set(self, category: SourceType, value: int) -> None:
        key = checkpoint_key(category)
        try:
            self._storage.set(key, str(int(value)))
        except StorageError as exc:
            logger.warning("Could not persist checkpoint %s: %s", key, exc)

    def new_since_seen(self, category: SourceType, relevant: Iterable[Any]) -> int:
        """How many of the currently relevant entities arrived after the checkpoint."""
        checkpoint = self.get(category)
        entities = list(relevant)
        if category in TIME_CHECKPOINTS:
            return sum(
                1 for e in entities
                if e.created_at is not None and e.created_at.timestamp() * 1000 > checkpoint
            )
        return max(0, len(entities) - checkpoint)


class ReadSeenTracker:
    """Mutates read flags on the store and moves checkpoints.

    Every operation is idempotent; a call that changes nothing does not
    rewrite storage.
    """

    def __init__(
        self,
        store: NotificationStore,
        checkpoints: CheckpointStore,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._store = store
        self._checkpoints = checkpoints
        self._clock = clock

    @property
    def checkpoints(self) -> CheckpointStore:
        return self._checkpoints

    def mark_as_read(self, notification_id: str) -> Notification | None:
        n = self._store.get(notification_id)
        if n is None:
            return None
        if not n.read:
            self._store.mark_read(notification_id)
            self._store.persist()
        return n

    def mark_all_as_read(self) -> int:
        changed = self._store.mark_all_read()
        if changed:
            self._store.persist()
        return changed

    def mark_category_as_seen(self, category: SourceType, pending: int | None = None) -> None:
        """Reset the category's "new since last view" signal.

        ``pending`` is the category's currently pending total; count-based
        checkpoints keep their value when it is unknown.
        """
        category = SourceType(category)
        if category in TIME_CHECKPOINTS:
            self._checkpoints.set(category, self._clock())
        elif pending is not None:
            self._checkpoints.set(category, pending)

    def counts(self) -> NotificationCounts:
        return self._store.counts()
