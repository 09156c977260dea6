"""Bounded, persisted notification store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from backoffice.core.types import SourceType, now_millis
from backoffice.notifications.models import Notification, NotificationCounts, PersistedFeed
from backoffice.notifications.storage import KeyValueStorage, StorageError

logger = logging.getLogger(__name__)

STORAGE_KEY = "notifications"
DEFAULT_CAPACITY = 100


def recompute_counts(items: Iterable[Notification]) -> NotificationCounts:
    """Unread count per category by full scan of ``items``."""
    counts = {c.value: 0 for c in SourceType}
    for n in items:
        if not n.read:
            counts[n.source_type.value] += 1
    return NotificationCounts(**counts)


class NotificationStore:
    """Newest-first notification sequence capped at ``capacity``.

    Trimming drops the oldest records. Persistence failures are logged and
    never raised: a corrupt or unreadable feed loads as empty and a failed
    write leaves the in-memory list authoritative.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        capacity: int = DEFAULT_CAPACITY,
        key: str = STORAGE_KEY,
    ) -> None:
        self._storage = storage
        self._capacity = capacity
        self._key = key
        self._items: list[Notification] = []
        self.last_updated: int | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> list[Notification]:
        """Restore the persisted feed, replacing anything held in memory."""
        self._items = []
        try:
            raw = self._storage.get(self._key)
        except StorageError as exc:
            logger.warning("Notification storage unreadable, starting empty: %s", exc)
            return []
        if raw is None:
            return []
        try:
            feed = PersistedFeed.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding corrupt notification feed: %s", exc.errors()[:1])
            return []
        self._items = feed.items
        self.last_updated = feed.last_updated
        self.trim()
        return self.items

    def get(self, notification_id: str) -> Notification | None:
        for n in self._items:
            if n.id == notification_id:
                return n
        return None

    def add(self, notification: Notification) -> None:
        """Insert at the head. Does not trim or persist."""
        self._items.insert(0, notification)

    def trim(self) -> list[Notification]:
        """Drop the oldest records beyond capacity and return them."""
        if len(self._items) <= self._capacity:
            return []
        dropped = self._items[self._capacity:]
        del self._items[self._capacity:]
        return dropped

    def mark_read(self, notification_id: str) -> Notification | None:
        n = self.get(notification_id)
        if n is not None:
            n.read = True
        return n

    def mark_all_read(self) -> int:
        changed = 0
        for n in self._items:
            if not n.read:
                n.read = True
                changed += 1
        return changed

    def counts(self) -> NotificationCounts:
        return recompute_counts(self._items)

    def persist(self) -> bool:
        feed = PersistedFeed(items=self._items, last_updated=now_millis())
        try:
            self._storage.set(self._key, feed.model_dump_json(by_alias=True))
        except StorageError as exc:
            logger.warning("Could not persist notifications: %s", exc)
            return False
        self.last_updated = feed.last_updated
        return True
