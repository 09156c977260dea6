"""Session-lifetime record of entities already turned into notifications."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable

from backoffice.core.types import SourceType
from backoffice.notifications.models import Notification, dedup_key


class DedupCache:
    """Set of ``"{sourceType}-{sourceId}"`` keys.

    Keys outlive the store records they were created for, so an entity
    trimmed from the feed is still never re-notified. With ``max_entries``
    set the cache becomes a FIFO of that size instead, and an entity whose
    key was evicted will notify again if a later poll returns it.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self._keys: OrderedDict[str, None] = OrderedDict()
        self._max_entries = max_entries

    def has(self, source_type: SourceType, source_id: str) -> bool:
        return dedup_key(source_type, source_id) in self._keys

    def add(self, source_type: SourceType, source_id: str) -> None:
        self._keys[dedup_key(source_type, source_id)] = None
        if self._max_entries is not None:
            while len(self._keys) > self._max_entries:
                self._keys.popitem(last=False)

    def rebuild(self, notifications: Iterable[Notification]) -> None:
        """Seed from restored notifications, oldest first so FIFO order holds."""
        self._keys.clear()
        for n in reversed(list(notifications)):
            self.add(n.source_type, n.source_id)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
