"""Notification engine: the explicit owner of the feed, cache and checkpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from backoffice.core.config import NotificationConfig
from backoffice.core.types import SourceType, now_millis
from backoffice.live.toasts import ToastBoard
from backoffice.notifications.builders import NotificationBuilder
from backoffice.notifications.dedup import DedupCache
from backoffice.notifications.models import Notification, NotificationCounts, NotificationState
from backoffice.notifications.poller import Poller
from backoffice.notifications.reconciler import ReconcileReport, Reconciler
from backoffice.notifications.storage import KeyValueStorage
from backoffice.notifications.store import NotificationStore, recompute_counts
from backoffice.notifications.templates import TemplateSet
from backoffice.notifications.tracker import CheckpointStore, ReadSeenTracker
from backoffice.sources.adapters.http import parse_push_document
from backoffice.sources.base import SourceError
from backoffice.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)


class NotificationEngine:
    """Polls the sources, reconciles them into the feed and serves consumers.

    One instance per operator session; nothing is shared between instances
    except the storage backend handed in. ``start`` restores the persisted
    feed, rebuilds the dedup cache from it and runs the first pass; ``stop``
    halts polling, and a pass still in flight at that point is discarded
    when it lands.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        storage: KeyValueStorage,
        config: NotificationConfig | None = None,
        *,
        page_size: int = 100,
        toasts: ToastBoard | None = None,
        clock: Callable[[], int] = now_millis,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        config = config or NotificationConfig()
        self._config = config
        self._registry = registry
        self._toasts = toasts
        self._dedup = DedupCache(max_entries=config.dedup_max_entries)
        self._store = NotificationStore(storage, capacity=config.capacity)
        self._checkpoints = CheckpointStore(storage)
        builder = NotificationBuilder(
            TemplateSet(config.templates_path),
            currency_symbol=config.currency_symbol,
        )
        self._reconciler = Reconciler(
            registry, self._store, self._dedup, builder, page_size=page_size, clock=clock,
        )
        self._tracker = ReadSeenTracker(self._store, self._checkpoints, clock=clock)
        self._poller = Poller(
            self._run_pass,
            interval=config.poll_interval_seconds,
            min_interval=config.min_poll_interval_seconds,
            clock=monotonic,
        )
        self._counts = NotificationCounts()
        self._relevant: dict[SourceType, list[Any]] = {}
        self._last_checked: int | None = None
        self._last_report: ReconcileReport | None = None
        self._previous_new_orders = 0
        self._loaded = False
        self._disposed = False

    # -- lifecycle -----------------------------------------------------------

    def load(self) -> None:
        """Restore the persisted feed and rebuild the dedup cache from it."""
        items = self._store.load()
        self._dedup.rebuild(items)
        self._counts = recompute_counts(items)
        self._loaded = True
        logger.info("Restored %d notification(s) from storage", len(items))

    async def start(self) -> ReconcileReport | None:
        if self._disposed:
            raise RuntimeError("Engine has been stopped")
        if not self._loaded:
            self.load()
        return await self._poller.start()

    async def stop(self) -> None:
        self._disposed = True
        await self._poller.stop()

    @property
    def running(self) -> bool:
        return self._poller.running and not self._disposed

    # -- reconciliation ------------------------------------------------------

    async def _run_pass(self) -> ReconcileReport | None:
        results = await self._reconciler.fetch_all()
        if self._disposed:
            logger.info("Discarding reconciliation result that arrived after stop")
            return None
        report = self._reconciler.apply(results)
        self._absorb(report)
        for category in self._registry.categories:
            if category in report.relevant:
                self._relevant[category] = report.relevant[category]
        self._last_checked = report.finished_at
        self._notify_new_orders()
        return report

    async def refresh_now(self) -> ReconcileReport | None:
        """Force a pass now, joining the in-flight one if there is one."""
        if self._disposed:
            return None
        return await asyncio.shield(self._poller.trigger())

    async def set_visible(self, visible: bool) -> ReconcileReport | None:
        return await self._poller.set_visible(visible)

    def ingest(self, entity: Any) -> ReconcileReport | None:
        """Reconcile one entity outside the poll cycle (push routing)."""
        if self._disposed:
            return None
        report = self._reconciler.apply_entity(entity)
        self._absorb(report)
        return report

    def ingest_push_event(self, event_type: str, data: dict[str, Any]) -> ReconcileReport | None:
        """Route a push frame through the same dedup path as polled entities."""
        try:
            entity = parse_push_document(event_type, data)
        except (SourceError, ValueError) as exc:
            logger.warning("Ignoring unroutable push event %s: %s", event_type, exc)
            return None
        return self.ingest(entity)

    def _absorb(self, report: ReconcileReport) -> None:
        self._counts = report.counts
        self._last_report = report

    def _notify_new_orders(self) -> None:
        if self._toasts is None or SourceType.ORDER not in self._relevant:
            return
        new_orders = self._checkpoints.new_since_seen(SourceType.ORDER, self._relevant[SourceType.ORDER])
        added = new_orders - self._previous_new_orders
        if added > 0:
            self._toasts.show(
                "order",
                f"{added} new order{'s' if added > 1 else ''} received",
                icon="📦",
            )
        self._previous_new_orders = new_orders

    # -- consumer API --------------------------------------------------------

    def get_state(self, category: SourceType | str | None = None) -> NotificationState:
        items = self._store.items
        if category is not None:
            category = SourceType(category)
            items = [n for n in items if n.source_type == category]
        pending: dict[str, int] = {}
        new_since: dict[str, int] = {}
        for c, batch in self._relevant.items():
            pending[c.value] = len(batch)
            new_since[c.value] = self._checkpoints.new_since_seen(c, batch)
        return NotificationState(
            counts=self._counts.model_copy(),
            items=[n.model_copy() for n in items],
            pending=NotificationCounts(**pending),
            new_since_seen=NotificationCounts(**new_since),
            last_checked=self._last_checked,
        )

    @property
    def counts(self) -> NotificationCounts:
        return self._counts.model_copy()

    def mark_as_read(self, notification_id: str) -> Notification | None:
        n = self._tracker.mark_as_read(notification_id)
        self._counts = recompute_counts(self._store.items)
        return n

    def mark_all_as_read(self) -> int:
        changed = self._tracker.mark_all_as_read()
        self._counts = recompute_counts(self._store.items)
        return changed

    def mark_category_as_seen(self, category: SourceType | str) -> None:
        category = SourceType(category)
        batch = self._relevant.get(category)
        self._tracker.mark_category_as_seen(category, pending=None if batch is None else len(batch))
        if category == SourceType.ORDER:
            self._previous_new_orders = 0

    # -- introspection -------------------------------------------------------

    @property
    def store(self) -> NotificationStore:
        return self._store

    @property
    def dedup(self) -> DedupCache:
        return self._dedup

    @property
    def poller(self) -> Poller:
        return self._poller

    @property
    def registry(self) -> SourceRegistry:
        return self._registry

    @property
    def last_report(self) -> ReconcileReport | None:
        return self._last_report
