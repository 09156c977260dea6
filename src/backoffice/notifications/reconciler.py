"""Reconciliation of polled source batches into the notification feed.

One pass fans out a fetch to every registered source concurrently, then
applies the results on the event loop: each relevant entity whose dedup key
is unseen becomes a Notification at the head of the store. A failed source
contributes nothing to that pass and never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from backoffice.core.types import SourceType, now_millis
from backoffice.notifications.builders import NotificationBuilder
from backoffice.notifications.dedup import DedupCache
from backoffice.notifications.models import Notification, NotificationCounts
from backoffice.notifications.store import NotificationStore, recompute_counts
from backoffice.sources.base import SourceAdapter
from backoffice.sources.models import FetchResult, OrderEntity, QuestionEntity, ReviewEntity
from backoffice.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def is_relevant(entity: Any) -> bool:
    """Whether an entity warrants operator attention at all."""
    if isinstance(entity, OrderEntity):
        return entity.is_actionable
    if isinstance(entity, QuestionEntity):
        return entity.needs_attention
    if isinstance(entity, ReviewEntity):
        return entity.is_active
    return True


class ReconcileReport(BaseModel):
    """What one pass observed and changed."""

    created: list[Notification] = Field(default_factory=list)
    trimmed: list[Notification] = Field(default_factory=list)
    failed_sources: list[str] = Field(default_factory=list)
    relevant: dict[SourceType, list[Any]] = Field(default_factory=dict)
    counts: NotificationCounts = Field(default_factory=NotificationCounts)
    finished_at: int = Field(default_factory=now_millis)

    def pending(self, category: SourceType) -> int | None:
        """Relevant entities seen for ``category``, None if none of its sources answered."""
        batch = self.relevant.get(category)
        return None if batch is None else len(batch)


class Reconciler:
    """Merges fetched batches into the store through the dedup cache."""

    def __init__(
        self,
        registry: SourceRegistry,
        store: NotificationStore,
        dedup: DedupCache,
        builder: NotificationBuilder | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._registry = registry
        self._store = store
        self._dedup = dedup
        self._builder = builder or NotificationBuilder()
        self._page_size = page_size
        self._clock = clock

    async def fetch_all(self) -> list[FetchResult]:
        """Fetch every source concurrently; settles once all have answered."""
        adapters = self._registry.all()
        return list(await asyncio.gather(*(self._fetch(a) for a in adapters)))

    async def _fetch(self, adapter: SourceAdapter) -> FetchResult:
        try:
            return await adapter.fetch(self._page_size)
        except Exception as exc:
            logger.warning("Source %s raised during fetch: %s", adapter.name, exc)
            return FetchResult(
                source_name=adapter.name,
                category=adapter.category,
                success=False,
                error=str(exc),
            )

    def apply(self, results: list[FetchResult]) -> ReconcileReport:
        """Turn fetched batches into notifications, then trim and persist."""
        report = ReconcileReport()
        for result in results:
            if not result.success:
                report.failed_sources.append(result.source_name)
                continue
            try:
                self._apply_result(result, report)
            except Exception as exc:
                logger.warning("Processing %s results failed: %s", result.source_name, exc)
                self._mark_failed(report, result.source_name)

        self._finish(report)
        if report.created:
            logger.info(
                "Reconciliation created %d notification(s); %d source(s) failed",
                len(report.created), len(report.failed_sources),
            )
        return report

    def _apply_result(self, result: FetchResult, report: ReconcileReport) -> None:
        batch = report.relevant.setdefault(result.category, [])
        for entity in result.entities:
            if not is_relevant(entity):
                continue
            batch.append(entity)
            try:
                notification = self.ingest(entity)
            except Exception as exc:
                # Left out of the dedup cache, so a later pass retries it.
                logger.warning(
                    "Cannot build notification for %s from %s: %s",
                    getattr(entity, "source_id", type(entity).__name__), result.source_name, exc,
                )
                self._mark_failed(report, result.source_name)
                continue
            if notification is not None:
                report.created.append(notification)

    @staticmethod
    def _mark_failed(report: ReconcileReport, source_name: str) -> None:
        if source_name not in report.failed_sources:
            report.failed_sources.append(source_name)

    def apply_entity(self, entity: Any) -> ReconcileReport:
        """Reconcile a single entity, e.g. one delivered over the push channel."""
        report = ReconcileReport()
        if is_relevant(entity):
            notification = self.ingest(entity)
            if notification is not None:
                report.created.append(notification)
        self._finish(report)
        return report

    def ingest(self, entity: Any) -> Notification | None:
        """Create a notification for ``entity`` unless its key was already seen."""
        if self._dedup.has(entity.category, entity.source_id):
            return None
        notification = self._builder.build(entity, timestamp=self._clock())
        self._dedup.add(entity.category, entity.source_id)
        self._store.add(notification)
        return notification

    async def run_pass(self) -> ReconcileReport:
        return self.apply(await self.fetch_all())

    def _finish(self, report: ReconcileReport) -> None:
        report.trimmed = self._store.trim()
        if report.created or report.trimmed:
            self._store.persist()
        report.counts = recompute_counts(self._store.items)
        report.finished_at = self._clock()
