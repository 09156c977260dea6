"""Interval scheduling of reconciliation passes."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class Poller:
    """Drives ``run_pass`` on a fixed interval.

    - ``start`` runs one pass immediately, then arms the repeating timer.
    - A timer tick while the hosting view is hidden is skipped outright.
    - Becoming visible triggers a pass only if ``min_interval`` has elapsed
      since the last pass actually started.
    - While a pass is in flight, every trigger joins that pass instead of
      starting a second one.
    - ``stop`` cancels the timer but lets an in-flight pass run to completion;
      whoever owns ``run_pass`` must drop its result after teardown.
    """

    def __init__(
        self,
        run_pass: Callable[[], Awaitable[Any]],
        interval: float = 30.0,
        min_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._run_pass = run_pass
        self._interval = interval
        self._min_interval = min_interval
        self._clock = clock
        self._visible = True
        self._running = False
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._last_started: float | None = None
        self.passes_started = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def start(self) -> Any:
        """Run the first pass, then keep polling in the background."""
        if self._running:
            return None
        self._running = True
        result = await asyncio.shield(self.trigger())
        if self._running:
            self._timer = asyncio.create_task(self._tick_loop(), name="notification-poller")
        return result

    async def stop(self) -> None:
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

    def trigger(self) -> asyncio.Task:
        """Start a pass, or return the one already in flight."""
        if self.in_flight:
            logger.debug("Pass already in flight; joining it")
            return self._inflight
        self._last_started = self._clock()
        self.passes_started += 1
        self._inflight = asyncio.create_task(self._run_pass())
        return self._inflight

    async def set_visible(self, visible: bool) -> Any:
        """Record a visibility change; may trigger a catch-up pass."""
        was_visible, self._visible = self._visible, visible
        if not visible or was_visible or not self._running:
            return None
        if self.in_flight:
            return None
        if self._last_started is not None and self._clock() - self._last_started < self._min_interval:
            logger.debug("Visible again but last pass was recent; not polling")
            return None
        return await asyncio.shield(self.trigger())

    async def _tick_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                return
            if not self._visible:
                logger.debug("View hidden; skipping poll cycle")
                continue
            try:
                await asyncio.shield(self.trigger())
            except Exception:
                logger.exception("Reconciliation pass failed")
