"""Tests for the interval poller and its visibility rules."""

from __future__ import annotations

import asyncio

import pytest

from backoffice.notifications.poller import Poller
from tests.conftest import FakeMonotonic


class CountingPass:
    def __init__(self) -> None:
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def __call__(self) -> int:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.calls


class TestPollerLifecycle:
    @pytest.mark.asyncio
    async def test_start_runs_first_pass_immediately(self):
        run = CountingPass()
        poller = Poller(run, interval=3600)
        try:
            assert await poller.start() == 1
            assert poller.running
        finally:
            await poller.stop()
        assert not poller.running

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        run = CountingPass()
        poller = Poller(run, interval=3600)
        try:
            await poller.start()
            assert await poller.start() is None
            assert run.calls == 1
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_timer_polls_on_interval(self):
        run = CountingPass()
        poller = Poller(run, interval=0.01)
        try:
            await poller.start()
            await asyncio.sleep(0.1)
            assert run.calls >= 3
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_hidden_view_skips_ticks(self):
        run = CountingPass()
        poller = Poller(run, interval=0.01)
        try:
            await poller.start()
            await poller.set_visible(False)
            calls = run.calls
            await asyncio.sleep(0.08)
            assert run.calls == calls
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_stop_lets_inflight_pass_finish(self):
        run = CountingPass()
        poller = Poller(run, interval=3600)
        await poller.start()
        run.gate = asyncio.Event()
        task = poller.trigger()
        await asyncio.sleep(0)
        await poller.stop()
        run.gate.set()
        assert await task == 2


class TestInFlightGuard:
    @pytest.mark.asyncio
    async def test_trigger_joins_running_pass(self):
        run = CountingPass()
        run.gate = asyncio.Event()
        poller = Poller(run, interval=3600)
        first = poller.trigger()
        second = poller.trigger()
        assert first is second
        run.gate.set()
        await first
        assert run.calls == 1
        assert poller.passes_started == 1
        assert not poller.in_flight


class TestVisibility:
    @pytest.mark.asyncio
    async def test_visible_after_min_interval_polls(self):
        run = CountingPass()
        clock = FakeMonotonic()
        poller = Poller(run, interval=3600, min_interval=30, clock=clock)
        try:
            await poller.start()
            await poller.set_visible(False)
            clock.now += 31
            assert await poller.set_visible(True) == 2
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_visible_too_soon_does_not_poll(self):
        run = CountingPass()
        clock = FakeMonotonic()
        poller = Poller(run, interval=3600, min_interval=30, clock=clock)
        try:
            await poller.start()
            await poller.set_visible(False)
            clock.now += 5
            assert await poller.set_visible(True) is None
            assert run.calls == 1
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_visible_while_already_visible_does_nothing(self):
        run = CountingPass()
        clock = FakeMonotonic()
        poller = Poller(run, interval=3600, min_interval=0, clock=clock)
        try:
            await poller.start()
            assert await poller.set_visible(True) is None
            assert run.calls == 1
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_visibility_before_start_only_records(self):
        run = CountingPass()
        poller = Poller(run, interval=3600, min_interval=0)
        await poller.set_visible(False)
        assert await poller.set_visible(True) is None
        assert run.calls == 0
