"""
Tests for PollingTask, TimerRegistry and MetricsPoller: cadence, in-flight guard,
gating, failure handling and cancellation.
"""

from __future__ import annotations

import asyncio
import unittest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from custom_components.oee_monitor.metrics_poller import MetricsPoller
from custom_components.oee_monitor.models import FetchErrorKind, FetchResult
from custom_components.oee_monitor.timers import PollingTask, TimerRegistry

from .test_common import make_hass, ok, run_pending, track_intervals, transient

TIMERS_LOGGER = "custom_components.oee_monitor.timers"


class TestPollingTask(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tracker = track_intervals(self)
        self.hass = make_hass()

    async def test_calls_callback_on_every_interval(self):
        calls = []
        task = PollingTask(self.hass, "t", 5, lambda: calls.append(1))

        self.assertEqual(self.tracker.intervals("t"), [timedelta(seconds=5)])
        self.tracker.fire()
        self.tracker.fire()
        task.cancel()

        self.assertEqual(len(calls), 2)

    async def test_cancel_is_idempotent(self):
        registry = TimerRegistry()
        task = PollingTask(self.hass, "t", 5, MagicMock(), registry)
        task.cancel()
        task.cancel()
        self.assertTrue(task.cancelled)
        self.assertEqual(registry.active_count, 0)
        self.assertEqual(self.tracker.active_count, 0)

    async def test_no_callback_after_cancel(self):
        callback = MagicMock()
        task = PollingTask(self.hass, "t", 5, callback)
        task.cancel()
        self.tracker.fire()
        task._handle_tick(None)
        callback.assert_not_called()

    async def test_cancel_also_cancels_spawned_work(self):
        started = asyncio.Event()
        finished = []

        async def slow():
            started.set()
            await asyncio.sleep(10)
            finished.append(1)

        task = PollingTask(self.hass, "t", 5, slow)
        self.tracker.fire()
        await asyncio.wait_for(started.wait(), timeout=1)
        task.cancel()
        await task.async_wait()
        self.assertEqual(finished, [])

    async def test_failing_tick_work_is_logged(self):
        async def failing():
            raise RuntimeError("tick exploded")

        task = PollingTask(self.hass, "t", 5, failing)
        self.addCleanup(task.cancel)
        with self.assertLogs(TIMERS_LOGGER, level="ERROR") as logs:
            self.tracker.fire()
            await run_pending()
        self.assertIn("tick exploded", "\n".join(logs.output))

    async def test_raising_callback_is_logged_and_timer_keeps_running(self):
        callback = MagicMock(side_effect=[RuntimeError("sync failure"), None])
        task = PollingTask(self.hass, "t", 5, callback)
        self.addCleanup(task.cancel)

        with self.assertLogs(TIMERS_LOGGER, level="ERROR"):
            self.tracker.fire()
        self.tracker.fire()

        self.assertEqual(callback.call_count, 2)
        self.assertFalse(task.cancelled)

    async def test_registry_cancel_all(self):
        registry = TimerRegistry()
        tasks = [PollingTask(self.hass, f"t{i}", 5, MagicMock(), registry) for i in range(3)]
        self.assertEqual(registry.active_count, 3)

        registry.cancel_all()

        self.assertEqual(registry.active_count, 0)
        self.assertTrue(all(t.cancelled for t in tasks))
        self.assertEqual(self.tracker.active_count, 0)


class TestMetricsPoller(unittest.IsolatedAsyncioTestCase):

    def _make_poller(self, fetch=None, gated=False):
        self.tracker = track_intervals(self)
        self.registry = TimerRegistry()
        self.apply = MagicMock()
        self.gated = gated
        poller = MetricsPoller(
            make_hass(),
            fetch or AsyncMock(return_value=ok("reading")),
            self.apply,
            lambda: self.gated,
            self.registry,
        )
        self.addAsyncCleanup(self._cleanup)
        return poller

    async def _cleanup(self):
        self.registry.cancel_all()
        await asyncio.sleep(0)

    async def test_tick_applies_successful_value(self):
        poller = self._make_poller()
        self.assertTrue(await poller.async_tick())
        self.apply.assert_called_once_with("reading")
        self.assertEqual(poller.fetch_count, 1)

    async def test_timer_tick_fetches(self):
        poller = self._make_poller()
        poller.start(3)

        self.tracker.fire("metrics_poller")
        await run_pending()

        self.apply.assert_called_once_with("reading")
        self.assertEqual(self.tracker.intervals("metrics_poller"), [timedelta(seconds=3)])

    async def test_failed_fetch_is_discarded(self):
        fetch = AsyncMock(return_value=transient())
        poller = self._make_poller(fetch)
        self.assertTrue(await poller.async_tick())
        self.apply.assert_not_called()
        self.assertFalse(poller.in_flight)

    async def test_unexpected_exception_does_not_escape(self):
        fetch = AsyncMock(side_effect=RuntimeError("unexpected"))
        poller = self._make_poller(fetch)
        await poller.async_tick()
        self.apply.assert_not_called()
        self.assertFalse(poller.in_flight)

    async def test_overlapping_tick_is_skipped(self):
        release = asyncio.Event()
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return ok("reading")

        poller = self._make_poller(slow_fetch)
        first = asyncio.ensure_future(poller.async_tick())
        await asyncio.sleep(0)
        self.assertTrue(poller.in_flight)

        self.assertFalse(await poller.async_tick())
        self.assertEqual(poller.skipped_ticks, 1)

        release.set()
        await first
        self.assertEqual(calls, 1)
        self.apply.assert_called_once_with("reading")

    async def test_timer_never_overlaps_slow_fetch(self):
        release = asyncio.Event()
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return ok("reading")

        poller = self._make_poller(slow_fetch)
        poller.start(3)
        for _ in range(4):
            self.tracker.fire()
            await run_pending()

        self.assertEqual(calls, 1)
        self.assertEqual(poller.skipped_ticks, 3)
        release.set()
        await run_pending()

    async def test_gated_start_returns_none(self):
        fetch = AsyncMock(return_value=ok("reading"))
        poller = self._make_poller(fetch, gated=True)
        self.assertIsNone(poller.start(3))
        self.assertFalse(poller.is_running)
        self.assertEqual(self.tracker.active_count, 0)
        self.assertFalse(await poller.async_tick())
        fetch.assert_not_awaited()

    async def test_tick_becoming_gated_makes_no_call(self):
        fetch = AsyncMock(return_value=ok("reading"))
        poller = self._make_poller(fetch)
        poller.start(3)
        self.gated = True
        self.tracker.fire()
        await run_pending()
        fetch.assert_not_awaited()

    async def test_stop_prevents_further_fetches(self):
        fetch = AsyncMock(return_value=ok("reading"))
        poller = self._make_poller(fetch)
        poller.start(3)
        poller.stop()
        poller.stop()
        self.tracker.fire()
        await run_pending()
        fetch.assert_not_awaited()
        self.assertFalse(poller.is_running)
        self.assertEqual(self.tracker.active_count, 0)

    async def test_restart_leaves_a_single_timer(self):
        poller = self._make_poller()
        poller.start(3)
        poller.restart(6)
        poller.restart()
        self.assertEqual(self.registry.active_count, 1)
        self.assertEqual(self.tracker.active_count, 1)
        self.assertEqual(poller.interval, 6)

    async def test_gated_failure_kind_is_not_a_warning(self):
        fetch = AsyncMock(return_value=FetchResult.failure(FetchErrorKind.GATED, "line changed"))
        poller = self._make_poller(fetch)
        with self.assertNoLogs("custom_components.oee_monitor.metrics_poller", level="WARNING"):
            await poller.async_tick()
        self.apply.assert_not_called()
