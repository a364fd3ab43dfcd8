"""
PollingTask and TimerRegistry — cancellable periodic timers.

The cadence comes from Home Assistant's async_track_time_interval; tick work
runs as HA background tasks so it is tracked and cancelled on shutdown.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_interval

_LOGGER = logging.getLogger(__name__)


class PollingTask:
    """
    Calls callback every interval seconds until cancelled.

    The timer keeps its cadence regardless of how long the work takes: when
    callback returns an awaitable it runs as its own background task, so a slow
    tick never delays the next one. Callers that must not overlap guard themselves.
    cancel() is idempotent and also cancels work still running.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        name: str,
        interval: float,
        callback: Callable[[], Any],
        registry: TimerRegistry | None = None,
    ) -> None:
        self.hass = hass
        self.name = name
        self.interval = interval
        self._callback = callback
        self._registry = registry
        self._cancelled = False
        self._work: set[asyncio.Task] = set()
        self._unsub: CALLBACK_TYPE = async_track_time_interval(
            hass, self._handle_tick, timedelta(seconds=interval), name=name
        )
        if registry is not None:
            registry.register(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the timer and any work it spawned. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        self._unsub()
        for task in list(self._work):
            task.cancel()
        if self._registry is not None:
            self._registry.unregister(self)
        _LOGGER.debug("Timer %s cancelled", self.name)

    async def async_wait(self) -> None:
        """Wait until the work spawned by this timer has stopped."""
        await asyncio.gather(*self._work, return_exceptions=True)

    @callback
    def _handle_tick(self, now: datetime) -> None:
        if self._cancelled:
            return
        try:
            result = self._callback()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Error in %s tick", self.name)
            return
        if inspect.isawaitable(result):
            task = self.hass.async_create_background_task(result, f"oee_monitor {self.name} tick")
            self._work.add(task)
            task.add_done_callback(self._on_work_done)

    def _on_work_done(self, task: asyncio.Task) -> None:
        self._work.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOGGER.error("%s tick failed: %s", self.name, exc, exc_info=exc)


class TimerRegistry:
    """
    Tracks every live PollingTask of one owner so a single call tears them all down.

    Owned by a ProductionState instance; there is no process-wide registry.
    """

    def __init__(self) -> None:
        self._tasks: set[PollingTask] = set()

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def register(self, task: PollingTask) -> None:
        self._tasks.add(task)

    def unregister(self, task: PollingTask) -> None:
        self._tasks.discard(task)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
