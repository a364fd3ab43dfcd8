"""
MetricsPoller — fixed-interval live-counter fetch loop.

Guarantees at most one fetch in flight: a tick that fires while the previous
fetch is still pending is skipped, not queued. Failed fetches are logged and
dropped; the next tick is the retry.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Generic, TypeVar

from homeassistant.core import HomeAssistant

from .const import POLLING_INTERVAL
from .models import FetchErrorKind, FetchResult
from .timers import PollingTask, TimerRegistry

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class MetricsPoller(Generic[T]):
    """
    Periodically runs fetch() and hands successful values to apply().

    Inert while is_gated() is true: start() refuses to create a timer and
    ticks never call fetch().
    """

    def __init__(
        self,
        hass: HomeAssistant,
        fetch: Callable[[], Awaitable[FetchResult[T]]],
        apply: Callable[[T], None],
        is_gated: Callable[[], bool],
        registry: TimerRegistry,
        name: str = "metrics_poller",
    ) -> None:
        self.hass = hass
        self._fetch = fetch
        self._apply = apply
        self._is_gated = is_gated
        self._registry = registry
        self._name = name
        self._task: PollingTask | None = None
        self._in_flight = False
        self.fetch_count = 0
        self.skipped_ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.cancelled

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def interval(self) -> float | None:
        return self._task.interval if self.is_running else None

    def start(self, interval: float = POLLING_INTERVAL) -> PollingTask | None:
        """Start ticking every interval seconds, replacing any running timer."""
        self.stop()
        if self._is_gated():
            _LOGGER.debug("Device not configured, %s not started", self._name)
            return None
        self._task = PollingTask(self.hass, self._name, interval, self.async_tick, self._registry)
        _LOGGER.debug("%s started with interval %ss", self._name, interval)
        return self._task

    def stop(self) -> None:
        """Cancel the timer. No fetch starts after this returns."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def restart(self, interval: float | None = None) -> PollingTask | None:
        """Stop the current timer and start a new one (e.g. after reconfiguration)."""
        if interval is None:
            interval = self._task.interval if self._task is not None else POLLING_INTERVAL
        return self.start(interval)

    async def async_tick(self) -> bool:
        """
        Run one fetch-and-apply unless gated or a fetch is already pending.

        Returns True when a fetch was performed (successful or not).
        """
        if self._is_gated():
            _LOGGER.debug("Device not configured, skipping %s tick", self._name)
            return False
        if self._in_flight:
            self.skipped_ticks += 1
            _LOGGER.debug("Previous fetch still pending, skipping %s tick", self._name)
            return False

        self._in_flight = True
        self.fetch_count += 1
        try:
            result = await self._fetch()
            if not result.ok:
                # Keep showing the last good metrics
                self._log_failure(result)
                return True
            self._apply(result.value)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.exception("Unexpected error during %s tick: %s", self._name, exc)
        finally:
            self._in_flight = False
        return True

    def _log_failure(self, result: FetchResult) -> None:
        if result.error.kind is FetchErrorKind.GATED:
            _LOGGER.debug("%s fetch gated: %s", self._name, result.error.message)
        else:
            _LOGGER.warning(
                "%s fetch failed (%s): %s", self._name, result.error.kind.value, result.error.message
            )
