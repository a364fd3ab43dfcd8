"""
ShiftScheduler — keeps track of the shift that is active right now.

Each detection cycle asks the server first and falls back to matching the
local shift catalog against the wall clock. The visible current shift only
changes when the resolved shift has a different id.
"""
from __future__ import annotations

import enum
import logging
from datetime import datetime, time
from typing import Awaitable, Callable

from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util

from .const import SHIFT_CHECK_INTERVAL
from .models import FetchErrorKind, FetchResult, Shift
from .settings_store import DeviceConfigurationStore
from .timers import PollingTask, TimerRegistry

_LOGGER = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    RESOLVED = "resolved"


def minutes_since_midnight(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def is_shift_active(shift: Shift, minute_of_day: int) -> bool:
    """True if minute_of_day falls in the shift window; the end minute is exclusive."""
    start = minutes_since_midnight(shift.start_time)
    end = minutes_since_midnight(shift.end_time)
    if end < start:
        # Window wraps past midnight
        return minute_of_day >= start or minute_of_day < end
    return start <= minute_of_day < end


def detect_active_shift(shifts: list[Shift], now: time | datetime) -> Shift | None:
    """Return the first shift whose window contains now, or None."""
    if not shifts:
        return None
    minute_of_day = minutes_since_midnight(now)
    for shift in shifts:
        if is_shift_active(shift, minute_of_day):
            return shift
    return None


def shift_duration_minutes(shift: Shift) -> int:
    """Length of the shift window; a wrapping window ends on the next day."""
    start = minutes_since_midnight(shift.start_time)
    end = minutes_since_midnight(shift.end_time)
    return (end - start) % MINUTES_PER_DAY


def minutes_into_shift(shift: Shift, now: time | datetime) -> int:
    """Minutes elapsed since the shift started, capped at its duration."""
    elapsed = (minutes_since_midnight(now) - minutes_since_midnight(shift.start_time)) % MINUTES_PER_DAY
    return min(elapsed, shift_duration_minutes(shift))


class ShiftScheduler:
    """
    Resolves the active shift remote-first with a local fallback.

    A failed remote lookup, whether returned as a FetchResult error or raised,
    is logged and treated as "no remote result".
    """

    def __init__(
        self,
        hass: HomeAssistant,
        settings_store: DeviceConfigurationStore,
        fetch_active_shift: Callable[[str], Awaitable[FetchResult[Shift | None]]],
        registry: TimerRegistry,
        on_change: Callable[[Shift | None], None] | None = None,
        now: Callable[[], datetime] = dt_util.now,
    ) -> None:
        self.hass = hass
        self._settings_store = settings_store
        self._fetch_active_shift = fetch_active_shift
        self._registry = registry
        self._on_change = on_change
        self._now = now
        self._task: PollingTask | None = None
        self.state = SchedulerState.IDLE
        self.catalog: list[Shift] = []
        self.current_shift: Shift | None = None
        self.version = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.cancelled

    def start(self, interval: float = SHIFT_CHECK_INTERVAL) -> PollingTask:
        self.stop()
        self._task = PollingTask(self.hass, "shift_scheduler", interval, self.async_update_active_shift, self._registry)
        return self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def async_set_catalog(self, shifts: list[Shift]) -> None:
        """Replace the shift catalog; a catalog that becomes non-empty triggers detection."""
        was_empty = not self.catalog
        self.catalog = list(shifts)
        if was_empty and self.catalog:
            await self.async_update_active_shift()

    async def async_resolve(self) -> Shift | None:
        """Run one detection: remote lookup first, then the local catalog."""
        remote = await self._async_remote_shift()
        if remote is not None:
            return remote
        return detect_active_shift(self.catalog, self._now())

    async def async_update_active_shift(self) -> Shift | None:
        """One full detection cycle, publishing the result only when it changed."""
        self.state = SchedulerState.DETECTING
        try:
            resolved = await self.async_resolve()
        finally:
            self.state = SchedulerState.RESOLVED
        self.apply(resolved)
        return resolved

    def apply(self, shift: Shift | None) -> bool:
        """Make shift current if its identity differs from the current one."""
        current_id = self.current_shift.id if self.current_shift is not None else None
        new_id = shift.id if shift is not None else None
        if current_id == new_id:
            _LOGGER.debug("Active shift unchanged (%s)", current_id)
            return False

        _LOGGER.info(
            "Active shift changed from %s to %s",
            self.current_shift.name if self.current_shift else "none",
            shift.name if shift else "none",
        )
        self.current_shift = shift
        self.version += 1
        if self._on_change is not None:
            self._on_change(shift)
        return True

    async def _async_remote_shift(self) -> Shift | None:
        if self._settings_store.is_gated():
            _LOGGER.debug("Device not configured, skipping remote shift lookup")
            return None

        line_id = self._settings_store.settings.line_id
        try:
            result = await self._fetch_active_shift(line_id)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Unexpected error during remote active shift lookup for line %s", line_id)
            return None
        if not result.ok:
            # The local catalog answers instead
            level = logging.DEBUG if result.error.kind is FetchErrorKind.GATED else logging.WARNING
            _LOGGER.log(level, "Remote active shift lookup failed: %s", result.error.message)
            return None
        return result.value
