"""
ProductionState — the state container of the OEE monitor integration.

Responsibilities:
- Own one ShiftScheduler and one MetricsPoller for the lifetime of a config entry.
- Gate every network call behind the persisted DeviceSettings.
- Derive all figures of a fetch at once (calculator.py) and publish them as a
  ProductionSnapshot that entities read.
- Tear down every timer it created in one call (async_teardown), and on line
  reconfiguration before starting over.

Lifecycle: create -> async_initialize() -> async_teardown().
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Callable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .api.auth import get_standard_headers
from .api.live_data import fetch_live_reading
from .api.shifts import fetch_active_shift, fetch_shifts
from .calculator import compute_snapshot
from .const import DOMAIN, POLLING_INTERVAL, SHIFT_CHECK_INTERVAL, VERSION
from .metrics_poller import MetricsPoller
from .models import (
    MONITORING_VIEWS,
    DeviceSettings,
    FetchErrorKind,
    FetchResult,
    LiveReading,
    MachineStatus,
    Shift,
    ViewState,
)
from .production_data import ProductionSnapshot
from .settings_store import DeviceConfigurationStore
from .shift_scheduler import ShiftScheduler
from .timers import TimerRegistry

_LOGGER = logging.getLogger(__name__)

# Statuses whose change to DOWN counts as a new stoppage
ACTIVE_STATUSES = frozenset(
    {MachineStatus.RUNNING, MachineStatus.PAUSED, MachineStatus.SETUP, MachineStatus.STANDBY}
)


class ProductionState(DataUpdateCoordinator[ProductionSnapshot]):
    """
    Composes the settings store, shift scheduler, metrics poller and calculator.

    Nothing in here raises towards entities: fetch failures are logged and the
    last known good snapshot stays visible.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        settings_store: DeviceConfigurationStore,
        api_url: str,
        token: str,
        polling_interval: float = POLLING_INTERVAL,
        now: Callable[[], datetime] = dt_util.now,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        # No update_interval: the shift timer and metrics poller push snapshots themselves
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_{entry_id}",
            update_interval=None,
        )
        self.entry_id = entry_id
        self._settings_store = settings_store
        self._api_url = api_url
        self._headers = get_standard_headers(token)
        self._polling_interval = polling_interval
        self._now = now
        self._registry = TimerRegistry()

        self.scheduler = ShiftScheduler(
            hass,
            settings_store,
            self._async_fetch_active_shift,
            self._registry,
            on_change=self._on_shift_changed,
            now=now,
        )
        self.poller: MetricsPoller[LiveReading] = MetricsPoller(
            hass,
            self._async_fetch_live_reading,
            self._apply_live_reading,
            settings_store.is_gated,
            self._registry,
        )

        # Snapshot starts empty; entities must handle zero values until the first fetch
        self.data = ProductionSnapshot(settings=settings_store.settings)
        self._unsub_settings = settings_store.async_add_listener(self._on_settings_changed)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    @property
    def settings_store(self) -> DeviceConfigurationStore:
        return self._settings_store

    @property
    def timers(self) -> TimerRegistry:
        return self._registry

    @property
    def polling_interval(self) -> float:
        return self._polling_interval

    async def async_initialize(self) -> None:
        """
        Load the shift catalog, resolve the active shift, fetch live data once
        and start both timers. An unconfigured device stays inert.
        """
        if self._settings_store.is_gated():
            _LOGGER.info("Device not configured, production monitoring stays idle")
            self._set_data(settings=self._settings_store.settings, initialized=True)
            return

        settings = self._settings_store.settings
        self._set_data(settings=settings)

        catalog = await fetch_shifts(self._api_url, self._headers, settings.line_id)
        if catalog.ok:
            self._set_data(shifts=tuple(catalog.value))
            await self.scheduler.async_set_catalog(catalog.value)
        else:
            _LOGGER.warning("Failed to load shift catalog for line %s: %s", settings.line_id, catalog.error.message)

        if not self.scheduler.catalog:
            # The server may still know the active shift
            await self.scheduler.async_update_active_shift()

        self.scheduler.start(SHIFT_CHECK_INTERVAL)
        await self.async_fetch_live_data()
        if self.data.view in MONITORING_VIEWS:
            self.poller.start(self._polling_interval)
        self._set_data(initialized=True)

    async def async_set_current_shift(self, shift: Shift | None) -> bool:
        """Select a shift explicitly; refreshes live data when the shift actually changed."""
        changed = self.scheduler.apply(shift)
        if changed:
            await self.async_fetch_live_data()
        return changed

    async def async_fetch_live_data(self) -> bool:
        """
        One fetch, one complete snapshot. Gated devices make no network call.

        Shares the poller's in-flight guard, so it never overlaps a timer tick.
        """
        if self._settings_store.is_gated():
            _LOGGER.debug("Device not configured, not fetching live data")
            return False
        return await self.poller.async_tick()

    @callback
    def set_view(self, view: ViewState | str) -> ViewState:
        """Switch the dashboard view; live polling only runs in monitoring views."""
        try:
            view = ViewState(view)
        except ValueError:
            _LOGGER.warning("Unknown view %s, falling back to %s", view, ViewState.DASHBOARD.value)
            view = ViewState.DASHBOARD

        previous = self.data.view
        if view == previous:
            return view
        self._set_data(view=view)

        if view not in MONITORING_VIEWS:
            self.poller.stop()
        elif previous not in MONITORING_VIEWS and self.data.initialized:
            self.poller.start(self._polling_interval)
        return view

    async def async_set_polling_interval(self, interval: float) -> None:
        self._polling_interval = interval
        if self.poller.is_running:
            self.poller.restart(interval)

    async def async_reconfigure(self) -> None:
        """Drop everything tied to the previous line and start over."""
        _LOGGER.info("Device configuration changed, restarting production monitoring")
        self._cancel_timers()
        self.scheduler.catalog = []
        self.scheduler.apply(None)
        empty = ProductionSnapshot()
        self._set_data(
            settings=self._settings_store.settings,
            shifts=(),
            metrics=empty.metrics,
            progress=empty.progress,
            machine_status=empty.machine_status,
            status=empty.status,
            job=None,
            initialized=False,
            last_update=None,
        )
        await self.async_initialize()

    async def async_teardown(self) -> None:
        """Cancel every timer this state created and stop listening to settings."""
        self._cancel_timers()
        self._unsub_settings()
        await self.async_shutdown()

    def get_device_info(self) -> dict:
        """Return the HA DeviceInfo dict of the monitored line."""
        settings = self.data.settings
        return {
            "identifiers": {(DOMAIN, self.entry_id)},
            "name": settings.line_name or f"Production line {settings.line_id or self.entry_id}",
            "manufacturer": "OEE Monitor",
            "model": " / ".join(p for p in (settings.plant_name, settings.sector_name) if p) or "Unknown",
            "sw_version": VERSION,
        }

    # ------------------------------------------------------------------
    # Fetch paths
    # ------------------------------------------------------------------

    async def _async_fetch_active_shift(self, line_id: str) -> FetchResult[Shift | None]:
        return await fetch_active_shift(self._api_url, self._headers, line_id)

    async def _async_fetch_live_reading(self) -> FetchResult[LiveReading]:
        line_id = self._settings_store.settings.line_id
        result = await fetch_live_reading(self._api_url, self._headers, line_id)
        if result.ok and self._settings_store.settings.line_id != line_id:
            # Line was reconfigured while the request was pending
            return FetchResult.failure(FetchErrorKind.GATED, f"line {line_id} is no longer configured")
        return result

    def _apply_live_reading(self, reading: LiveReading) -> None:
        previous_status = self.data.machine_status
        snapshot = compute_snapshot(reading.counters, self.data.current_shift, reading.job, self._now())
        self._set_data(
            metrics=snapshot.metrics,
            progress=snapshot.progress,
            machine_status=snapshot.machine_status,
            status=snapshot.status,
            job=reading.job,
            last_update=dt_util.utcnow(),
        )

        if (
            snapshot.machine_status is MachineStatus.DOWN
            and previous_status in ACTIVE_STATUSES
            and self.data.view is not ViewState.STOP_REASON
        ):
            _LOGGER.info("Line went down (was %s), asking for a stop reason", previous_status.value)
            self.set_view(ViewState.STOP_REASON)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_shift_changed(self, shift: Shift | None) -> None:
        self._set_data(current_shift=shift, shift_version=self.scheduler.version)

    def _on_settings_changed(self, old: DeviceSettings, new: DeviceSettings) -> None:
        if old.line_id != new.line_id or old.is_configured != new.is_configured:
            self.hass.async_create_task(self.async_reconfigure())
        else:
            self._set_data(settings=new)

    def _cancel_timers(self) -> None:
        self.poller.stop()
        self.scheduler.stop()
        self._registry.cancel_all()

    def _set_data(self, **changes) -> None:
        self.async_set_updated_data(dataclasses.replace(self.data, **changes))
