"""
DeviceConfigurationStore — persisted line/plant/sector selection of this device.

Backed by the Home Assistant Store helper so the configuration survives restarts.
Settings are only ever changed through async_set_settings(), which merges,
stamps last_setup_date and writes the record back.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.storage import Store
from homeassistant.util import dt as dt_util

from .const import STORAGE_KEY, STORAGE_VERSION
from .models import DeviceRecord, DeviceSettings

_LOGGER = logging.getLogger(__name__)

_SETTINGS_FIELDS = frozenset(f.name for f in dataclasses.fields(DeviceSettings))


def _settings_from_dict(raw: Any) -> DeviceSettings:
    """Rebuild DeviceSettings from stored JSON. Raises ValueError on anything unexpected."""
    if not isinstance(raw, dict):
        raise ValueError(f"settings must be a mapping, got {type(raw).__name__}")
    values = {}
    for name, value in raw.items():
        if name not in _SETTINGS_FIELDS:
            continue
        if name == "is_configured":
            if not isinstance(value, bool):
                raise ValueError(f"is_configured must be a bool, got {value!r}")
        elif name == "last_setup_date":
            if value is not None and not isinstance(value, str):
                raise ValueError(f"last_setup_date must be a string, got {value!r}")
        elif not isinstance(value, str):
            raise ValueError(f"{name} must be a string, got {value!r}")
        values[name] = value
    settings = DeviceSettings(**values)
    if settings.is_configured and not settings.line_id:
        raise ValueError("configured settings without a line id")
    return settings


def _devices_from_list(raw: Any) -> list[DeviceRecord]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("devices must be a list")
    return [DeviceRecord(**item) for item in raw]


class DeviceConfigurationStore:
    """
    Owns the persisted DeviceSettings and the minimal device list.

    Malformed persisted data is never fatal: it loads as the unconfigured default.
    """

    def __init__(self, hass: HomeAssistant, device_id: str, device_name: str = "") -> None:
        self._store: Store = Store(hass, STORAGE_VERSION, f"{STORAGE_KEY}.{device_id}")
        self._device_id = device_id
        self._device_name = device_name or device_id
        self._settings = DeviceSettings()
        self._devices: list[DeviceRecord] = []
        self._listeners: list[Callable[[DeviceSettings, DeviceSettings], None]] = []

    @property
    def settings(self) -> DeviceSettings:
        return self._settings

    @property
    def devices(self) -> list[DeviceRecord]:
        return list(self._devices)

    def get_settings(self) -> DeviceSettings:
        return self._settings

    def is_gated(self) -> bool:
        """True while the device is unconfigured; gated components must stay inert."""
        return not self._settings.is_configured or self._settings.line_id == ""

    async def async_load(self) -> DeviceSettings:
        """Read the persisted record, falling back to defaults when it is missing or corrupt."""
        try:
            raw = await self._store.async_load()
        except (ValueError, OSError) as err:
            # Store raises on undecodable JSON
            _LOGGER.warning("Persisted device settings could not be read, using defaults: %s", err)
            raw = None

        if raw is None:
            self._settings = DeviceSettings()
            self._devices = []
            return self._settings

        try:
            if not isinstance(raw, dict):
                raise ValueError(f"record must be a mapping, got {type(raw).__name__}")
            settings = _settings_from_dict(raw.get("settings", {}))
            devices = _devices_from_list(raw.get("devices"))
        except (TypeError, ValueError) as err:
            _LOGGER.warning("Persisted device settings are malformed, treating device as unconfigured: %s", err)
            settings, devices = DeviceSettings(), []

        self._settings = settings
        self._devices = devices
        _LOGGER.debug("Loaded device settings: %s", self._settings)
        return self._settings

    async def async_set_settings(self, partial: dict[str, Any]) -> DeviceSettings:
        """Merge partial into the current settings, stamp the setup date and persist."""
        unknown = set(partial) - _SETTINGS_FIELDS
        if unknown:
            _LOGGER.debug("Ignoring unknown device setting keys: %s", sorted(unknown))
        changes = {k: v for k, v in partial.items() if k in _SETTINGS_FIELDS and k != "last_setup_date"}

        merged = dataclasses.replace(
            self._settings, **changes, last_setup_date=dt_util.utcnow().isoformat()
        )
        if merged.is_configured and not merged.line_id:
            _LOGGER.warning("Device marked configured without a line, keeping it unconfigured")
            merged = dataclasses.replace(merged, is_configured=False)

        old = self._settings
        self._settings = merged
        if merged.is_configured:
            self._upsert_device_record(merged)

        await self._async_save()
        self._notify(old, merged)
        return merged

    async def async_reset(self) -> DeviceSettings:
        old = self._settings
        self._settings = DeviceSettings()
        await self._async_save()
        self._notify(old, self._settings)
        return self._settings

    @callback
    def async_add_listener(
        self, update_callback: Callable[[DeviceSettings, DeviceSettings], None]
    ) -> Callable[[], None]:
        """Call update_callback(old, new) after every change. Returns the unsubscribe function."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    def _upsert_device_record(self, settings: DeviceSettings) -> None:
        record = DeviceRecord(
            id=self._device_id,
            name=self._device_name,
            line_id=settings.line_id,
            line_name=settings.line_name,
        )
        self._devices = [d for d in self._devices if d.id != record.id] + [record]

    async def _async_save(self) -> None:
        await self._store.async_save(
            {
                "settings": dataclasses.asdict(self._settings),
                "devices": [dataclasses.asdict(d) for d in self._devices],
            }
        )

    def _notify(self, old: DeviceSettings, new: DeviceSettings) -> None:
        for listener in list(self._listeners):
            listener(old, new)
