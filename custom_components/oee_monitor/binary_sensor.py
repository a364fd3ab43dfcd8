"""
Platform for production binary sensors.
Exposes whether the monitored line is producing and whether a shift is active.
"""
from __future__ import annotations

import logging

from homeassistant.components.binary_sensor import BinarySensorEntity, BinarySensorDeviceClass
from homeassistant.core import HomeAssistant
from homeassistant import config_entries

from .entity import ProductionEntity
from .models import MachineStatus
from .production_state import ProductionState

_LOGGER = logging.getLogger(__name__)


class LineProducingSensor(ProductionEntity, BinarySensorEntity):
    """On while the derived machine status is RUNNING."""

    _attr_device_class = BinarySensorDeviceClass.RUNNING

    def __init__(self, state: ProductionState) -> None:
        """Initialize the sensor."""
        super().__init__(state, "producing", "Producing")

    @property
    def icon(self) -> str | None:
        """Return the icon of the sensor."""
        if self.is_on:
            return "mdi:factory"
        return "mdi:pause-octagon"

    @property
    def is_on(self) -> bool | None:
        return self.snapshot.machine_status is MachineStatus.RUNNING


class ShiftActiveSensor(ProductionEntity, BinarySensorEntity):

    def __init__(self, state: ProductionState) -> None:
        super().__init__(state, "shift_active", "Shift Active")
        self._attr_icon = "mdi:calendar-check"

    @property
    def is_on(self) -> bool | None:
        return self.snapshot.current_shift is not None


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add binary sensors for passed config_entry in HA."""
    state: ProductionState = config_entry.runtime_data
    async_add_entities([LineProducingSensor(state), ShiftActiveSensor(state)])
