"""
Platform for production sensors.
This module sets up the OEE, counter, progress, shift and status sensor entities
of one production line. Values come from the shared ProductionSnapshot.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable

from homeassistant.components.sensor import SensorEntity, SensorStateClass
from homeassistant import config_entries
from homeassistant.core import HomeAssistant

from .entity import ProductionEntity
from .production_data import ProductionSnapshot
from .production_state import ProductionState

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class MetricSensorDefinition:
    key: str
    name: str
    icon: str
    unit: str | None
    value_fn: Callable[[ProductionSnapshot], float | int]
    precision: int | None = None


METRIC_SENSORS: tuple[MetricSensorDefinition, ...] = (
    MetricSensorDefinition("oee", "OEE", "mdi:gauge", "%", lambda s: s.metrics.oee, 1),
    MetricSensorDefinition("availability", "Availability", "mdi:clock-check-outline", "%", lambda s: s.metrics.availability, 1),
    MetricSensorDefinition("performance", "Performance", "mdi:speedometer", "%", lambda s: s.metrics.performance, 1),
    MetricSensorDefinition("quality", "Quality", "mdi:check-decagram", "%", lambda s: s.metrics.quality, 1),
    MetricSensorDefinition("total", "Total Count", "mdi:counter", "pcs", lambda s: s.metrics.total),
    MetricSensorDefinition("good", "Good Count", "mdi:counter", "pcs", lambda s: s.metrics.good),
    MetricSensorDefinition("possible_production", "Possible Production", "mdi:target", "pcs", lambda s: s.metrics.possible_production),
    MetricSensorDefinition("avg_speed", "Average Speed", "mdi:speedometer-medium", "pcs/h", lambda s: s.metrics.avg_speed, 1),
    MetricSensorDefinition("instant_speed", "Instant Speed", "mdi:speedometer", "pcs/h", lambda s: s.metrics.instant_speed, 1),
    MetricSensorDefinition("time_in_shift", "Time In Shift", "mdi:timer-sand", "h", lambda s: s.metrics.time_in_shift, 2),
    MetricSensorDefinition("order_progress", "Order Progress", "mdi:progress-check", "%", lambda s: s.progress.order, 1),
    MetricSensorDefinition("time_progress", "Shift Progress", "mdi:progress-clock", "%", lambda s: s.progress.time, 1),
    # Not clamped: reads above 100 when the line outruns 120% of its average speed
    MetricSensorDefinition("speed_progress", "Speed Progress", "mdi:speedometer", "%", lambda s: s.progress.speed, 1),
)


class ProductionMetricSensor(ProductionEntity, SensorEntity):
    """One numeric figure of the live snapshot."""

    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, state: ProductionState, definition: MetricSensorDefinition) -> None:
        """Initialize the sensor."""
        super().__init__(state, definition.key, definition.name)
        self._definition = definition
        self._attr_icon = definition.icon
        self._attr_native_unit_of_measurement = definition.unit
        self._attr_suggested_display_precision = definition.precision

    @property
    def native_value(self) -> float | int | None:
        return self._definition.value_fn(self.snapshot)


class CurrentShiftSensor(ProductionEntity, SensorEntity):
    """Name of the active shift, or None outside every shift."""

    def __init__(self, state: ProductionState) -> None:
        super().__init__(state, "current_shift", "Current Shift")
        self._attr_icon = "mdi:calendar-clock"

    @property
    def native_value(self) -> str | None:
        shift = self.snapshot.current_shift
        if shift is None:
            return None
        return shift.name

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        shift = self.snapshot.current_shift
        attributes: dict[str, Any] = {
            "shift_version": self.snapshot.shift_version,
            "known_shifts": [s.name for s in self.snapshot.shifts],
        }
        if shift is not None:
            attributes.update(
                shift_id=shift.id,
                start_time=shift.start_time.strftime("%H:%M"),
                end_time=shift.end_time.strftime("%H:%M"),
                total_shift_time=round(self.snapshot.metrics.total_shift_time, 2),
            )
        return attributes


class ProductionStatusSensor(ProductionEntity, SensorEntity):
    """PRODUCING / STOPPED / SETUP / STANDBY with its presentation."""

    def __init__(self, state: ProductionState) -> None:
        super().__init__(state, "production_status", "Production Status")

    @property
    def native_value(self) -> str:
        return self.snapshot.status.status

    @property
    def icon(self) -> str | None:
        return self.snapshot.status.icon

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        snapshot = self.snapshot
        attributes: dict[str, Any] = {
            "machine_status": snapshot.machine_status.value,
            "color": snapshot.status.color,
            "producing_time": snapshot.status.producing_time,
            "stopped_time": snapshot.status.stopped_time,
            "producing_percentage": round(snapshot.status.producing_percentage, 1),
            "view": snapshot.view.value,
            "last_update": snapshot.last_update.isoformat() if snapshot.last_update else None,
        }
        if snapshot.job is not None:
            attributes.update(
                order_id=snapshot.job.order_id,
                order_quantity=snapshot.job.order_quantity,
                product_id=snapshot.job.product_id,
                product_name=snapshot.job.product_name,
            )
        return attributes


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add sensors for passed config_entry in HA."""
    state: ProductionState = config_entry.runtime_data
    if state.settings_store.is_gated():
        _LOGGER.warning("Line not configured for entry %s, sensors will stay at zero", config_entry.entry_id)

    entities: list[SensorEntity] = [ProductionMetricSensor(state, definition) for definition in METRIC_SENSORS]
    entities.append(CurrentShiftSensor(state))
    entities.append(ProductionStatusSensor(state))
    async_add_entities(entities)
