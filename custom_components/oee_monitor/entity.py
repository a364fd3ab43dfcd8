"""Base entity shared by every OEE Monitor platform."""
from __future__ import annotations

from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .production_data import ProductionSnapshot
from .production_state import ProductionState


class ProductionEntity(CoordinatorEntity[ProductionState]):
    """
    Entity bound to one ProductionState.
    State is pushed: entities re-render whenever the snapshot is replaced.
    """

    def __init__(self, state: ProductionState, key: str, name: str) -> None:
        super().__init__(state)
        self._state = state
        self._attr_unique_id = f"oee_monitor_{state.entry_id}_{key}"
        self._attr_name = f"{self._line_name} {name}"

    @property
    def _line_name(self) -> str:
        settings = self._state.data.settings
        return settings.line_name or settings.line_id or "Production line"

    @property
    def snapshot(self) -> ProductionSnapshot:
        return self._state.data

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return self._state.get_device_info()

    @property
    def available(self) -> bool:
        return super().available and self._state.data.initialized
