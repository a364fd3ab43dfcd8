"""
Platform for the dashboard view selector.
Switching away from the monitoring views pauses live polling; switching back resumes it.
"""
from __future__ import annotations

import logging

from homeassistant.components.select import SelectEntity
from homeassistant.core import HomeAssistant
from homeassistant import config_entries

from .entity import ProductionEntity
from .models import ViewState
from .production_state import ProductionState

_LOGGER = logging.getLogger(__name__)


class ViewSelect(ProductionEntity, SelectEntity):
    """Selects which dashboard view the operator is on."""

    def __init__(self, state: ProductionState) -> None:
        """Initialize the select."""
        super().__init__(state, "view", "View")
        self._attr_icon = "mdi:monitor-dashboard"
        self._attr_options = [view.value for view in ViewState]

    @property
    def current_option(self) -> str | None:
        return self.snapshot.view.value

    async def async_select_option(self, option: str) -> None:
        """Change the selected view."""
        view = self._state.set_view(option)
        _LOGGER.debug("View of %s set to %s", self._line_name, view.value)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add the view select for passed config_entry in HA."""
    state: ProductionState = config_entry.runtime_data
    async_add_entities([ViewSelect(state)])
