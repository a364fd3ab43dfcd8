"""Config flow for the OEE Monitor integration."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from . import _validate_connection
from .const import (
    CONF_API_URL,
    CONF_ENTRY_NAME,
    CONF_LINE_ID,
    CONF_PLANT_ID,
    CONF_POLLING_INTERVAL,
    CONF_SECTOR_ID,
    CONF_TOKEN,
    DEFAULT_API_URL,
    DOMAIN,
    MIN_POLLING_INTERVAL,
    POLLING_INTERVAL,
)
from .selection import LineSelectionPipeline, SelectionStep, StepStatus

polling_interval = vol.All(vol.Coerce(int), vol.Range(min=MIN_POLLING_INTERVAL))

_LOGGER = logging.getLogger(__name__)
CONFIG_SCHEMA = vol.Schema(
            {
                vol.Required(CONF_ENTRY_NAME, default='My Production Line'): cv.string,
                vol.Required(CONF_API_URL, default=DEFAULT_API_URL): cv.string,
                vol.Required(CONF_TOKEN, default=''): cv.string,
                vol.Required(CONF_POLLING_INTERVAL, default=POLLING_INTERVAL): polling_interval,
            }
        )

# step_id -> (pipeline step, form field, next step_id or None when the cascade is done)
SELECTION_STEPS: dict[str, tuple[SelectionStep, str, str | None]] = {
    "plant": (SelectionStep.PLANTS, CONF_PLANT_ID, "sector"),
    "sector": (SelectionStep.SECTORS, CONF_SECTOR_ID, "line"),
    "line": (SelectionStep.LINES, CONF_LINE_ID, None),
}


class LineSelectionMixin:
    """Shared plant -> sector -> line steps of the config and options flows."""

    _pipeline: LineSelectionPipeline

    async def async_step_plant(self, user_input: Optional[Dict[str, Any]] = None):
        return await self._async_selection_step("plant", user_input)

    async def async_step_sector(self, user_input: Optional[Dict[str, Any]] = None):
        return await self._async_selection_step("sector", user_input)

    async def async_step_line(self, user_input: Optional[Dict[str, Any]] = None):
        return await self._async_selection_step("line", user_input)

    async def _async_selection_step(self, step_id: str, user_input: Optional[Dict[str, Any]]):
        step, field, next_step = SELECTION_STEPS[step_id]
        errors: Dict[str, str] = {}

        if user_input is not None:
            try:
                self._pipeline.select(step, user_input[field])
            except ValueError:
                errors['base'] = f"invalid_{step_id}"
            else:
                if next_step is None:
                    return await self._async_finish_selection(self._pipeline.as_settings())
                return await getattr(self, f"async_step_{next_step}")()

        state = self._pipeline.state(step)
        if state.status is not StepStatus.LOADED:
            state = await self._pipeline.async_load(step)
        if state.status is StepStatus.ERROR:
            return self.async_abort(reason="cannot_connect")
        if not state.options:
            return self.async_abort(reason=f"no_{step.value}")

        schema = vol.Schema(
            {vol.Required(field): vol.In({option.id: option.name for option in state.options})}
        )
        return self.async_show_form(step_id=step_id, data_schema=schema, errors=errors)

    async def _async_finish_selection(self, selection: Dict[str, Any]):
        raise NotImplementedError


class CustomFlow(LineSelectionMixin, config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            self.data = dict(user_input)
            # If entry_name is null or empty string, add error
            if not self.data[CONF_ENTRY_NAME]:
                errors['base'] = 'entry_name_required'
            # If api_url is null or empty string, add error
            elif not self.data[CONF_API_URL]:
                errors['base'] = 'api_url_required'
            # If token is null or empty string, add error
            elif not self.data[CONF_TOKEN]:
                errors['base'] = 'token_required'
            else:
                error = await _validate_connection(self.data[CONF_API_URL], self.data[CONF_TOKEN])
                if error is not None:
                    errors['base'] = error
            if not errors:
                self._pipeline = LineSelectionPipeline(self.data[CONF_API_URL], self.data[CONF_TOKEN])
                return await self.async_step_plant()

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    async def _async_finish_selection(self, selection: Dict[str, Any]):
        await self.async_set_unique_id(f"{self.data[CONF_API_URL]}_{selection[CONF_LINE_ID]}")
        self._abort_if_unique_id_configured()
        selection.pop("is_configured", None)
        self.data.update(selection)
        return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(LineSelectionMixin, config_entries.OptionsFlow):
    """Changes the polling interval and re-runs the line selection."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry
        self._options: Dict[str, Any] = {}

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        default_interval = self._entry.options.get(
            CONF_POLLING_INTERVAL, self._entry.data.get(CONF_POLLING_INTERVAL, POLLING_INTERVAL)
        )

        if user_input is not None:
            self._options[CONF_POLLING_INTERVAL] = user_input[CONF_POLLING_INTERVAL]
            self._pipeline = LineSelectionPipeline(
                self._entry.data[CONF_API_URL], self._entry.data.get(CONF_TOKEN, "")
            )
            return await self.async_step_plant()

        OPTIONS_SCHEMA = vol.Schema(
            {
                vol.Required(CONF_POLLING_INTERVAL, default=default_interval): polling_interval,
            }
        )
        return self.async_show_form(step_id="init", data_schema=OPTIONS_SCHEMA, errors={})

    async def _async_finish_selection(self, selection: Dict[str, Any]):
        selection.pop("is_configured", None)
        self._options.update(selection)
        # Saving the options reloads the entry, which restarts monitoring on the new line
        return self.async_create_entry(title="", data=self._options)
