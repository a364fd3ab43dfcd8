import logging

from homeassistant import config_entries, core
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from .api.auth import get_standard_headers
from .const import (
    CONF_API_URL,
    CONF_ENTRY_NAME,
    CONF_LINE_ID,
    CONF_LINE_NAME,
    CONF_PLANT_ID,
    CONF_PLANT_NAME,
    CONF_POLLING_INTERVAL,
    CONF_SECTOR_ID,
    CONF_SECTOR_NAME,
    CONF_TOKEN,
    DOMAIN,
    POLLING_INTERVAL,
)
from .production_state import ProductionState
from .requests import check_api_availability
from .settings_store import DeviceConfigurationStore

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BINARY_SENSOR, Platform.SELECT]
_LOGGER = logging.getLogger(__name__)

SELECTION_KEYS = (
    CONF_PLANT_ID,
    CONF_PLANT_NAME,
    CONF_SECTOR_ID,
    CONF_SECTOR_NAME,
    CONF_LINE_ID,
    CONF_LINE_NAME,
)


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration."""
    hass.data.setdefault(DOMAIN, {})
    return True


async def _validate_connection(api_url: str, token: str) -> str | None:
    """Return an error key for the config flow / setup, or None when the API answers."""
    if not api_url:
        return "api_url_required"
    if not await check_api_availability(api_url, get_standard_headers(token)):
        return "cannot_connect"
    return None


def _entry_value(entry: config_entries.ConfigEntry, key: str, default=None):
    """Options override the data the entry was created with."""
    if key in entry.options:
        return entry.options[key]
    return entry.data.get(key, default)


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up the production monitor from a ConfigEntry."""
    api_url = entry.data[CONF_API_URL]
    token = entry.data.get(CONF_TOKEN, "")

    error = await _validate_connection(api_url, token)
    if error is not None:
        raise ConfigEntryNotReady(f"Cannot reach the production data API at {api_url} ({error})")

    store = DeviceConfigurationStore(hass, entry.entry_id, entry.data.get(CONF_ENTRY_NAME, ""))
    await store.async_load()

    # The config/options flow owns the line selection; mirror it into the store
    selection = {key: str(_entry_value(entry, key, "") or "") for key in SELECTION_KEYS}
    selection["is_configured"] = bool(selection[CONF_LINE_ID])
    current = store.settings
    if any(getattr(current, key) != value for key, value in selection.items()):
        await store.async_set_settings(selection)

    state = ProductionState(
        hass,
        entry.entry_id,
        store,
        api_url,
        token,
        polling_interval=_entry_value(entry, CONF_POLLING_INTERVAL, POLLING_INTERVAL),
        config_entry=entry,
    )
    entry.runtime_data = state
    await state.async_initialize()

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry and tear down every timer it started."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        await entry.runtime_data.async_teardown()
    return unloaded
