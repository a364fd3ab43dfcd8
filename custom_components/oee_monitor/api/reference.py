"""
Low-level reference data fetching for the plant -> sector -> line cascade.

Responsible for:
- Fetching plants, the sectors of a plant and the lines of a sector
- Mapping the raw JSON objects onto ReferenceOption instances
"""
from __future__ import annotations

import logging

from custom_components.oee_monitor.api.auth import build_url
from custom_components.oee_monitor.api.common import fetch_json
from custom_components.oee_monitor.const import REFERENCE_REQUEST_ATTEMPTS
from custom_components.oee_monitor.models import FetchErrorKind, FetchResult, ReferenceOption

_LOGGER = logging.getLogger(__name__)


def _parse_option(raw: dict) -> ReferenceOption | None:
    """Map a single raw {id, name} dict onto a ReferenceOption."""
    if not isinstance(raw, dict) or raw.get("id") is None:
        _LOGGER.debug("Skipping reference entry without id: %s", raw)
        return None
    return ReferenceOption(id=str(raw["id"]), name=str(raw.get("name") or raw["id"]))


async def _fetch_options(url: str, headers: dict, params: dict | None = None) -> FetchResult[list[ReferenceOption]]:
    result = await fetch_json(url, headers, params=params, max_attempts=REFERENCE_REQUEST_ATTEMPTS)
    if not result.ok:
        return result
    if not isinstance(result.value, list):
        return FetchResult.failure(FetchErrorKind.MALFORMED, f"expected a list from {url}")
    parsed = [_parse_option(item) for item in result.value]
    return FetchResult.success([o for o in parsed if o is not None])


async def fetch_plants(api_url: str, headers: dict) -> FetchResult[list[ReferenceOption]]:
    """GET {api_url}/factories"""
    return await _fetch_options(build_url(api_url, "factories"), headers)


async def fetch_sectors(api_url: str, headers: dict, plant_id: str) -> FetchResult[list[ReferenceOption]]:
    """GET {api_url}/sectors?plant=<plant_id>"""
    return await _fetch_options(build_url(api_url, "sectors"), headers, {"plant": plant_id})


async def fetch_lines(
    api_url: str, headers: dict, plant_id: str, sector_id: str
) -> FetchResult[list[ReferenceOption]]:
    """GET {api_url}/lines?plant=<plant_id>&sector=<sector_id>"""
    return await _fetch_options(
        build_url(api_url, "lines"), headers, {"plant": plant_id, "sector": sector_id}
    )
