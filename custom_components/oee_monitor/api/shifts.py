"""
Low-level shift data fetching from the production data source.

Responsible for:
- Fetching the shift catalog of a line
- Fetching the shift the server considers active for a line
- Mapping the JSON shift objects onto Shift model instances
"""
from __future__ import annotations

import logging

from homeassistant.util import dt as dt_util

from custom_components.oee_monitor.api.auth import build_url
from custom_components.oee_monitor.api.common import fetch_json
from custom_components.oee_monitor.models import FetchErrorKind, FetchResult, Shift

_LOGGER = logging.getLogger(__name__)


def parse_shift(raw: dict) -> Shift | None:
    """Map a single raw shift dict onto a Shift instance, None if it is unusable."""
    if not isinstance(raw, dict) or raw.get("id") is None:
        return None
    start = dt_util.parse_time(str(raw.get("startTime", "")))
    end = dt_util.parse_time(str(raw.get("endTime", "")))
    if start is None or end is None:
        _LOGGER.warning("Shift %s has an invalid time window, skipping", raw.get("id"))
        return None
    return Shift(
        id=str(raw["id"]),
        name=str(raw.get("name") or raw["id"]),
        start_time=start,
        end_time=end,
    )


async def fetch_shifts(api_url: str, headers: dict, line_id: str) -> FetchResult[list[Shift]]:
    """
    Fetch the shift catalog of a line.

    The endpoint answers either with a bare list or with {"shifts": [...]}.

    GET {api_url}/shifts?line=<line_id>
    """
    result = await fetch_json(build_url(api_url, "shifts"), headers, params={"line": line_id})
    if not result.ok:
        return result

    raw = result.value
    if isinstance(raw, dict):
        raw = raw.get("shifts")
    if not isinstance(raw, list):
        return FetchResult.failure(FetchErrorKind.MALFORMED, f"unexpected shift catalog: {result.value!r}")

    parsed = [parse_shift(item) for item in raw]
    return FetchResult.success([s for s in parsed if s is not None])


async def fetch_active_shift(api_url: str, headers: dict, line_id: str) -> FetchResult[Shift | None]:
    """
    Ask the server which shift is active on a line.

    A successful result may still carry None when the server knows of no active shift.

    GET {api_url}/shifts/active?line=<line_id>  ->  {"shift": Shift | null}
    """
    result = await fetch_json(build_url(api_url, "shifts/active"), headers, params={"line": line_id})
    if not result.ok:
        return result

    raw = result.value
    if not isinstance(raw, dict) or "shift" not in raw:
        return FetchResult.failure(FetchErrorKind.MALFORMED, f"unexpected active shift body: {raw!r}")
    if raw["shift"] is None:
        return FetchResult.success(None)

    shift = parse_shift(raw["shift"])
    if shift is None:
        return FetchResult.failure(FetchErrorKind.MALFORMED, f"unusable active shift: {raw['shift']!r}")
    return FetchResult.success(shift)
