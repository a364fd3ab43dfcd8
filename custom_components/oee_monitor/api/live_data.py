"""
Low-level live counter fetching from the production data source.

Responsible for:
- Fetching the live parameter list of a line
- Mapping parameter values onto a LiveCounters instance
- Mapping the optional production order onto a ProductionJob instance
"""
from __future__ import annotations

import logging
import math

from custom_components.oee_monitor.api.auth import build_url
from custom_components.oee_monitor.api.common import fetch_json
from custom_components.oee_monitor.const import (
    PARAM_COUNT,
    PARAM_CYCLE_TIME,
    PARAM_CYCLE_TIME_AVG,
    PARAM_GOOD_COUNT,
    PARAM_INSTANT_SPEED,
    PARAM_RUNNING_TIME,
    PARAM_STOPPED_STATUS,
    PARAM_STOPPED_TIME,
    PARAM_THROUGHPUT,
)
from custom_components.oee_monitor.models import (
    FetchErrorKind,
    FetchResult,
    LiveCounters,
    LiveReading,
    ProductionJob,
)

_LOGGER = logging.getLogger(__name__)


def _to_float(value) -> float:
    """Parse a parameter value; anything unparseable or non-finite reads as 0."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _to_int(value) -> int:
    return int(_to_float(value))


def parse_counters(values: list) -> LiveCounters:
    """Map the [{"name": ..., "value": ...}] parameter list onto LiveCounters. Missing values read as 0."""
    params = {
        item.get("name"): item.get("value")
        for item in values
        if isinstance(item, dict)
    }
    count = _to_int(params.get(PARAM_COUNT))
    throughput = _to_float(params.get(PARAM_THROUGHPUT))
    return LiveCounters(
        count=count,
        # Lines without a reject sensor only publish the total count
        good=_to_int(params[PARAM_GOOD_COUNT]) if PARAM_GOOD_COUNT in params else count,
        throughput=throughput,
        instant_speed=_to_float(params[PARAM_INSTANT_SPEED]) if PARAM_INSTANT_SPEED in params else throughput,
        cycle_time=_to_float(params.get(PARAM_CYCLE_TIME)),
        cycle_time_avg=_to_float(params.get(PARAM_CYCLE_TIME_AVG)),
        running_time=_to_int(params.get(PARAM_RUNNING_TIME)),
        stopped_time=_to_int(params.get(PARAM_STOPPED_TIME)),
        stopped_status=_to_int(params.get(PARAM_STOPPED_STATUS)),
    )


def parse_job(raw) -> ProductionJob | None:
    """Map the optional "job" object onto a ProductionJob."""
    if not isinstance(raw, dict) or not raw.get("orderId"):
        return None
    return ProductionJob(
        order_id=str(raw["orderId"]),
        order_quantity=_to_int(raw.get("orderQuantity")),
        product_id=str(raw.get("productId") or ""),
        product_name=str(raw.get("productName") or ""),
    )


async def fetch_live_reading(api_url: str, headers: dict, line_id: str) -> FetchResult[LiveReading]:
    """
    Fetch the live counters of a line in one request.

    GET {api_url}/live?line=<line_id>  ->  {"values": [...], "job": {...} | null}
    """
    result = await fetch_json(build_url(api_url, "live"), headers, params={"line": line_id})
    if not result.ok:
        return result

    raw = result.value
    if not isinstance(raw, dict) or not isinstance(raw.get("values"), list):
        return FetchResult.failure(FetchErrorKind.MALFORMED, f"unexpected live data body: {raw!r}")

    return FetchResult.success(
        LiveReading(counters=parse_counters(raw["values"]), job=parse_job(raw.get("job")))
    )
