"""
Conversion of HTTP exceptions into FetchResult values.

Every endpoint wrapper in this package goes through fetch_json, so callers
never see an exception from the network layer.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from custom_components.oee_monitor.models import FetchErrorKind, FetchResult
from custom_components.oee_monitor.requests import make_request, ApiResponseError

_LOGGER = logging.getLogger(__name__)


async def fetch_json(
    url: str,
    headers: dict,
    params: dict | None = None,
    max_attempts: int = 1,
) -> FetchResult[Any]:
    """GET url and return the decoded JSON body, or a TRANSIENT/MALFORMED failure."""
    try:
        raw_json = await make_request("GET", url, headers, params=params, max_attempts=max_attempts)
    except ApiResponseError as e:
        return FetchResult.failure(FetchErrorKind.TRANSIENT, str(e))
    except (asyncio.TimeoutError, TimeoutError):
        return FetchResult.failure(FetchErrorKind.TRANSIENT, f"timeout requesting {url}")
    except aiohttp.ClientError as e:
        return FetchResult.failure(FetchErrorKind.TRANSIENT, f"connection error: {e}")
    except ValueError as e:
        return FetchResult.failure(FetchErrorKind.MALFORMED, str(e))

    _LOGGER.debug("GET %s -> %s", url, raw_json)
    return FetchResult.success(raw_json)
