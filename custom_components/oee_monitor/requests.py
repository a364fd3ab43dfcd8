"""
Low-level HTTP request library for production data source communication.
This module handles all HTTP requests with optional retry logic and proper error handling.
"""
import asyncio
import logging
import aiohttp

from .const import REQUEST_TIMEOUT

_LOGGER = logging.getLogger(__name__)


class ApiResponseError(Exception):
    """Exception raised when the API returns a non-200 response."""
    def __init__(self, status: int, error_json: dict | None = None):
        self.status = status
        self.error_json = error_json
        super().__init__(f"API Error (HTTP {status}): {error_json}")


async def check_api_availability(url: str, headers: dict, timeout: int = 15) -> bool:
    """
    Check if the data source is reachable by sending a HEAD request.

    Args:
        url: Base URL of the API
        headers: HTTP headers dictionary (carries the bearer token)
        timeout: Timeout in seconds for the HEAD request

    Returns:
        True if the API answered with a status below 500, False otherwise
    """
    try:
        timeout_config = aiohttp.ClientTimeout(total=timeout)
        async with aiohttp.ClientSession(timeout=timeout_config) as session:
            async with session.head(url, headers=headers) as response:
                if response.status >= 500:
                    _LOGGER.warning("API URL is not reachable (status %s)", response.status)
                    return False
                return True

    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.warning("Timeout while checking API URL %s", url)
        return False
    except aiohttp.ClientError as e:
        _LOGGER.error("Error while checking API availability: %s", e)
        return False


async def make_request(
    method: str,
    url: str,
    headers: dict,
    payload: dict = None,
    params: dict = None,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = 1
):
    """
    Make an HTTP request, retrying on timeout when max_attempts > 1.

    Polling callers keep the default of a single attempt: their next tick is the retry.

    Args:
        method: HTTP method (GET, POST, PUT)
        url: Target URL for the request
        headers: HTTP headers dictionary
        payload: JSON payload for POST/PUT requests (optional)
        params: URL query parameters (optional)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts

    Returns:
        Parsed JSON response

    Raises:
        asyncio.TimeoutError: If all attempts time out
        ApiResponseError: If the API answers with a non-200 status
        ValueError: If the response has an unexpected content type
        aiohttp.ClientError: For connection errors
    """
    method = method.upper()
    if method not in ("GET", "POST", "PUT"):
        raise ValueError(f"Unsupported HTTP method: {method}")

    for attempt in range(max_attempts):
        # Timeout grows with each attempt
        timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.request(
                    method, url, headers=headers, json=payload, params=params
                ) as response:
                    return await _process_response(response, url)

        except (asyncio.TimeoutError, TimeoutError):
            if attempt < max_attempts - 1:
                continue
            _LOGGER.warning(
                "Timeout on %s request to %s after %s attempts",
                method, url, max_attempts
            )
            raise


async def _process_response(response, url: str):
    """
    Process HTTP response and extract JSON data.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)

    Returns:
        Parsed JSON response

    Raises:
        ValueError: If response has unexpected content type
        ApiResponseError: For non-200 responses
    """
    content_type = response.headers.get('Content-Type', '')

    if response.status == 200:
        if 'application/json' in content_type:
            return await response.json()
        _LOGGER.warning(
            "Unexpected content type in successful response: %s (status %s) from %s",
            content_type, response.status, url
        )
        text = await response.text()
        raise ValueError(f"Expected JSON but got {content_type}: {text[:200]}")

    if 'application/json' in content_type:
        try:
            error_json = await response.json()
        except (aiohttp.ContentTypeError, ValueError) as e:
            _LOGGER.debug("Failed to parse error response from %s: %s", url, e)
            error_json = None
        raise ApiResponseError(response.status, error_json)

    text = await response.text()
    _LOGGER.debug(
        "Received non-JSON error response from %s: status %s, content-type: %s, body preview: %s",
        url, response.status, content_type, text[:200]
    )
    raise ApiResponseError(response.status)
