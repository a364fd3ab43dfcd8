"""
Low-level authentication helpers for the production data source.

The bearer token itself is issued and stored outside this integration; it is
entered once in the config flow and sent with every request.
"""
import logging

_LOGGER = logging.getLogger(__name__)


def get_standard_headers(token: str) -> dict:
    """
    Build the standard HTTP headers used by all authenticated API requests.

    :param token: Bearer token from the config entry.
    :return: Dictionary of HTTP headers.
    """
    if not token:
        _LOGGER.debug("Building headers without a bearer token")
    return {
        "accept": "application/json",
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def build_url(api_url: str, path: str) -> str:
    """Join the configured API base URL and an endpoint path."""
    return f"{api_url.rstrip('/')}/{path.lstrip('/')}"
