"""aiohttp session helpers."""

import json
from typing import Any

import aiohttp

from .types import RegistryConfig


async def create_session(config: RegistryConfig | None = None) -> aiohttp.ClientSession:
    """Create a client session for registry requests.

    The timeout bounds connecting and each socket read but not the total
    request, since blob transfers can run for a long time.

    Args:
        config: Registry configuration supplying the timeout

    Returns:
        New aiohttp ClientSession
    """
    timeout = config.timeout if config else 30
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(
            total=None, sock_connect=timeout, sock_read=timeout
        ),
    )


async def parse_json_response(response: aiohttp.ClientResponse) -> Any:
    """Decode a JSON body regardless of its declared content type.

    Registries serve manifests as vendor media types rather than
    application/json, so aiohttp's content type check is disabled.

    Raises:
        ValueError: If the body is not valid JSON
    """
    body = await response.read()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid JSON response: {e}") from e
