"""Deadline-bound HTTP transport.

Every outbound provider call goes through ``fetch_with_timeout``. The whole
call (connect, send, read) shares one deadline; when it expires the request
task is cancelled and ``NetworkTimeout`` is raised, which callers can tell
apart from ``NetworkFailure``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from imagine_gateway.gateway.errors import NetworkFailure, NetworkTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


async def fetch_with_timeout(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request and abort it once ``timeout`` seconds have passed.

    Raises:
        NetworkTimeout: the deadline (or an httpx phase timeout) expired.
        NetworkFailure: any other transport-level error.
    """
    try:
        return await asyncio.wait_for(client.request(method, url, **kwargs), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.warning("%s %s aborted after %.1fs", method, _safe_url(url), timeout)
        raise NetworkTimeout(timeout, _safe_url(url)) from e
    except httpx.TransportError as e:
        logger.warning("%s %s failed: %s", method, _safe_url(url), type(e).__name__)
        raise NetworkFailure(f"Network error: {e}", original_error=e) from e


def _safe_url(url: str) -> str:
    """Strip the query string; query-auth providers carry the key there."""
    return url.split("?", 1)[0]
