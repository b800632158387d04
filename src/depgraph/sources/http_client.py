"""Shared async HTTP helpers for feed-backed sources.

Thin wrappers around ``httpx.AsyncClient`` with standard timeouts, a
user-agent header and uniform error handling, so every feed adapter behaves
the same way and tests can patch a single function.

A 404 is not an error for a package feed: it means the feed does not have
the package, and the helpers return None. Every other failure raises
``FetchError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from depgraph.exceptions import FetchError

logger = logging.getLogger(__name__)

# Timeout for every feed request (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = "depgraph/0.1"


def create_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create a client configured for feed requests."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


async def _get(client: httpx.AsyncClient | None, url: str, timeout: float) -> httpx.Response | None:
    owned = client is None
    active = client or create_client(timeout)
    try:
        logger.debug("GET %s", url)
        resp = await active.get(url)
        if resp.status_code == 404:
            logger.debug("404 from %s", url)
            return None
        resp.raise_for_status()
        return resp
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise FetchError(url, "timed out") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        raise FetchError(
            url, f"HTTP {exc.response.status_code}", exc.response.status_code
        ) from exc
    except httpx.RequestError as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise FetchError(url, str(exc) or type(exc).__name__) from exc
    finally:
        if owned:
            await active.aclose()


async def fetch_json(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:  # noqa: ANN401
    """Fetch a URL and parse the response as JSON.

    Args:
        url: The URL to fetch.
        client: Client to reuse; a short-lived one is created when None.
        timeout: Request timeout in seconds for a short-lived client.

    Returns:
        Parsed JSON, or None if the URL answered 404.

    Raises:
        FetchError: On HTTP errors, timeouts, or invalid JSON.
    """
    resp = await _get(client, url, timeout)
    if resp is None:
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise FetchError(url, "invalid JSON") from exc


async def fetch_bytes(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bytes | None:
    """Fetch a URL and return the raw response body.

    Returns:
        The body, or None if the URL answered 404.

    Raises:
        FetchError: On HTTP errors or timeouts.
    """
    resp = await _get(client, url, timeout)
    return None if resp is None else resp.content
