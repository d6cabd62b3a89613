"""Shared async HTTP utilities for registry fetchers.

A thin wrapper around ``httpx.AsyncClient`` with standard timeouts,
user-agent header and error mapping. Transport failures become
``FetchError``; a 404 is not an error, since it means the registry does not
know the package.

httpx is an optional dependency (the ``registry`` extra) and is imported
lazily.
"""

from __future__ import annotations

import logging
from typing import Any

from pubsolve.exceptions import FetchError

logger = logging.getLogger(__name__)

# Timeout for all registry HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 10.0

# User-Agent sent with every request.
USER_AGENT: str = "pubsolve/0.1"


def _ensure_httpx() -> Any:  # noqa: ANN401
    """Lazily import httpx and raise a friendly error if missing.

    Returns:
        The ``httpx`` module.

    Raises:
        SystemExit: If httpx is not installed.
    """
    try:
        import httpx  # noqa: F811

        return httpx
    except ImportError:
        raise SystemExit(
            "httpx is required for registry access.\n"
            "Install it with: pip install pubsolve[registry]"
        )


def make_client(timeout: float = DEFAULT_TIMEOUT) -> Any:  # noqa: ANN401
    """Create an ``httpx.AsyncClient`` with the standard settings."""
    httpx = _ensure_httpx()
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


async def fetch_json(
    url: str,
    *,
    package: str,
    client: Any = None,  # noqa: ANN401
    params: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any | None:  # noqa: ANN401
    """Fetch a URL and parse the response as JSON.

    Args:
        url: The URL to fetch.
        package: Package the request is for, used in errors.
        client: An open ``httpx.AsyncClient`` to reuse; a temporary one is
            created when omitted.
        params: Optional query parameters.
        timeout: Request timeout in seconds (temporary clients only).

    Returns:
        Parsed JSON, or None when the server answered 404.

    Raises:
        FetchError: On timeouts, other HTTP errors, or invalid JSON.
    """
    httpx = _ensure_httpx()
    try:
        if client is None:
            async with make_client(timeout) as owned:
                resp = await owned.get(url, params=params)
        else:
            resp = await client.get(url, params=params)
        if resp.status_code == 404:
            logger.debug("404 from %s", url)
            return None
        resp.raise_for_status()
        return resp.json()
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise FetchError(package, f"timeout fetching {url}") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        raise FetchError(package, f"HTTP {exc.response.status_code} from {url}") from exc
    except (httpx.RequestError, ValueError) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise FetchError(package, f"request to {url} failed: {exc}") from exc
