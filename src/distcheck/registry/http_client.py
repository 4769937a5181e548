"""Shared async HTTP client utilities.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error handling. Artifact downloads go
through this module so that HTTP behaviour is consistent and testable.

Raises ``ArtifactDownloadError`` (a subclass of ``DistcheckError``) on
transport failures.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from distcheck import __version__
from distcheck.config import DEFAULT_HTTP_TIMEOUT
from distcheck.exceptions import ArtifactDownloadError

logger = logging.getLogger(__name__)

# User-Agent sent with every request.
USER_AGENT: str = f"distcheck/{__version__}"


@asynccontextmanager
async def stream_download(
    url: str,
    *,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[httpx.Response]:
    """Open a streaming GET request.

    The response body is not read; callers iterate it with
    ``response.aiter_bytes()`` and must check the status code themselves.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.
        transport: Optional transport override (e.g. ``httpx.MockTransport``).

    Yields:
        The streaming ``httpx.Response``.

    Raises:
        ArtifactDownloadError: On timeouts and transport errors.
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        ) as client:
            async with client.stream("GET", url) as response:
                yield response
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise ArtifactDownloadError(f"Timeout fetching {url}") from exc
    except httpx.RequestError as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise ArtifactDownloadError(f"Request error for {url}: {exc}") from exc
