"""
Standardized HTTP client configuration with proper timeouts.

Every outbound request made while computing status goes through a session
created here, so timeouts and no-cache behaviour stay consistent: status must
reflect live state, never a cached response.

Usage:
    from roadmap_status.http_client import create_client_session, NO_CACHE_HEADERS

    async with create_client_session() as session:
        async with session.get(url, headers=NO_CACHE_HEADERS) as resp:
            body = await resp.text()
"""

from __future__ import annotations

import aiohttp
from aiohttp import ClientTimeout

from roadmap_status.__version__ import PACKAGE_NAME, __version__

__all__ = [
    "DEFAULT_TIMEOUT",
    "PROBE_TIMEOUT",
    "LONG_TIMEOUT",
    "NO_CACHE_HEADERS",
    "USER_AGENT",
    "create_client_session",
]

# Default timeout for most HTTP requests (30 seconds total)
DEFAULT_TIMEOUT = ClientTimeout(
    total=30,
    connect=10,
    sock_read=20,
)

# Read-only probes should fail fast
PROBE_TIMEOUT = ClientTimeout(
    total=15,
    connect=5,
    sock_read=10,
)

# Model-backed clarity scoring
LONG_TIMEOUT = ClientTimeout(
    total=120,
    connect=10,
    sock_read=110,
)

USER_AGENT = f"{PACKAGE_NAME}/{__version__}"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}


def create_client_session(
    timeout: ClientTimeout | None = None,
    **kwargs,
) -> aiohttp.ClientSession:
    """Create an aiohttp ClientSession with timeout and default headers.

    Args:
        timeout: Optional custom timeout. Uses DEFAULT_TIMEOUT if not specified.
        **kwargs: Additional arguments passed to ClientSession.

    Returns:
        Configured aiohttp.ClientSession.
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUT
    headers = {"User-Agent": USER_AGENT, **NO_CACHE_HEADERS, **kwargs.pop("headers", {})}
    return aiohttp.ClientSession(timeout=timeout, headers=headers, **kwargs)
