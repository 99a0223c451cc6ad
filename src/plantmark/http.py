"""Shared HTTP client for render server requests.

The client is reused across calls to benefit from connection pooling.
"""

from __future__ import annotations

import threading

import httpx

__all__ = ["DEFAULT_TIMEOUT", "close_client", "get_client"]

# Default timeout for HTTP requests (seconds)
DEFAULT_TIMEOUT = 60.0

_client: httpx.Client | None = None
_lock = threading.Lock()


def _user_agent() -> str:
    import plantmark

    return f"plantmark/{plantmark.__version__}"


def get_client() -> httpx.Client:
    """Get or create the shared HTTP client."""
    global _client
    with _lock:
        if _client is None:
            _client = httpx.Client(
                timeout=httpx.Timeout(DEFAULT_TIMEOUT),
                follow_redirects=True,
                headers={"User-Agent": _user_agent()},
                limits=httpx.Limits(
                    max_keepalive_connections=10,
                    max_connections=20,
                    keepalive_expiry=30.0,
                ),
            )
        return _client


def close_client() -> None:
    """Close the shared client, if one was created."""
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None
