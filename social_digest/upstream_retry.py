from __future__ import annotations

import asyncio

import aiohttp


def _retry_after_seconds(exc: aiohttp.ClientResponseError) -> float | None:
    headers = exc.headers or {}
    raw = headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(str(raw).strip())
    except ValueError:
        return None


def is_retryable_upstream_exception(exc: BaseException) -> tuple[bool, float | None, str | None]:
    """
    Upstream retry policy:
    - connection errors and timeouts
    - HTTP 500+
    - HTTP 429 (honouring Retry-After when present)
    """
    if isinstance(exc, aiohttp.ClientResponseError):
        code = exc.status
        if code == 429 or code >= 500:
            return True, _retry_after_seconds(exc), f"http_{code}"
        return False, None, f"http_{code}"

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return True, None, "timeout"

    if isinstance(exc, (aiohttp.ClientConnectionError, ConnectionError)):
        return True, None, "network_error"

    return False, None, None
