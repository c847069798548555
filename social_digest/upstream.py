from __future__ import annotations

from typing import Any, Protocol

import aiohttp

from .errors import UpstreamUnavailable
from .models import Comment, Post
from .normalize import comments_from_payload, posts_from_payload, users_from_payload
from .retry import OnRetryFn, RetryConfig, RetryEvent, SleepFn, call_with_retries
from .run_log import EventLog
from .upstream_retry import is_retryable_upstream_exception

DEFAULT_BASE_URL = "http://20.244.56.144/evaluation-service"

_DEFAULT_UPSTREAM_RETRY = RetryConfig(
    max_attempts=3,
    base_delay_seconds=0.5,
    max_delay_seconds=5.0,
    jitter_ratio=0.25,
)


class UpstreamClient(Protocol):
    """What the loader needs from an upstream: one call per resource, no caching."""

    async def fetch_users(self) -> dict[str, str]: ...

    async def fetch_user_posts(self, user_id: str) -> tuple[Post, ...]: ...

    async def fetch_post_comments(self, post_id: int) -> tuple[Comment, ...]: ...


class SocialGraphClient:
    """
    Thin async wrapper around the upstream social-graph HTTP API.

    This module is deliberately low-level: it fetches and parses single
    resources. Caching and aggregation live in the loader and engine.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = 10.0,
        token: str | None = None,
        retry: RetryConfig | None = None,
        on_retry: OnRetryFn | None = None,
        sleep_fn: SleepFn | None = None,
        log: EventLog | None = None,
    ) -> None:
        self._base_url = (base_url or "").strip().rstrip("/")
        if not self._base_url:
            raise ValueError("base_url must be a non-empty URL")

        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=float(timeout_seconds))
        self._token = (token or "").strip() or None
        self._retry = retry or _DEFAULT_UPSTREAM_RETRY
        self._sleep_fn = sleep_fn
        self._log = log or EventLog.null()
        self._on_retry = on_retry or self._log_retry

    async def __aenter__(self) -> "SocialGraphClient":
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    async def fetch_users(self) -> dict[str, str]:
        endpoint = "/users"
        payload = await self._get_json(endpoint)
        return users_from_payload(payload, endpoint=endpoint)

    async def fetch_user_posts(self, user_id: str) -> tuple[Post, ...]:
        uid = str(user_id).strip()
        if not uid:
            raise ValueError("user_id must be non-empty")
        endpoint = f"/users/{uid}/posts"
        payload = await self._get_json(endpoint)
        return posts_from_payload(payload, user_id=uid, endpoint=endpoint)

    async def fetch_post_comments(self, post_id: int) -> tuple[Comment, ...]:
        pid = int(post_id)
        endpoint = f"/posts/{pid}/comments"
        payload = await self._get_json(endpoint)
        return comments_from_payload(payload, post_id=pid, endpoint=endpoint)

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_json(self, endpoint: str) -> Any:
        url = f"{self._base_url}{endpoint}"
        session = self._ensure_session()

        async def _do_get() -> Any:
            async with session.get(url, headers=self._headers(), timeout=self._timeout) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)

        self._log.info("upstream_request", endpoint=endpoint)
        try:
            return await call_with_retries(
                _do_get,
                cfg=self._retry,
                is_retryable=is_retryable_upstream_exception,
                operation=f"GET {endpoint}",
                on_retry=self._on_retry,
                sleep_fn=self._sleep_fn,
            )
        except aiohttp.ClientResponseError as e:
            self._log.warning("upstream_failed", endpoint=endpoint, status=e.status)
            raise UpstreamUnavailable(
                f"Upstream request failed (GET {endpoint}): HTTP {e.status}",
                endpoint=endpoint,
                status=e.status,
            ) from e
        except Exception as e:
            self._log.warning("upstream_failed", endpoint=endpoint, error=type(e).__name__)
            raise UpstreamUnavailable(
                f"Unexpected error while calling upstream (GET {endpoint}): {e!r}",
                endpoint=endpoint,
            ) from e

    def _log_retry(self, event: RetryEvent) -> None:
        self._log.warning(
            "upstream_retry",
            operation=event.operation,
            next_attempt=event.next_attempt,
            max_attempts=event.max_attempts,
            delay_seconds=round(event.delay_seconds, 3),
            reason=event.reason,
        )
