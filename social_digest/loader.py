from __future__ import annotations

from typing import Any, Awaitable, Callable

from .cache import ResourceCache
from .coalesce import SingleFlight
from .models import Comment, Post
from .run_log import EventLog
from .upstream import UpstreamClient

USERS_KEY = "users"


def user_posts_key(user_id: str) -> str:
    return f"posts_{user_id}"


def post_comments_key(post_id: int) -> str:
    return f"comments_{post_id}"


class ResourceLoader:
    """
    Memoized access to raw upstream resources.

    Each accessor checks the cache, and on a miss makes exactly one upstream
    call shared by every concurrent caller for that key. Only successful
    results are stored; failures propagate and the next call retries.
    """

    def __init__(
        self,
        client: UpstreamClient,
        cache: ResourceCache,
        *,
        log: EventLog | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._flights: SingleFlight[Any] = SingleFlight()
        self._log = log or EventLog.null()
        self.upstream_calls = 0

    @property
    def cache(self) -> ResourceCache:
        return self._cache

    @property
    def client(self) -> UpstreamClient:
        return self._client

    async def load_users(self) -> dict[str, str]:
        return await self._load(USERS_KEY, "users", self._client.fetch_users)

    async def load_user_posts(self, user_id: str) -> tuple[Post, ...]:
        return await self._load(
            user_posts_key(user_id),
            "posts",
            lambda: self._client.fetch_user_posts(user_id),
        )

    async def load_post_comments(self, post_id: int) -> tuple[Comment, ...]:
        return await self._load(
            post_comments_key(post_id),
            "comments",
            lambda: self._client.fetch_post_comments(post_id),
        )

    async def _load(self, key: str, kind: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        entry = self._cache.get(key)
        if entry is not None:
            self._log.info("cache_hit", key=key)
            return entry.value

        self._log.info("cache_miss", key=key)

        async def _fetch_and_store() -> Any:
            self.upstream_calls += 1
            value = await fetch()
            self._cache.set(key, value, kind=kind)
            return value

        return await self._flights.do(key, _fetch_and_store)
