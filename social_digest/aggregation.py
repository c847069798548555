from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from .cache import ResourceCache
from .coalesce import SingleFlight
from .dedupe import unique_posts
from .fanout import FanoutFailure, fan_out
from .loader import ResourceLoader
from .models import EnrichedPost, Post, RankedUser
from .run_log import EventLog

CORPUS_KEY = "all_posts_with_comments"
TOP_USERS_KEY = "top_users"
TOP_POSTS_KEY = "top_posts"
LATEST_POSTS_KEY = "latest_posts"


@dataclass(frozen=True)
class _Computed:
    value: Any
    failures: tuple[FanoutFailure, ...] = ()


class AggregationEngine:
    """
    Derives the ranked views from raw resources served by a ResourceLoader.

    Each view, and the enriched corpus the post views share, is cached under
    its own key. A failed fan-out leg drops that user or post from the
    result; a view built with dropped legs is returned but not cached.
    """

    def __init__(
        self,
        loader: ResourceLoader,
        *,
        cache: ResourceCache | None = None,
        top_users_limit: int = 5,
        latest_posts_limit: int = 5,
        fanout_limit: int | None = None,
        log: EventLog | None = None,
    ) -> None:
        if top_users_limit < 1 or latest_posts_limit < 1:
            raise ValueError("view limits must be >= 1")

        self._loader = loader
        self._cache = cache or loader.cache
        self._top_users_limit = int(top_users_limit)
        self._latest_posts_limit = int(latest_posts_limit)
        self._fanout_limit = fanout_limit or None
        self._flights: SingleFlight[_Computed] = SingleFlight()
        self._log = log or EventLog.null()

    @property
    def loader(self) -> ResourceLoader:
        return self._loader

    async def build_enriched_corpus(self) -> tuple[EnrichedPost, ...]:
        return (await self._view(CORPUS_KEY, self._compute_corpus)).value

    async def find_top_users(self) -> tuple[RankedUser, ...]:
        return (await self._view(TOP_USERS_KEY, self._compute_top_users)).value

    async def get_top_posts(self) -> tuple[EnrichedPost, ...]:
        return (await self._view(TOP_POSTS_KEY, self._compute_top_posts)).value

    async def get_latest_posts(self) -> tuple[EnrichedPost, ...]:
        return (await self._view(LATEST_POSTS_KEY, self._compute_latest_posts)).value

    async def _view(self, key: str, compute: Callable[[], Awaitable[_Computed]]) -> _Computed:
        entry = self._cache.get(key)
        if entry is not None:
            self._log.info("cache_hit", key=key)
            return _Computed(entry.value)

        self._log.info("cache_miss", key=key)

        async def _compute_and_store() -> _Computed:
            computed = await compute()
            if computed.failures:
                self._log.warning(
                    "view_not_cached_partial",
                    view=key,
                    failed_legs=len(computed.failures),
                )
            else:
                self._cache.set(key, computed.value, kind=key)
            self._log.info("view_computed", view=key, size=len(computed.value))
            return computed

        return await self._flights.do(key, _compute_and_store)

    async def _compute_corpus(self) -> _Computed:
        users = await self._loader.load_users()

        post_legs = await fan_out(
            list(users.items()),
            lambda user: self._loader.load_user_posts(user[0]),
            limit=self._fanout_limit,
        )
        failures = self._report("posts", post_legs.failed)

        authored: list[Post] = []
        author_names: dict[int, str] = {}
        for (_, user_name), posts in post_legs.succeeded:
            for post in posts:
                author_names.setdefault(post.id, user_name)
                authored.append(post)
        posts = unique_posts(authored)

        comment_legs = await fan_out(
            posts,
            lambda post: self._loader.load_post_comments(post.id),
            limit=self._fanout_limit,
        )
        failures += self._report("comments", comment_legs.failed)

        corpus = tuple(
            EnrichedPost.from_post(
                post,
                user_name=author_names[post.id],
                comment_count=len(comments),
            )
            for post, comments in comment_legs.succeeded
        )
        return _Computed(corpus, failures)

    async def _compute_top_users(self) -> _Computed:
        users = await self._loader.load_users()

        async def _tally(user: tuple[str, str]) -> tuple[RankedUser, tuple[FanoutFailure, ...]]:
            user_id, user_name = user
            posts = unique_posts(await self._loader.load_user_posts(user_id))
            legs = await fan_out(
                posts,
                lambda post: self._loader.load_post_comments(post.id),
                limit=self._fanout_limit,
            )
            total = sum(len(comments) for comments in legs.values())
            return RankedUser(user_id, user_name, total), tuple(legs.failed)

        user_legs = await fan_out(list(users.items()), _tally, limit=self._fanout_limit)

        failures = self._report("posts", user_legs.failed)
        ranked: list[RankedUser] = []
        for ranked_user, comment_failures in user_legs.values():
            failures += self._report("comments", comment_failures)
            ranked.append(ranked_user)

        # Stable sort: equal totals keep the upstream user order.
        ranked.sort(key=lambda r: -r.total_comments)
        return _Computed(tuple(ranked[: self._top_users_limit]), failures)

    async def _compute_top_posts(self) -> _Computed:
        corpus = await self._view(CORPUS_KEY, self._compute_corpus)
        posts: tuple[EnrichedPost, ...] = corpus.value

        max_count = max((p.comment_count for p in posts), default=0)
        top = tuple(p for p in posts if p.comment_count == max_count)
        return _Computed(top, corpus.failures)

    async def _compute_latest_posts(self) -> _Computed:
        corpus = await self._view(CORPUS_KEY, self._compute_corpus)
        posts: tuple[EnrichedPost, ...] = corpus.value

        latest = sorted(posts, key=lambda p: p.id, reverse=True)
        return _Computed(tuple(latest[: self._latest_posts_limit]), corpus.failures)

    def _report(self, resource: str, failed: Sequence[FanoutFailure]) -> tuple[FanoutFailure, ...]:
        for failure in failed:
            item = failure.item
            if isinstance(item, Post):
                ref = {"post_id": item.id}
            else:
                ref = {"user_id": item[0]}
            self._log.warning(
                "fanout_leg_failed",
                resource=resource,
                error=type(failure.error).__name__,
                message=str(failure.error),
                **ref,
            )
        return tuple(failed)
