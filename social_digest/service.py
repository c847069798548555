from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Literal

from .aggregation import AggregationEngine
from .cache import ClockFn, ResourceCache
from .config import RuntimeSecrets
from .config_schema import AppConfig
from .errors import InvalidModeError
from .loader import ResourceLoader
from .retry import RetryConfig
from .run_log import EventLog
from .upstream import SocialGraphClient, UpstreamClient

PostsMode = Literal["popular", "latest"]
POSTS_MODES: tuple[str, ...] = ("popular", "latest")
DEFAULT_POSTS_MODE: PostsMode = "popular"


def normalize_mode(mode: object) -> PostsMode:
    """Validate a posts mode exactly; None or "" means the default ("popular")."""
    if mode is None:
        return DEFAULT_POSTS_MODE
    if not isinstance(mode, str):
        raise InvalidModeError(mode)
    if not mode:
        return DEFAULT_POSTS_MODE
    if mode not in POSTS_MODES:
        raise InvalidModeError(mode)
    return mode  # type: ignore[return-value]


class QueryService:
    """Request-facing facade over an AggregationEngine. Holds no state of its own."""

    def __init__(
        self,
        engine: AggregationEngine,
        *,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        self._engine = engine
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    @property
    def engine(self) -> AggregationEngine:
        return self._engine

    async def __aenter__(self) -> "QueryService":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        close = getattr(self._engine.loader.client, "close", None)
        if close is not None:
            await close()

    async def get_ranked_users(self) -> dict[str, Any]:
        top = await self._engine.find_top_users()
        return {"topUsers": [user.to_dict() for user in top]}

    async def get_posts(self, mode: object = DEFAULT_POSTS_MODE) -> dict[str, Any]:
        # Validated before any aggregation work so a bad mode never reaches upstream.
        kind = normalize_mode(mode)
        if kind == "popular":
            posts = await self._engine.get_top_posts()
        else:
            posts = await self._engine.get_latest_posts()
        return {"type": kind, "posts": [post.to_dict() for post in posts]}

    def health_check(self) -> dict[str, Any]:
        return {"status": "UP", "timestamp": self._now_fn().isoformat()}


def build_service(
    config: AppConfig,
    secrets: RuntimeSecrets | None = None,
    *,
    client: UpstreamClient | None = None,
    clock: ClockFn | None = None,
    log: EventLog | None = None,
) -> QueryService:
    """
    Wire cache, loader, engine and service from config.

    When `client` is omitted an HTTP SocialGraphClient is created; closing the
    returned service (`aclose` or `async with`) closes it.
    """
    event_log = log or EventLog.null()

    if client is None:
        up = config.upstream
        client = SocialGraphClient(
            up.base_url,
            timeout_seconds=up.timeout_seconds,
            token=(secrets.upstream_token if secrets is not None else None),
            retry=RetryConfig(
                max_attempts=up.max_attempts,
                base_delay_seconds=up.base_delay_seconds,
                max_delay_seconds=up.max_delay_seconds,
                jitter_ratio=up.jitter_ratio,
            ),
            log=event_log.child("upstream"),
        )

    cache = ResourceCache(
        default_ttl=config.cache.default_ttl_seconds,
        ttl_overrides=config.cache.ttl_overrides,
        max_entries=config.cache.max_entries,
        clock=clock,
    )
    loader = ResourceLoader(client, cache, log=event_log.child("loader"))
    engine = AggregationEngine(
        loader,
        top_users_limit=config.views.top_users_limit,
        latest_posts_limit=config.views.latest_posts_limit,
        fanout_limit=config.fanout.max_concurrency,
        log=event_log.child("aggregation"),
    )
    return QueryService(engine)
