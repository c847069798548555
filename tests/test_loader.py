from __future__ import annotations

import asyncio
import unittest

from social_digest.cache import ResourceCache
from social_digest.errors import UpstreamUnavailable
from social_digest.loader import USERS_KEY, ResourceLoader, post_comments_key, user_posts_key
from social_digest.models import Comment, Post
from social_digest.offline import OfflineSocialGraphClient


class _FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _GatedClient:
    """Upstream whose calls block until `release` is set."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.calls = 0
        self.fail = False

    async def fetch_users(self) -> dict[str, str]:
        self.calls += 1
        await self.release.wait()
        if self.fail:
            raise UpstreamUnavailable("down", endpoint="/users")
        return {"1": "A"}

    async def fetch_user_posts(self, user_id: str) -> tuple[Post, ...]:
        raise NotImplementedError

    async def fetch_post_comments(self, post_id: int) -> tuple[Comment, ...]:
        raise NotImplementedError


class TestResourceLoader(unittest.IsolatedAsyncioTestCase):
    async def test_hit_skips_upstream(self) -> None:
        client = OfflineSocialGraphClient()
        loader = ResourceLoader(client, ResourceCache(clock=_FakeClock()))

        first = await loader.load_users()
        second = await loader.load_users()

        self.assertEqual(first, second)
        self.assertEqual(client.calls, ["/users"])
        self.assertEqual(loader.upstream_calls, 1)

    async def test_keys_are_per_resource(self) -> None:
        client = OfflineSocialGraphClient()
        cache = ResourceCache(clock=_FakeClock())
        loader = ResourceLoader(client, cache)

        await loader.load_user_posts("1")
        await loader.load_user_posts("2")
        await loader.load_user_posts("1")
        await loader.load_post_comments(150)

        self.assertEqual(client.calls, ["/users/1/posts", "/users/2/posts", "/posts/150/comments"])
        self.assertIn(user_posts_key("1"), cache)
        self.assertIn(post_comments_key(150), cache)
        self.assertNotIn(USERS_KEY, cache)

    async def test_empty_result_is_cached(self) -> None:
        client = OfflineSocialGraphClient()
        loader = ResourceLoader(client, ResourceCache(clock=_FakeClock()))

        self.assertEqual(await loader.load_user_posts("5"), ())
        self.assertEqual(await loader.load_user_posts("5"), ())
        self.assertEqual(client.calls, ["/users/5/posts"])

    async def test_expired_entry_triggers_exactly_one_refetch(self) -> None:
        clock = _FakeClock()
        client = OfflineSocialGraphClient()
        loader = ResourceLoader(client, ResourceCache(default_ttl=60, clock=clock))

        await loader.load_post_comments(150)
        clock.advance(60)
        await loader.load_post_comments(150)
        await loader.load_post_comments(150)

        self.assertEqual(client.calls, ["/posts/150/comments", "/posts/150/comments"])

    async def test_failure_is_not_cached(self) -> None:
        client = OfflineSocialGraphClient(failing_users={"3"})
        cache = ResourceCache(clock=_FakeClock())
        loader = ResourceLoader(client, cache)

        with self.assertRaises(UpstreamUnavailable):
            await loader.load_user_posts("3")
        self.assertNotIn(user_posts_key("3"), cache)

        client.failing_users.clear()
        posts = await loader.load_user_posts("3")
        self.assertEqual([p.id for p in posts], [201, 215, 233])
        self.assertEqual(client.calls, ["/users/3/posts", "/users/3/posts"])

    async def test_concurrent_misses_share_one_call(self) -> None:
        client = _GatedClient()
        loader = ResourceLoader(client, ResourceCache(clock=_FakeClock()))

        waiters = [asyncio.ensure_future(loader.load_users()) for _ in range(5)]
        await asyncio.sleep(0)
        client.release.set()
        results = await asyncio.gather(*waiters)

        self.assertEqual(client.calls, 1)
        self.assertTrue(all(r == {"1": "A"} for r in results))

    async def test_concurrent_failure_reaches_every_caller_then_retries(self) -> None:
        client = _GatedClient()
        client.fail = True
        loader = ResourceLoader(client, ResourceCache(clock=_FakeClock()))

        waiters = [asyncio.ensure_future(loader.load_users()) for _ in range(3)]
        await asyncio.sleep(0)
        client.release.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        self.assertEqual(client.calls, 1)
        self.assertTrue(all(isinstance(r, UpstreamUnavailable) for r in results))

        client.fail = False
        self.assertEqual(await loader.load_users(), {"1": "A"})
        self.assertEqual(client.calls, 2)


if __name__ == "__main__":
    unittest.main()
