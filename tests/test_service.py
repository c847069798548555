from __future__ import annotations

import io
import json
import unittest
from datetime import datetime, timezone

from social_digest.config_schema import AppConfig
from social_digest.errors import InvalidModeError
from social_digest.offline import OfflineSocialGraphClient
from social_digest.run_log import EventLog
from social_digest.service import QueryService, build_service, normalize_mode


class TestNormalizeMode(unittest.TestCase):
    def test_accepts_known_modes(self) -> None:
        self.assertEqual(normalize_mode(None), "popular")
        self.assertEqual(normalize_mode(""), "popular")
        self.assertEqual(normalize_mode("latest"), "latest")
        self.assertEqual(normalize_mode("popular"), "popular")

    def test_rejects_anything_else(self) -> None:
        for bad in ("newest", "top", 3, 0, " Latest ", "LATEST", " latest ", "Popular"):
            with self.assertRaises(InvalidModeError):
                normalize_mode(bad)


class TestQueryService(unittest.IsolatedAsyncioTestCase):
    def _service(self, client: OfflineSocialGraphClient, **kwargs: object) -> QueryService:
        return build_service(AppConfig(), client=client, **kwargs)  # type: ignore[arg-type]

    async def test_ranked_users_response_shape(self) -> None:
        service = self._service(OfflineSocialGraphClient())
        payload = await service.get_ranked_users()

        self.assertEqual(list(payload), ["topUsers"])
        self.assertEqual(len(payload["topUsers"]), 5)
        self.assertEqual(
            payload["topUsers"][0],
            {"userId": "1", "userName": "John Doe", "totalComments": 4},
        )
        # Users 1-4 tie on 4 comments and keep upstream order; user 6 has 1.
        self.assertEqual([u["userId"] for u in payload["topUsers"]], ["1", "2", "3", "4", "6"])

    async def test_popular_and_latest_posts(self) -> None:
        service = self._service(OfflineSocialGraphClient())

        popular = await service.get_posts("popular")
        self.assertEqual(popular["type"], "popular")
        self.assertEqual([p["id"] for p in popular["posts"]], [161, 187])
        self.assertEqual(
            popular["posts"][0],
            {
                "id": 161,
                "userId": "2",
                "userName": "Jane Doe",
                "content": "Post about bird",
                "commentCount": 4,
            },
        )

        latest = await service.get_posts("latest")
        self.assertEqual(latest["type"], "latest")
        self.assertEqual([p["id"] for p in latest["posts"]], [246, 240, 233, 215, 201])

    async def test_default_mode_is_popular(self) -> None:
        service = self._service(OfflineSocialGraphClient())
        self.assertEqual((await service.get_posts())["type"], "popular")
        self.assertEqual((await service.get_posts(None))["type"], "popular")

    async def test_invalid_mode_never_reaches_upstream(self) -> None:
        client = OfflineSocialGraphClient()
        service = self._service(client)

        with self.assertRaises(InvalidModeError) as ctx:
            await service.get_posts("trending")

        self.assertEqual(ctx.exception.mode, "trending")
        self.assertEqual(client.calls, [])

    async def test_mode_match_is_exact_and_case_sensitive(self) -> None:
        client = OfflineSocialGraphClient()
        service = self._service(client)

        for bad in ("LATEST", " latest ", "Popular", " Latest "):
            with self.assertRaises(InvalidModeError):
                await service.get_posts(bad)

        self.assertEqual(client.calls, [])

    async def test_health_check(self) -> None:
        engine = self._service(OfflineSocialGraphClient()).engine
        fixed = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        service = QueryService(engine, now_fn=lambda: fixed)

        self.assertEqual(
            service.health_check(),
            {"status": "UP", "timestamp": "2025-03-01T12:00:00+00:00"},
        )

    async def test_config_limits_and_logging_are_wired(self) -> None:
        stream = io.StringIO()
        cfg = AppConfig.model_validate({"views": {"top_users_limit": 2, "latest_posts_limit": 1}})
        client = OfflineSocialGraphClient()

        async with build_service(cfg, client=client, log=EventLog(stream=stream)) as service:
            users = await service.get_ranked_users()
            latest = await service.get_posts("latest")

        self.assertEqual(len(users["topUsers"]), 2)
        self.assertEqual([p["id"] for p in latest["posts"]], [246])

        events = [json.loads(line) for line in stream.getvalue().splitlines()]
        names = {e["event"] for e in events}
        self.assertIn("cache_miss", names)
        self.assertIn("view_computed", names)
        self.assertIn("loader", {e.get("component") for e in events})


if __name__ == "__main__":
    unittest.main()
