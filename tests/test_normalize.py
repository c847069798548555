from __future__ import annotations

import unittest

from social_digest.errors import UpstreamUnavailable
from social_digest.models import Comment, Post
from social_digest.normalize import comments_from_payload, posts_from_payload, users_from_payload


class TestNormalize(unittest.TestCase):
    def test_users_envelope_keeps_upstream_order(self) -> None:
        users = users_from_payload({"users": {"10": "Zed", "2": " Amy ", "7": "Bo"}})
        self.assertEqual(list(users.items()), [("10", "Zed"), ("2", "Amy"), ("7", "Bo")])

    def test_users_accepts_list_of_objects(self) -> None:
        users = users_from_payload([{"id": 1, "name": "A"}, {"id": "1", "name": "dup"}, {"name": "x"}])
        self.assertEqual(users, {"1": "A"})

    def test_users_rejects_bad_shape(self) -> None:
        with self.assertRaises(UpstreamUnavailable):
            users_from_payload({"users": "nope"})

    def test_posts_accept_author_aliases(self) -> None:
        payload = {
            "posts": [
                {"id": 246, "userid": 1, "content": "Post about ant"},
                {"id": "161", "userId": "2", "content": "Post about bird"},
                {"id": 3, "user_id": 9},
                {"id": "x", "userid": 1},
                "garbage",
            ]
        }
        posts = posts_from_payload(payload, user_id="1")
        self.assertEqual(
            posts,
            (
                Post(id=246, user_id="1", content="Post about ant"),
                Post(id=161, user_id="2", content="Post about bird"),
                Post(id=3, user_id="9", content=""),
            ),
        )

    def test_posts_default_to_requested_user(self) -> None:
        posts = posts_from_payload({"posts": [{"id": 5, "content": "hi"}]}, user_id="4")
        self.assertEqual(posts, (Post(id=5, user_id="4", content="hi"),))

    def test_empty_post_list_is_valid(self) -> None:
        self.assertEqual(posts_from_payload({"posts": []}, user_id="1"), ())

    def test_posts_reject_missing_list(self) -> None:
        with self.assertRaises(UpstreamUnavailable):
            posts_from_payload({"posts": None}, user_id="1")
        with self.assertRaises(UpstreamUnavailable):
            posts_from_payload({"error": "boom"}, user_id="1")

    def test_comments(self) -> None:
        payload = {
            "comments": [
                {"id": 3893, "postid": 150, "content": "Old comment"},
                {"id": 4791, "content": "Boring comment"},
                {"content": "no id"},
            ]
        }
        comments = comments_from_payload(payload, post_id=150)
        self.assertEqual(
            comments,
            (
                Comment(id=3893, post_id=150, content="Old comment"),
                Comment(id=4791, post_id=150, content="Boring comment"),
            ),
        )


if __name__ == "__main__":
    unittest.main()
