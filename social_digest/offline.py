from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .errors import UpstreamUnavailable
from .models import Comment, Post
from .normalize import comments_from_payload, posts_from_payload, users_from_payload

_DEFAULT_USERS: dict[str, str] = {
    "1": "John Doe",
    "2": "Jane Doe",
    "3": "Alice Smith",
    "4": "Bob Johnson",
    "5": "Charlie Brown",
    "6": "Diana White",
}

_DEFAULT_POSTS: dict[str, list[dict[str, Any]]] = {
    "1": [
        {"id": 150, "userid": 1, "content": "Post about ant"},
        {"id": 246, "userid": 1, "content": "Post about elephant"},
    ],
    "2": [
        {"id": 161, "userid": 2, "content": "Post about bird"},
    ],
    "3": [
        {"id": 201, "userid": 3, "content": "Post about ocean"},
        {"id": 215, "userid": 3, "content": "Post about forest"},
        {"id": 233, "userid": 3, "content": "Post about desert"},
    ],
    "4": [
        {"id": 187, "userid": 4, "content": "Post about mountain"},
    ],
    "5": [],
    "6": [
        {"id": 198, "userid": 6, "content": "Post about river"},
        {"id": 240, "userid": 6, "content": "Post about city"},
    ],
}

_DEFAULT_COMMENT_COUNTS: dict[int, int] = {
    150: 3,
    246: 1,
    161: 4,
    201: 0,
    215: 2,
    233: 2,
    187: 4,
    198: 1,
    240: 0,
}


def _comment_items(counts: Mapping[int, int]) -> dict[int, list[dict[str, Any]]]:
    out: dict[int, list[dict[str, Any]]] = {}
    next_id = 3000
    for post_id, n in counts.items():
        items: list[dict[str, Any]] = []
        for i in range(n):
            items.append({"id": next_id, "postid": post_id, "content": f"Comment {i + 1}"})
            next_id += 1
        out[post_id] = items
    return out


@dataclass
class OfflineSocialGraphClient:
    """
    Network-free upstream for smoke checks and tests.

    Serves a small deterministic dataset in the upstream's wire shape and
    records every call. Ids listed in `failing_users` / `failing_posts`
    raise UpstreamUnavailable.
    """

    users: Mapping[str, str] = field(default_factory=lambda: dict(_DEFAULT_USERS))
    posts: Mapping[str, Sequence[Mapping[str, Any]]] = field(
        default_factory=lambda: {k: list(v) for k, v in _DEFAULT_POSTS.items()}
    )
    comments: Mapping[int, Sequence[Mapping[str, Any]]] = field(
        default_factory=lambda: _comment_items(_DEFAULT_COMMENT_COUNTS)
    )
    failing_users: set[str] = field(default_factory=set)
    failing_posts: set[int] = field(default_factory=set)
    fail_user_list: bool = False
    calls: list[str] = field(default_factory=list)

    async def fetch_users(self) -> dict[str, str]:
        endpoint = "/users"
        self.calls.append(endpoint)
        if self.fail_user_list:
            raise UpstreamUnavailable("offline user list unavailable", endpoint=endpoint)
        return users_from_payload({"users": dict(self.users)}, endpoint=endpoint)

    async def fetch_user_posts(self, user_id: str) -> tuple[Post, ...]:
        endpoint = f"/users/{user_id}/posts"
        self.calls.append(endpoint)
        if str(user_id) in self.failing_users:
            raise UpstreamUnavailable(f"offline posts unavailable for {user_id}", endpoint=endpoint)
        items = list(self.posts.get(str(user_id), []))
        return posts_from_payload({"posts": items}, user_id=str(user_id), endpoint=endpoint)

    async def fetch_post_comments(self, post_id: int) -> tuple[Comment, ...]:
        endpoint = f"/posts/{post_id}/comments"
        self.calls.append(endpoint)
        if int(post_id) in self.failing_posts:
            raise UpstreamUnavailable(f"offline comments unavailable for {post_id}", endpoint=endpoint)
        items = list(self.comments.get(int(post_id), []))
        return comments_from_payload({"comments": items}, post_id=int(post_id), endpoint=endpoint)

    async def close(self) -> None:
        return None
