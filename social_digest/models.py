from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Post:
    """A post as returned by the upstream API."""

    id: int
    user_id: str
    content: str = ""


@dataclass(frozen=True)
class Comment:
    id: int
    post_id: int
    content: str = ""


@dataclass(frozen=True)
class EnrichedPost:
    """A post annotated with its author's name and its comment count."""

    id: int
    user_id: str
    user_name: str
    content: str
    comment_count: int

    @classmethod
    def from_post(cls, post: Post, *, user_name: str, comment_count: int) -> "EnrichedPost":
        return cls(
            id=post.id,
            user_id=post.user_id,
            user_name=user_name,
            content=post.content,
            comment_count=int(comment_count),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "userName": self.user_name,
            "content": self.content,
            "commentCount": self.comment_count,
        }


@dataclass(frozen=True)
class RankedUser:
    user_id: str
    user_name: str
    total_comments: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "totalComments": self.total_comments,
        }
