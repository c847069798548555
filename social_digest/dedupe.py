from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, TypeVar

from .models import EnrichedPost, Post

P = TypeVar("P", Post, EnrichedPost)


def dedupe_key(post: Post | EnrichedPost) -> str:
    return f"id:{post.id}"


@dataclass
class SeenKeys:
    keys: set[str] = field(default_factory=set)

    def has_post(self, post: Post | EnrichedPost) -> bool:
        return dedupe_key(post) in self.keys

    def add_post(self, post: Post | EnrichedPost) -> str:
        key = dedupe_key(post)
        self.keys.add(key)
        return key


def unique_posts(posts: Iterable[P]) -> list[P]:
    """Drop repeated post ids, keeping the first occurrence and the input order."""
    seen = SeenKeys()
    out: list[P] = []
    for post in posts:
        if seen.has_post(post):
            continue
        seen.add_post(post)
        out.append(post)
    return out
