from __future__ import annotations

from typing import Any, Mapping

from .errors import UpstreamUnavailable
from .models import Comment, Post


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _first(item: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def _unwrap(payload: Any, envelope: str) -> Any:
    if isinstance(payload, Mapping) and envelope in payload:
        return payload[envelope]
    return payload


def users_from_payload(payload: Any, *, endpoint: str = "/users") -> dict[str, str]:
    """
    Parse the user listing into an ordered mapping of user id -> user name.

    Accepts `{"users": {id: name}}`, a bare `{id: name}` mapping, or a list
    of `{"id", "name"}` objects. Upstream order is preserved.
    """
    body = _unwrap(payload, "users")

    out: dict[str, str] = {}
    if isinstance(body, Mapping):
        for raw_id, raw_name in body.items():
            user_id = _coerce_id(raw_id)
            if user_id is None or user_id in out:
                continue
            out[user_id] = _coerce_str(raw_name) or ""
        return out

    if isinstance(body, list):
        for item in body:
            if not isinstance(item, Mapping):
                continue
            user_id = _coerce_id(item.get("id"))
            if user_id is None or user_id in out:
                continue
            out[user_id] = _coerce_str(_first(item, "name", "userName", "username")) or ""
        return out

    raise UpstreamUnavailable(
        f"Unexpected payload shape from {endpoint}: {type(payload).__name__}",
        endpoint=endpoint,
    )


def _require_list(payload: Any, envelope: str, *, endpoint: str) -> list[Any]:
    body = _unwrap(payload, envelope)
    if not isinstance(body, list):
        raise UpstreamUnavailable(
            f"Unexpected payload shape from {endpoint}: expected a list of {envelope}",
            endpoint=endpoint,
        )
    return body


def post_from_item(item: Mapping[str, Any], *, default_user_id: str | None = None) -> Post | None:
    post_id = _coerce_int(item.get("id"))
    if post_id is None:
        return None

    user_id = _coerce_id(_first(item, "userId", "userid", "user_id")) or default_user_id
    if user_id is None:
        return None

    return Post(
        id=post_id,
        user_id=user_id,
        content=_coerce_str(_first(item, "content", "text", "body")) or "",
    )


def posts_from_payload(
    payload: Any,
    *,
    user_id: str | None = None,
    endpoint: str = "/users/{id}/posts",
) -> tuple[Post, ...]:
    """
    Parse one user's posts. Items without a usable integer id are dropped.

    When an item omits its author, the requested `user_id` is assumed.
    """
    out: list[Post] = []
    for item in _require_list(payload, "posts", endpoint=endpoint):
        if not isinstance(item, Mapping):
            continue
        post = post_from_item(item, default_user_id=user_id)
        if post is not None:
            out.append(post)
    return tuple(out)


def comments_from_payload(
    payload: Any,
    *,
    post_id: int | None = None,
    endpoint: str = "/posts/{id}/comments",
) -> tuple[Comment, ...]:
    out: list[Comment] = []
    for item in _require_list(payload, "comments", endpoint=endpoint):
        if not isinstance(item, Mapping):
            continue
        comment_id = _coerce_int(item.get("id"))
        if comment_id is None:
            continue
        parent = _coerce_int(_first(item, "postId", "postid", "post_id"))
        if parent is None:
            parent = post_id
        if parent is None:
            continue
        out.append(
            Comment(
                id=comment_id,
                post_id=parent,
                content=_coerce_str(_first(item, "content", "text", "body")) or "",
            )
        )
    return tuple(out)
