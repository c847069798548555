from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

CACHE_KINDS = (
    "users",
    "posts",
    "comments",
    "all_posts_with_comments",
    "top_users",
    "top_posts",
    "latest_posts",
)


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]
PositiveFloat = Annotated[float, Field(gt=0)]
NonNegativeFloat = Annotated[float, Field(ge=0)]


class UpstreamConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = "http://20.244.56.144/evaluation-service"
    timeout_seconds: PositiveFloat = 10.0
    token_env: str | None = None

    max_attempts: PositiveInt = 3
    base_delay_seconds: NonNegativeFloat = 0.5
    max_delay_seconds: NonNegativeFloat = 5.0
    jitter_ratio: float = Field(0.25, ge=0.0, le=1.0)

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return url

    @field_validator("token_env")
    @classmethod
    def _token_env_must_be_valid(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _validate_env_var_name(v)

    @model_validator(mode="after")
    def _delays_must_be_ordered(self) -> "UpstreamConfig":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    default_ttl_seconds: PositiveFloat = 60.0
    ttl_overrides: dict[str, PositiveFloat] = Field(default_factory=dict)
    max_entries: PositiveInt = 10000

    @field_validator("ttl_overrides")
    @classmethod
    def _overrides_must_name_known_kinds(cls, v: dict[str, float]) -> dict[str, float]:
        unknown = sorted(k for k in v if k not in CACHE_KINDS)
        if unknown:
            raise ValueError(f"unknown cache kinds: {', '.join(unknown)}")
        return v


class ViewsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    top_users_limit: PositiveInt = 5
    latest_posts_limit: PositiveInt = 5


class FanoutConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_concurrency: NonNegativeInt = 0  # 0 disables the bound


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    views: ViewsConfig = Field(default_factory=ViewsConfig)
    fanout: FanoutConfig = Field(default_factory=FanoutConfig)
