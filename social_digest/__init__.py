from __future__ import annotations

from .aggregation import AggregationEngine
from .cache import CacheEntry, ResourceCache
from .config import load_config, resolve_runtime_secrets
from .config_schema import AppConfig
from .errors import ConfigError, InvalidModeError, UpstreamUnavailable
from .loader import ResourceLoader
from .service import QueryService, build_service
from .upstream import SocialGraphClient

__all__ = [
    "AggregationEngine",
    "AppConfig",
    "CacheEntry",
    "ConfigError",
    "InvalidModeError",
    "QueryService",
    "ResourceCache",
    "ResourceLoader",
    "SocialGraphClient",
    "UpstreamUnavailable",
    "build_service",
    "load_config",
    "resolve_runtime_secrets",
]
