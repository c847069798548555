from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class UpstreamUnavailable(RuntimeError):
    """Raised when a call to the upstream social-graph API fails or times out."""

    def __init__(self, message: str, *, endpoint: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status = status


class InvalidModeError(ValueError):
    """Raised when posts are requested with an unsupported mode."""

    def __init__(self, mode: object) -> None:
        super().__init__(f'Invalid type parameter {mode!r}. Use "popular" or "latest".')
        self.mode = mode
