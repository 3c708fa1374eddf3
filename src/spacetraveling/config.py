from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_PAGE_SIZE = 4
DEFAULT_FETCH_TIMEOUT = 10.0
DOCUMENT_TYPE = "posts"
LISTING_FIELDS = ("posts.title", "posts.subtitle", "posts.author")


class ConfigError(Exception):
    """Missing or malformed setting."""


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings.

    Env vars
    - PRISMIC_API_ENDPOINT API root of the repository (required)
    - PRISMIC_ACCESS_TOKEN token for private repositories
    - SPACETRAVELING_PAGE_SIZE posts per listing page, 4 by default
    - SPACETRAVELING_FETCH_TIMEOUT seconds per request, 10 by default
    - SPACETRAVELING_LOG_LEVEL logging level, INFO by default
    """
    api_endpoint: str
    access_token: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        endpoint = (os.getenv("PRISMIC_API_ENDPOINT") or "").strip()
        if not endpoint:
            raise ConfigError("PRISMIC_API_ENDPOINT is not set")
        return cls(
            api_endpoint=endpoint,
            access_token=os.getenv("PRISMIC_ACCESS_TOKEN") or None,
            page_size=_env_number("SPACETRAVELING_PAGE_SIZE", DEFAULT_PAGE_SIZE, int),
            fetch_timeout=_env_number("SPACETRAVELING_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT, float),
            log_level=os.getenv("SPACETRAVELING_LOG_LEVEL", "INFO").upper(),
        )

    def with_overrides(self, **kwargs) -> "Settings":
        """Return a copy with the given fields replaced, ignoring None values."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})
