"""User-permission cache settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import positive_int_env

DEFAULT_CACHE_TTL_SECONDS: Final[int] = 300
DEFAULT_CACHE_MAX_SIZE: Final[int] = 10_000


@dataclass(frozen=True, slots=True)
class CacheConfig:
    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    max_size: int = DEFAULT_CACHE_MAX_SIZE


def get_cache_config() -> CacheConfig:
    return CacheConfig(
        ttl_seconds=positive_int_env("CAPSYNC_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
        max_size=positive_int_env("CAPSYNC_CACHE_MAX_SIZE", DEFAULT_CACHE_MAX_SIZE),
    )
