"""Thread-safe in-memory cache of resolved user permissions."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from capsync.config import CacheConfig

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    permissions: frozenset[str]
    expires_at: float


class InMemoryPermissionCache:
    """LRU cache with a per-entry TTL.

    Keys follow the ``"<tenant>:<user>"`` format so a whole tenant can be
    dropped with :meth:`evict_prefix`.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 300,
        max_size: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("TTL must be positive")
        if max_size <= 0:
            raise ValueError("Max size must be positive")
        self._ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: CacheConfig) -> InMemoryPermissionCache:
        return cls(ttl_seconds=config.ttl_seconds, max_size=config.max_size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> frozenset[str] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.permissions

    def put(self, key: str, permissions: frozenset[str]) -> None:
        with self._lock:
            self._entries[key] = _Entry(frozenset(permissions), self._clock() + self._ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                log.debug("Cache full, dropped least recently used entry %s", evicted)

    def evict(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def evict_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


if TYPE_CHECKING:
    from capsync.domain.ports import PermissionCache

    _cache_check: PermissionCache = InMemoryPermissionCache()
