"""Port for the per-tenant user permission cache."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PermissionCache(Protocol):
    """Cache of resolved permission names keyed ``"<tenant>:<user>"``."""

    def get(self, key: str) -> frozenset[str] | None: ...

    def put(self, key: str, permissions: frozenset[str]) -> None: ...

    def evict(self, key: str) -> bool: ...

    def evict_prefix(self, prefix: str) -> int: ...
