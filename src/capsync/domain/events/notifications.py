"""Coarse notifications telling caches which permission data went stale."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class TenantPermissionsChanged:
    """Permissions of potentially every user in the current tenant changed."""


@dataclass(frozen=True, slots=True)
class UserPermissionsChanged:
    user_id: UUID

    def __post_init__(self) -> None:
        if self.user_id is None:
            raise ValueError("User id must not be null")
