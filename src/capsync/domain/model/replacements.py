"""Permission replacement bookkeeping for capability upgrades."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from capsync.domain.model.capability import CapabilitySet


@dataclass(frozen=True, slots=True)
class CapabilityReplacements:
    """Old permission names mapped to their successors plus affected assignments.

    Keys of ``capability_sets_by_dummy_permission`` are permissions that only
    ever existed as dummy capabilities; they are not real replacements.
    """

    new_permissions_by_old: dict[str, frozenset[str]] = field(
        default_factory=dict["str", "frozenset[str]"]
    )
    roles_by_old_capability: dict[str, frozenset[UUID]] = field(
        default_factory=dict["str", "frozenset[UUID]"]
    )
    users_by_old_capability: dict[str, frozenset[UUID]] = field(
        default_factory=dict["str", "frozenset[UUID]"]
    )
    roles_by_old_capability_set: dict[str, frozenset[UUID]] = field(
        default_factory=dict["str", "frozenset[UUID]"]
    )
    users_by_old_capability_set: dict[str, frozenset[UUID]] = field(
        default_factory=dict["str", "frozenset[UUID]"]
    )
    capability_sets_by_dummy_permission: dict[str, frozenset[CapabilitySet]] = field(
        default_factory=dict["str", "frozenset[CapabilitySet]"]
    )

    def replacements_excluding_dummy(self) -> dict[str, frozenset[str]]:
        dummies = self.capability_sets_by_dummy_permission
        return {
            old: new for old, new in self.new_permissions_by_old.items() if old not in dummies
        }

    def replacements_only_dummy(self) -> dict[str, frozenset[str]]:
        dummies = self.capability_sets_by_dummy_permission
        return {old: new for old, new in self.new_permissions_by_old.items() if old in dummies}
