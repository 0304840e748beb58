"""Capabilities and capability sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from capsync.domain.model.base import Entity

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from capsync.domain.capability_actions import CapabilityAction
    from capsync.domain.model.enums import CapabilityType, HttpMethod


@dataclass(frozen=True, slots=True)
class Endpoint:
    path: str
    method: HttpMethod


@dataclass(eq=False, kw_only=True)
class Capability(Entity):
    """A single fine-grained permission unit (resource + action).

    ``dummy`` marks placeholders created when a referenced capability is not
    registered yet; they are replaced once the real descriptor arrives.
    """

    name: str
    resource: str
    application_id: str
    action: CapabilityAction | None = None
    type: CapabilityType | None = None
    permission: str | None = None
    description: str | None = None
    endpoints: list[Endpoint] = field(default_factory=list["Endpoint"])
    dummy: bool = False
    updated_at: datetime | None = None

    def same_content(self, other: Capability) -> bool:
        return (
            self.name == other.name
            and self.resource == other.resource
            and self.application_id == other.application_id
            and self.action == other.action
            and self.type == other.type
            and self.permission == other.permission
            and self.description == other.description
            and list(self.endpoints) == list(other.endpoints)
            and self.dummy == other.dummy
        )

    def copy_content_from(self, other: Capability) -> None:
        """Overwrite descriptive fields with ``other``'s, keeping this row's identity."""

        self.name = other.name
        self.resource = other.resource
        self.application_id = other.application_id
        self.action = other.action
        self.type = other.type
        self.permission = other.permission
        self.description = other.description
        self.endpoints = list(other.endpoints)
        self.dummy = other.dummy


@dataclass(eq=False, kw_only=True)
class CapabilitySet(Entity):
    """A named aggregate of capabilities (ordered by id list)."""

    name: str
    resource: str
    application_id: str
    action: CapabilityAction | None = None
    type: CapabilityType | None = None
    permission: str | None = None
    description: str | None = None
    capability_ids: list[UUID] = field(default_factory=list["UUID"])

    def contains_capability(self, capability_id: UUID) -> bool:
        return capability_id in self.capability_ids

    def replace_capability(self, old_id: UUID, new_id: UUID) -> bool:
        """Point the set at ``new_id`` instead of ``old_id``.

        Returns ``False`` when ``old_id`` is not listed. If ``new_id`` is already
        listed the old entry is dropped so ids stay unique.
        """

        if old_id not in self.capability_ids:
            return False
        if new_id in self.capability_ids:
            self.capability_ids = [cid for cid in self.capability_ids if cid != old_id]
        else:
            self.capability_ids = [new_id if cid == old_id else cid for cid in self.capability_ids]
        return True


@dataclass(frozen=True, slots=True)
class ExtendedCapabilitySet:
    """Capability set together with its resolved capabilities.

    Published on set deletion so listeners still see the children after the set
    row (and possibly some capabilities) are gone.
    """

    capability_set: CapabilitySet
    capabilities: tuple[Capability, ...] = ()

    @property
    def name(self) -> str:
        return self.capability_set.name
