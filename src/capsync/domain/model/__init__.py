"""Public domain model surface."""

from __future__ import annotations

from capsync.domain.model.base import Entity, new_id
from capsync.domain.model.capability import (
    Capability,
    CapabilitySet,
    Endpoint,
    ExtendedCapabilitySet,
)
from capsync.domain.model.enums import CapabilityType, HttpMethod, RelationKind
from capsync.domain.model.relations import (
    Relation,
    RelationKey,
    RoleCapability,
    RoleCapabilitySet,
    UserCapability,
    UserCapabilitySet,
)
from capsync.domain.model.replacements import CapabilityReplacements

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    # capabilities
    "Capability",
    "CapabilitySet",
    "Endpoint",
    "ExtendedCapabilitySet",
    "CapabilityReplacements",
    # relations
    "Relation",
    "RelationKey",
    "RoleCapability",
    "RoleCapabilitySet",
    "UserCapability",
    "UserCapabilitySet",
    # enums
    "CapabilityType",
    "HttpMethod",
    "RelationKind",
]
