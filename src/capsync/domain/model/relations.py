"""Owner -> target assignments (role/user to capability/capability set).

Every relation is identified by its :class:`RelationKey`. The key is both the
persistence primary key and the sort key used by the reconciliation engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from capsync.domain.model.enums import RelationKind

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(frozen=True, order=True, slots=True)
class RelationKey:
    owner_id: UUID
    target_id: UUID


@dataclass(eq=False, kw_only=True)
class Relation:
    owner_id: UUID
    target_id: UUID
    created_at: datetime | None = None

    # class-level discriminator; subclasses must override
    KIND: ClassVar[RelationKind]

    @property
    def kind(self) -> RelationKind:
        return self.KIND

    @property
    def key(self) -> RelationKey:
        return RelationKey(self.owner_id, self.target_id)

    def retarget(self, target_id: UUID) -> None:
        """Point this assignment at another capability / capability set."""
        self.target_id = target_id


@dataclass(eq=False, kw_only=True)
class RoleCapability(Relation):
    KIND: ClassVar[RelationKind] = RelationKind.ROLE_CAPABILITY

    @property
    def role_id(self) -> UUID:
        return self.owner_id

    @property
    def capability_id(self) -> UUID:
        return self.target_id


@dataclass(eq=False, kw_only=True)
class UserCapability(Relation):
    KIND: ClassVar[RelationKind] = RelationKind.USER_CAPABILITY

    @property
    def user_id(self) -> UUID:
        return self.owner_id

    @property
    def capability_id(self) -> UUID:
        return self.target_id


@dataclass(eq=False, kw_only=True)
class RoleCapabilitySet(Relation):
    KIND: ClassVar[RelationKind] = RelationKind.ROLE_CAPABILITY_SET

    @property
    def role_id(self) -> UUID:
        return self.owner_id

    @property
    def capability_set_id(self) -> UUID:
        return self.target_id


@dataclass(eq=False, kw_only=True)
class UserCapabilitySet(Relation):
    KIND: ClassVar[RelationKind] = RelationKind.USER_CAPABILITY_SET

    @property
    def user_id(self) -> UUID:
        return self.owner_id

    @property
    def capability_set_id(self) -> UUID:
        return self.target_id
