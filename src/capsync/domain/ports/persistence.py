"""Ports for persisting capabilities, capability sets and their assignments."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from capsync.domain.model import Capability, CapabilitySet, Relation

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID


@runtime_checkable
class RelationRepository[TRelation: Relation](Protocol):
    """Store of owner -> target assignments of one relation kind."""

    def find_all_by_owner(self, owner_id: UUID) -> list[TRelation]: ...

    def find_all_by_target(self, target_id: UUID) -> list[TRelation]: ...

    def exists_by_owner_and_target(self, owner_id: UUID, target_id: UUID) -> bool: ...

    def save(self, relation: TRelation) -> None: ...

    def save_all(self, relations: Iterable[TRelation]) -> None: ...

    def delete(self, relation: TRelation) -> None: ...

    def delete_all(self, relations: Iterable[TRelation]) -> None: ...


@runtime_checkable
class CapabilityRepository(Protocol):
    def find_by_name(self, name: str) -> Capability | None: ...

    def find_all_by_application(self, application_id: str) -> list[Capability]: ...

    def find_by_ids(
        self, ids: Iterable[UUID], *, include_dummy: bool = False
    ) -> list[Capability]: ...

    def find_by_permissions(
        self, permissions: Iterable[str], *, include_dummy: bool = False
    ) -> list[Capability]: ...

    def save(self, capability: Capability) -> None: ...

    def delete(self, capability: Capability) -> None: ...


@runtime_checkable
class CapabilitySetRepository(Protocol):
    def find_by_name(self, name: str) -> CapabilitySet | None: ...

    def find_all_containing_capability(self, capability_id: UUID) -> list[CapabilitySet]: ...

    def find_by_ids(self, ids: Iterable[UUID]) -> list[CapabilitySet]: ...

    def find_by_permissions(self, permissions: Iterable[str]) -> list[CapabilitySet]: ...

    def save(self, capability_set: CapabilitySet) -> None: ...

    def delete(self, capability_set: CapabilitySet) -> None: ...
