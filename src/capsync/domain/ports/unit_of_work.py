"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from capsync.domain.model import (
        RoleCapability,
        RoleCapabilitySet,
        UserCapability,
        UserCapabilitySet,
    )
    from capsync.domain.ports.persistence import (
        CapabilityRepository,
        CapabilitySetRepository,
        RelationRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class AuthorizationRepositories(RepositoryCollection):
    """Repositories holding capabilities, capability sets and their assignments."""

    capabilities: CapabilityRepository
    capability_sets: CapabilitySetRepository
    role_capabilities: RelationRepository[RoleCapability]
    user_capabilities: RelationRepository[UserCapability]
    role_capability_sets: RelationRepository[RoleCapabilitySet]
    user_capability_sets: RelationRepository[UserCapabilitySet]


type AuthorizationUnitOfWork = UnitOfWork[AuthorizationRepositories]
