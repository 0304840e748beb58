"""Ports (interfaces) the domain depends on."""

from __future__ import annotations

from capsync.domain.ports.cache import PermissionCache
from capsync.domain.ports.events import EventSink, EventSubscriber, ExecutionContextProvider
from capsync.domain.ports.persistence import (
    CapabilityRepository,
    CapabilitySetRepository,
    RelationRepository,
)
from capsync.domain.ports.unit_of_work import (
    AuthorizationRepositories,
    AuthorizationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AuthorizationRepositories",
    "AuthorizationUnitOfWork",
    "CapabilityRepository",
    "CapabilitySetRepository",
    "EventSink",
    "EventSubscriber",
    "ExecutionContextProvider",
    "PermissionCache",
    "RelationRepository",
    "RepositoryCollection",
    "UnitOfWork",
]
