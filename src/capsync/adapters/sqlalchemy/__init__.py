"""SQLAlchemy adapter package for capsync."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCapabilityRepository,
    SqlAlchemyCapabilitySetRepository,
    SqlAlchemyRelationRepository,
    SqlAlchemyRoleCapabilityRepository,
    SqlAlchemyRoleCapabilitySetRepository,
    SqlAlchemyUserCapabilityRepository,
    SqlAlchemyUserCapabilitySetRepository,
)
from .unit_of_work import SqlAlchemyAuthorizationUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyAuthorizationUnitOfWork",
    "SqlAlchemyCapabilityRepository",
    "SqlAlchemyCapabilitySetRepository",
    "SqlAlchemyRelationRepository",
    "SqlAlchemyRoleCapabilityRepository",
    "SqlAlchemyRoleCapabilitySetRepository",
    "SqlAlchemyUserCapabilityRepository",
    "SqlAlchemyUserCapabilitySetRepository",
    "StartupError",
    "mapper_registry",
    "start_mappers",
    "shutdown",
    "startup",
]
