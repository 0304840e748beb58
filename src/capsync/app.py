"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from capsync.adapters.cache import InMemoryPermissionCache
from capsync.adapters.descriptors import (
    capabilities_from_descriptor,
    load_descriptor,
    replacements_from_descriptor,
)
from capsync.adapters.events import InProcessEventBus
from capsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAuthorizationUnitOfWork,
    is_started,
    startup,
)
from capsync.config import get_cache_config
from capsync.domain.cache_eviction import UserPermissionsCacheEvictor, register_cache_eviction
from capsync.domain.capability_migration import DuplicateCapabilityMigration, MigrationReport
from capsync.domain.capability_replacements import apply_replacements, deduce_replacements
from capsync.domain.capability_sync import CapabilitySyncResult, sync_application_capabilities
from capsync.domain.execution_context import ContextVarExecutionContextProvider
from capsync.domain.ports import AuthorizationUnitOfWork

if TYPE_CHECKING:
    from pathlib import Path

    from capsync.domain.ports import EventSink, ExecutionContextProvider, PermissionCache

UnitOfWorkFactory = Callable[[], AuthorizationUnitOfWork]


log = getLogger(__name__)


def build_event_bus(
    *,
    cache: PermissionCache | None = None,
    context_provider: ExecutionContextProvider | None = None,
) -> InProcessEventBus:
    """Create an event bus with the user-permission cache evictor subscribed."""

    bus = InProcessEventBus()
    evictor = UserPermissionsCacheEvictor(
        cache or InMemoryPermissionCache.from_config(get_cache_config()),
        context_provider or ContextVarExecutionContextProvider(),
    )
    register_cache_eviction(bus, evictor)
    return bus


def _default_unit_of_work_factory() -> UnitOfWorkFactory:
    if not is_started():
        startup()
    return SqlAlchemyAuthorizationUnitOfWork


def migrate_duplicate_capability(
    old_name: str,
    new_name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    event_sink: EventSink | None = None,
    context_provider: ExecutionContextProvider | None = None,
) -> MigrationReport:
    """Collapse capability ``old_name`` into ``new_name`` using the configured adapters."""

    effective_provider = context_provider or ContextVarExecutionContextProvider()
    migration = DuplicateCapabilityMigration(
        unit_of_work_factory or _default_unit_of_work_factory(),
        event_sink or build_event_bus(context_provider=effective_provider),
        effective_provider,
    )
    log.info("Starting duplicate capability migration: %s -> %s", old_name, new_name)
    report = migration.run(old_name, new_name)
    log.info("Finished duplicate capability migration: status=%s", report.status)
    return report


def sync_capabilities_from_file(
    path: Path,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    event_sink: EventSink | None = None,
    context_provider: ExecutionContextProvider | None = None,
) -> CapabilitySyncResult:
    """Register the capabilities described by a module descriptor file.

    Holders of permissions the descriptor marks as replaced are granted the
    successors once they are stored; the replaced rows are removed.
    """

    descriptor = load_descriptor(path)
    capabilities = capabilities_from_descriptor(descriptor)
    effective_provider = context_provider or ContextVarExecutionContextProvider()
    effective_factory = unit_of_work_factory or _default_unit_of_work_factory()
    effective_sink = event_sink or build_event_bus(context_provider=effective_provider)

    # holders must be read before the sync drops replaced rows of this application
    replacements = deduce_replacements(
        replacements_from_descriptor(descriptor), unit_of_work_factory=effective_factory
    )
    log.info(
        "Syncing %s capabilities of application %s (module %s)",
        len(capabilities),
        descriptor.application_id,
        descriptor.module_id,
    )
    result = sync_application_capabilities(
        application_id=descriptor.application_id,
        capabilities=capabilities,
        unit_of_work_factory=effective_factory,
        event_sink=effective_sink,
        context_provider=effective_provider,
    )
    if replacements is not None:
        apply_replacements(
            replacements,
            unit_of_work_factory=effective_factory,
            event_sink=effective_sink,
            context_provider=effective_provider,
        )
    return result
