"""Collapse a duplicate capability (or capability set) into its successor.

Older module versions registered some permissions under a name that was later
replaced. The migration moves every assignment from the OLD entity to the NEW
one, removes the OLD row and announces the removal. It is safe to re-run: once
OLD is gone the migration reports ``ALREADY_APPLIED`` and touches nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from capsync.domain.events import CapabilityEvent, CapabilitySetEvent, TenantPermissionsChanged
from capsync.domain.model import ExtendedCapabilitySet, RelationKind

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from capsync.domain.execution_context import ExecutionContextProvider
    from capsync.domain.model import Capability, CapabilitySet, Relation
    from capsync.domain.ports import (
        AuthorizationRepositories,
        AuthorizationUnitOfWork,
        EventSink,
        RelationRepository,
    )

log = logging.getLogger(__name__)


class MigrationStatus(StrEnum):
    ALREADY_APPLIED = "already_applied"
    MISSING_TARGET = "missing_target"
    COMPLETED = "completed"


@dataclass(slots=True)
class RelationMigrationCount:
    kind: RelationKind
    migrated: int = 0
    deleted: int = 0


@dataclass(slots=True)
class MigrationReport:
    old_name: str
    new_name: str
    status: MigrationStatus
    relations: list[RelationMigrationCount] = field(
        default_factory=list["RelationMigrationCount"]
    )
    updated_capability_sets: int = 0
    deleted_capability: bool = False
    deleted_capability_set: bool = False
    published_events: list[object] = field(default_factory=list["object"])

    def count_for(self, kind: RelationKind) -> RelationMigrationCount:
        for count in self.relations:
            if count.kind is kind:
                return count
        return RelationMigrationCount(kind=kind)


@dataclass(slots=True)
class _Pair[T]:
    old: T | None
    new: T | None

    @property
    def missing_target(self) -> bool:
        return self.old is not None and self.new is None


class DuplicateCapabilityMigration:
    """Migrate assignments from a duplicated capability / set onto its successor."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
        event_sink: EventSink,
        context_provider: ExecutionContextProvider | None = None,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._event_sink = event_sink
        self._context_provider = context_provider

    def run(self, old_name: str, new_name: str) -> MigrationReport:
        if not old_name or not old_name.strip():
            raise ValueError("Old capability name must not be blank")
        if not new_name or not new_name.strip():
            raise ValueError("New capability name must not be blank")
        old_name = old_name.strip()
        new_name = new_name.strip()
        if old_name == new_name:
            raise ValueError(f"Capability '{old_name}' cannot be migrated onto itself")

        pending_events: list[object] = []
        with self._unit_of_work_factory() as uow:
            repositories = uow.repositories
            capabilities = _Pair(
                repositories.capabilities.find_by_name(old_name),
                repositories.capabilities.find_by_name(new_name),
            )
            capability_sets = _Pair(
                repositories.capability_sets.find_by_name(old_name),
                repositories.capability_sets.find_by_name(new_name),
            )

            if capabilities.old is None and capability_sets.old is None:
                log.info(
                    "Capability '%s' not found, migration to '%s' already applied",
                    old_name,
                    new_name,
                )
                return MigrationReport(old_name, new_name, MigrationStatus.ALREADY_APPLIED)

            if capabilities.missing_target or capability_sets.missing_target:
                log.warning(
                    "Capability '%s' exists but replacement '%s' was not found, skipping migration",
                    old_name,
                    new_name,
                )
                return MigrationReport(old_name, new_name, MigrationStatus.MISSING_TARGET)

            report = MigrationReport(old_name, new_name, MigrationStatus.COMPLETED)

            # resolve children before any capability row disappears
            deleted_set: ExtendedCapabilitySet | None = None
            if capability_sets.old is not None:
                deleted_set = ExtendedCapabilitySet(
                    capability_sets.old,
                    tuple(
                        repositories.capabilities.find_by_ids(
                            capability_sets.old.capability_ids, include_dummy=True
                        )
                    ),
                )

            if capabilities.old is not None and capabilities.new is not None:
                self._migrate_capability(
                    repositories,
                    capabilities.old,
                    capabilities.new,
                    skip_set=capability_sets.old,
                    report=report,
                )
                pending_events.append(CapabilityEvent.deleted(capabilities.old))

            if deleted_set is not None and capability_sets.new is not None:
                self._migrate_capability_set(
                    repositories, deleted_set.capability_set, capability_sets.new, report=report
                )
                pending_events.append(CapabilitySetEvent.deleted(deleted_set))

            uow.commit()

        pending_events.append(TenantPermissionsChanged())
        self._publish(pending_events, report)
        log.info(
            "Migrated capability '%s' to '%s': %s",
            old_name,
            new_name,
            ", ".join(
                f"{count.kind}: migrated={count.migrated}, deleted={count.deleted}"
                for count in report.relations
            ),
        )
        return report

    def _migrate_capability(
        self,
        repositories: AuthorizationRepositories,
        old: Capability,
        new: Capability,
        *,
        skip_set: CapabilitySet | None,
        report: MigrationReport,
    ) -> None:
        report.relations.append(
            _migrate_relations(
                repositories.role_capabilities, RelationKind.ROLE_CAPABILITY, old.id, new.id
            )
        )
        report.relations.append(
            _migrate_relations(
                repositories.user_capabilities, RelationKind.USER_CAPABILITY, old.id, new.id
            )
        )

        for capability_set in repositories.capability_sets.find_all_containing_capability(old.id):
            if skip_set is not None and capability_set.id == skip_set.id:
                continue
            if capability_set.replace_capability(old.id, new.id):
                repositories.capability_sets.save(capability_set)
                report.updated_capability_sets += 1

        repositories.capabilities.delete(old)
        report.deleted_capability = True
        log.debug("Deleted capability '%s' (%s)", old.name, old.id)

    def _migrate_capability_set(
        self,
        repositories: AuthorizationRepositories,
        old: CapabilitySet,
        new: CapabilitySet,
        *,
        report: MigrationReport,
    ) -> None:
        report.relations.append(
            _migrate_relations(
                repositories.role_capability_sets,
                RelationKind.ROLE_CAPABILITY_SET,
                old.id,
                new.id,
            )
        )
        report.relations.append(
            _migrate_relations(
                repositories.user_capability_sets,
                RelationKind.USER_CAPABILITY_SET,
                old.id,
                new.id,
            )
        )
        repositories.capability_sets.delete(old)
        report.deleted_capability_set = True
        log.debug("Deleted capability set '%s' (%s)", old.name, old.id)

    def _publish(self, events: list[object], report: MigrationReport) -> None:
        context = self._context_provider.current() if self._context_provider else None
        for event in events:
            if isinstance(event, (CapabilityEvent, CapabilitySetEvent)):
                event = event.with_context(context)  # noqa: PLW2901
            self._event_sink.publish(event)
            report.published_events.append(event)


def _migrate_relations[TRelation: Relation](
    store: RelationRepository[TRelation],
    kind: RelationKind,
    old_id: UUID,
    new_id: UUID,
) -> RelationMigrationCount:
    """Repoint every relation targeting ``old_id``; drop those that would collide."""

    count = RelationMigrationCount(kind=kind)
    for relation in store.find_all_by_target(old_id):
        if store.exists_by_owner_and_target(relation.owner_id, new_id):
            store.delete(relation)
            count.deleted += 1
        else:
            relation.retarget(new_id)
            store.save(relation)
            count.migrated += 1
    if count.migrated or count.deleted:
        log.info(
            "%s relations: migrated=%s, deleted=%s", kind, count.migrated, count.deleted
        )
    return count
