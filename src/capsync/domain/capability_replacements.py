"""Carry assignments over from replaced permissions to their successors.

A module descriptor may declare that some of its permissions replace older
ones. :func:`deduce_replacements` records, while the old rows still exist,
which roles and users hold the old capabilities / capability sets and which
sets list an old dummy capability. Once the successors are stored,
:func:`apply_replacements` grants them to the same holders and removes the
old rows together with every link to them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from capsync.domain.events import CapabilityEvent, CapabilitySetEvent, TenantPermissionsChanged
from capsync.domain.model import (
    CapabilityReplacements,
    ExtendedCapabilitySet,
    RoleCapability,
    RoleCapabilitySet,
    UserCapability,
    UserCapabilitySet,
)
from capsync.domain.reconciliation import by_relation_key, merge_in_batch, nothing

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
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


@dataclass(slots=True)
class ReplacementResult:
    assigned: int = 0
    updated_capability_sets: int = 0
    deleted_capabilities: list[Capability] = field(default_factory=list["Capability"])
    deleted_capability_sets: list[CapabilitySet] = field(
        default_factory=list["CapabilitySet"]
    )

    @property
    def changed(self) -> bool:
        return bool(
            self.assigned
            or self.updated_capability_sets
            or self.deleted_capabilities
            or self.deleted_capability_sets
        )


def deduce_replacements(
    new_permissions_by_old: Mapping[str, Iterable[str]],
    *,
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
) -> CapabilityReplacements | None:
    """Snapshot who holds the replaced permissions; ``None`` when nothing is replaced."""

    successors = {
        old: frozenset(new for new in news if new != old)
        for old, news in new_permissions_by_old.items()
        if old
    }
    successors = {old: news for old, news in successors.items() if news}
    if not successors:
        return None

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        found = repositories.capabilities.find_by_permissions(successors, include_dummy=True)
        old_capabilities = [capability for capability in found if not capability.dummy]
        dummy_capabilities = [capability for capability in found if capability.dummy]
        dummy_permissions = {capability.permission for capability in dummy_capabilities}
        old_capability_sets = repositories.capability_sets.find_by_permissions(
            old for old in successors if old not in dummy_permissions
        )

        replacements = CapabilityReplacements(
            new_permissions_by_old=successors,
            roles_by_old_capability=_owners_by_permission(
                old_capabilities, repositories.role_capabilities
            ),
            users_by_old_capability=_owners_by_permission(
                old_capabilities, repositories.user_capabilities
            ),
            roles_by_old_capability_set=_owners_by_permission(
                old_capability_sets, repositories.role_capability_sets
            ),
            users_by_old_capability_set=_owners_by_permission(
                old_capability_sets, repositories.user_capability_sets
            ),
            capability_sets_by_dummy_permission=_sets_by_dummy_permission(
                dummy_capabilities, repositories
            ),
        )
        # committing instead of rolling back keeps the loaded sets readable
        uow.commit()

    log.info("Found capability replacements for %s permission(s)", len(successors))
    return replacements


def _owners_by_permission[TRelation: Relation](
    sources: Iterable[Capability | CapabilitySet],
    store: RelationRepository[TRelation],
) -> dict[str, frozenset[UUID]]:
    owners: dict[str, set[UUID]] = {}
    for source in sources:
        if source.permission is None:
            continue
        holders = owners.setdefault(source.permission, set())
        holders.update(relation.owner_id for relation in store.find_all_by_target(source.id))
    return {permission: frozenset(ids) for permission, ids in owners.items()}


def _sets_by_dummy_permission(
    dummies: Iterable[Capability], repositories: AuthorizationRepositories
) -> dict[str, frozenset[CapabilitySet]]:
    holders: dict[str, set[CapabilitySet]] = {}
    for dummy in dummies:
        if dummy.permission is None:
            continue
        holders.setdefault(dummy.permission, set()).update(
            repositories.capability_sets.find_all_containing_capability(dummy.id)
        )
    return {permission: frozenset(sets) for permission, sets in holders.items()}


def apply_replacements(
    replacements: CapabilityReplacements,
    *,
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
    event_sink: EventSink,
    context_provider: ExecutionContextProvider | None = None,
) -> ReplacementResult:
    """Grant successors to the recorded holders, then drop the replaced rows.

    Runs in one unit of work; deletion events are published after commit.
    """

    result = ReplacementResult()
    now = datetime.now(tz=UTC)

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        for old, news in replacements.replacements_excluding_dummy().items():
            _assign_successors(replacements, old, news, repositories, result, now)
        for old, news in replacements.replacements_only_dummy().items():
            _extend_capability_sets(replacements, old, news, repositories, result)

        stale = repositories.capabilities.find_by_permissions(
            replacements.new_permissions_by_old, include_dummy=True
        )
        for capability in stale:
            unlink_capability(repositories, capability.id)
            repositories.capabilities.delete(capability)
            result.deleted_capabilities.append(capability)

        # a dummy permission never names a capability set
        stale_sets = repositories.capability_sets.find_by_permissions(
            replacements.replacements_excluding_dummy()
        )
        for capability_set in stale_sets:
            unlink_capability_set(repositories, capability_set.id)
            repositories.capability_sets.delete(capability_set)
            result.deleted_capability_sets.append(capability_set)
        uow.commit()

    log.info(
        "Applied capability replacements: assigned=%s, updated sets=%s, "
        "deleted capabilities=%s, deleted sets=%s",
        result.assigned,
        result.updated_capability_sets,
        len(result.deleted_capabilities),
        len(result.deleted_capability_sets),
    )
    if result.changed:
        _publish(result, event_sink, context_provider)
    return result


def _assign_successors(
    replacements: CapabilityReplacements,
    old: str,
    news: frozenset[str],
    repositories: AuthorizationRepositories,
    result: ReplacementResult,
    now: datetime,
) -> None:
    capability_ids = [item.id for item in repositories.capabilities.find_by_permissions(news)]
    set_ids = [item.id for item in repositories.capability_sets.find_by_permissions(news)]
    if not capability_ids and not set_ids:
        log.warning("No successors of '%s' are registered: %s", old, ", ".join(sorted(news)))
        return

    empty: frozenset[UUID] = frozenset()
    roles = replacements.roles_by_old_capability.get(old, empty)
    roles |= replacements.roles_by_old_capability_set.get(old, empty)
    users = replacements.users_by_old_capability.get(old, empty)
    users |= replacements.users_by_old_capability_set.get(old, empty)

    for role_id in sorted(roles):
        result.assigned += _grant(
            repositories.role_capabilities, RoleCapability, role_id, capability_ids, now
        )
        result.assigned += _grant(
            repositories.role_capability_sets, RoleCapabilitySet, role_id, set_ids, now
        )
    for user_id in sorted(users):
        result.assigned += _grant(
            repositories.user_capabilities, UserCapability, user_id, capability_ids, now
        )
        result.assigned += _grant(
            repositories.user_capability_sets, UserCapabilitySet, user_id, set_ids, now
        )
    if roles or users:
        log.info(
            "Granted successors of '%s' to %s role(s) and %s user(s)", old, len(roles), len(users)
        )


def _grant[TRelation: Relation](
    store: RelationRepository[TRelation],
    factory: Callable[..., TRelation],
    owner_id: UUID,
    target_ids: list[UUID],
    now: datetime,
) -> int:
    """Add the missing ``owner_id`` -> ``target_ids`` relations; existing ones are kept."""

    if not target_ids:
        return 0
    wanted = set(target_ids)
    desired = [
        factory(owner_id=owner_id, target_id=target_id, created_at=now) for target_id in target_ids
    ]
    stored = [
        relation for relation in store.find_all_by_owner(owner_id) if relation.target_id in wanted
    ]
    merged = merge_in_batch(
        desired,
        stored,
        by_relation_key,
        add_all=store.save_all,
        update_all=nothing,
        delete_all=nothing,
    )
    return len(merged.added)


def _extend_capability_sets(
    replacements: CapabilityReplacements,
    old: str,
    news: frozenset[str],
    repositories: AuthorizationRepositories,
    result: ReplacementResult,
) -> None:
    capability_ids = [item.id for item in repositories.capabilities.find_by_permissions(news)]
    holders = replacements.capability_sets_by_dummy_permission.get(old, frozenset())
    if not capability_ids or not holders:
        return
    # re-read inside this unit of work
    for capability_set in repositories.capability_sets.find_by_ids(item.id for item in holders):
        missing = [cid for cid in capability_ids if not capability_set.contains_capability(cid)]
        if not missing:
            continue
        capability_set.capability_ids = [*capability_set.capability_ids, *missing]
        repositories.capability_sets.save(capability_set)
        result.updated_capability_sets += 1


def unlink_capability(repositories: AuthorizationRepositories, capability_id: UUID) -> int:
    """Remove every assignment of ``capability_id`` and drop it from capability sets."""

    removed = 0
    for store in (repositories.role_capabilities, repositories.user_capabilities):
        relations = store.find_all_by_target(capability_id)
        store.delete_all(relations)
        removed += len(relations)
    sets = repositories.capability_sets
    for capability_set in sets.find_all_containing_capability(capability_id):
        capability_set.capability_ids = [
            cid for cid in capability_set.capability_ids if cid != capability_id
        ]
        sets.save(capability_set)
    return removed


def unlink_capability_set(
    repositories: AuthorizationRepositories, capability_set_id: UUID
) -> int:
    removed = 0
    for store in (repositories.role_capability_sets, repositories.user_capability_sets):
        relations = store.find_all_by_target(capability_set_id)
        store.delete_all(relations)
        removed += len(relations)
    return removed


def _publish(
    result: ReplacementResult,
    event_sink: EventSink,
    context_provider: ExecutionContextProvider | None,
) -> None:
    context = context_provider.current() if context_provider is not None else None
    for capability in result.deleted_capabilities:
        event_sink.publish(CapabilityEvent.deleted(capability).with_context(context))
    for capability_set in result.deleted_capability_sets:
        event = CapabilitySetEvent.deleted(ExtendedCapabilitySet(capability_set))
        event_sink.publish(event.with_context(context))
    event_sink.publish(TenantPermissionsChanged())
