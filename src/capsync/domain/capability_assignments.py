"""Replace the capabilities / capability sets assigned to one role or user."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from capsync.domain.events import TenantPermissionsChanged, UserPermissionsChanged
from capsync.domain.model import (
    RoleCapability,
    RoleCapabilitySet,
    UserCapability,
    UserCapabilitySet,
)
from capsync.domain.reconciliation import by_relation_key, merge_in_batch, nothing

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from uuid import UUID

    from capsync.domain.model import Entity, Relation
    from capsync.domain.ports import (
        AuthorizationRepositories,
        AuthorizationUnitOfWork,
        EventSink,
        RelationRepository,
    )
    from capsync.domain.reconciliation import MergeResult

log = logging.getLogger(__name__)


class AssignmentTargetNotFoundError(LookupError):
    """Some of the ids to assign do not exist."""

    def __init__(self, target: str, missing: Iterable[UUID]) -> None:
        self.missing = tuple(missing)
        super().__init__(f"{target} not found by ids: {', '.join(map(str, self.missing))}")


def update_role_capabilities(
    *,
    role_id: UUID,
    capability_ids: Iterable[UUID],
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
    event_sink: EventSink,
) -> MergeResult[RoleCapability]:
    """Make ``capability_ids`` the complete capability assignment of a role."""

    result = _replace_assignments(
        owner_id=role_id,
        target_ids=capability_ids,
        factory=RoleCapability,
        store=lambda repositories: repositories.role_capabilities,
        find_targets=_find_capabilities,
        target="Capabilities",
        unit_of_work_factory=unit_of_work_factory,
    )
    if _changed(result):
        event_sink.publish(TenantPermissionsChanged())
    return result


def update_user_capabilities(
    *,
    user_id: UUID,
    capability_ids: Iterable[UUID],
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
    event_sink: EventSink,
) -> MergeResult[UserCapability]:
    """Make ``capability_ids`` the complete capability assignment of a user."""

    result = _replace_assignments(
        owner_id=user_id,
        target_ids=capability_ids,
        factory=UserCapability,
        store=lambda repositories: repositories.user_capabilities,
        find_targets=_find_capabilities,
        target="Capabilities",
        unit_of_work_factory=unit_of_work_factory,
    )
    if _changed(result):
        event_sink.publish(UserPermissionsChanged(user_id))
    return result


def update_role_capability_sets(
    *,
    role_id: UUID,
    capability_set_ids: Iterable[UUID],
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
    event_sink: EventSink,
) -> MergeResult[RoleCapabilitySet]:
    result = _replace_assignments(
        owner_id=role_id,
        target_ids=capability_set_ids,
        factory=RoleCapabilitySet,
        store=lambda repositories: repositories.role_capability_sets,
        find_targets=_find_capability_sets,
        target="Capability sets",
        unit_of_work_factory=unit_of_work_factory,
    )
    if _changed(result):
        event_sink.publish(TenantPermissionsChanged())
    return result


def update_user_capability_sets(
    *,
    user_id: UUID,
    capability_set_ids: Iterable[UUID],
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
    event_sink: EventSink,
) -> MergeResult[UserCapabilitySet]:
    result = _replace_assignments(
        owner_id=user_id,
        target_ids=capability_set_ids,
        factory=UserCapabilitySet,
        store=lambda repositories: repositories.user_capability_sets,
        find_targets=_find_capability_sets,
        target="Capability sets",
        unit_of_work_factory=unit_of_work_factory,
    )
    if _changed(result):
        event_sink.publish(UserPermissionsChanged(user_id))
    return result


def _changed[TRelation: Relation](result: MergeResult[TRelation]) -> bool:
    return bool(result.added or result.deleted)


def _find_capabilities(repositories: AuthorizationRepositories, ids: list[UUID]) -> list[Entity]:
    return list(repositories.capabilities.find_by_ids(ids, include_dummy=True))


def _find_capability_sets(
    repositories: AuthorizationRepositories, ids: list[UUID]
) -> list[Entity]:
    return list(repositories.capability_sets.find_by_ids(ids))


def _check_targets_exist(
    repositories: AuthorizationRepositories,
    ids: list[UUID],
    find_targets: Callable[[AuthorizationRepositories, list[UUID]], list[Entity]],
    target: str,
) -> None:
    if not ids:
        return
    found = {item.id for item in find_targets(repositories, ids)}
    missing = [target_id for target_id in ids if target_id not in found]
    if missing:
        raise AssignmentTargetNotFoundError(target, missing)


def _replace_assignments[TRelation: Relation](
    *,
    owner_id: UUID,
    target_ids: Iterable[UUID],
    factory: Callable[..., TRelation],
    store: Callable[[AuthorizationRepositories], RelationRepository[TRelation]],
    find_targets: Callable[[AuthorizationRepositories, list[UUID]], list[Entity]],
    target: str,
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
) -> MergeResult[TRelation]:
    """Merge the desired relations of ``owner_id`` against the stored ones.

    Ids not assigned yet must exist; otherwise nothing is written and
    :class:`AssignmentTargetNotFoundError` names the unknown ids.
    """

    if owner_id is None:
        raise ValueError("Owner id must not be null")

    now = datetime.now(tz=UTC)
    desired = [
        factory(owner_id=owner_id, target_id=target_id, created_at=now)
        for target_id in dict.fromkeys(target_ids)
    ]

    with unit_of_work_factory() as uow:
        relations = store(uow.repositories)
        stored = relations.find_all_by_owner(owner_id)
        assigned = {relation.target_id for relation in stored}
        _check_targets_exist(
            uow.repositories,
            [relation.target_id for relation in desired if relation.target_id not in assigned],
            find_targets,
            target,
        )
        result = merge_in_batch(
            desired,
            stored,
            by_relation_key,
            add_all=relations.save_all,
            update_all=nothing,
            delete_all=relations.delete_all,
        )
        uow.commit()

    log.info(
        "Updated assignments of %s: added=%s, removed=%s, unchanged=%s",
        owner_id,
        len(result.added),
        len(result.deleted),
        len(result.updated),
    )
    return result
