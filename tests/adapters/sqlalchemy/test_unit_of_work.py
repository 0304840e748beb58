from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from capsync.adapters.sqlalchemy.migrations import current_revision
from capsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAuthorizationUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)
from capsync.domain.capability_assignments import (
    AssignmentTargetNotFoundError,
    update_role_capability_sets,
)
from capsync.domain.capability_migration import DuplicateCapabilityMigration, MigrationStatus
from capsync.domain.capability_replacements import apply_replacements, deduce_replacements
from capsync.domain.model import RelationKind, RoleCapability, UserCapability
from tests.helpers.authorization import RecordingSink, make_capability, make_capability_set

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

type UowFactory = Callable[[], SqlAlchemyAuthorizationUnitOfWork]


def test_unit_of_work_requires_startup() -> None:
    shutdown()

    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyAuthorizationUnitOfWork()


def test_startup_twice_requires_force(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    try:
        with pytest.raises(StartupError, match="already started"):
            startup(engine=sqlite_engine)
        assert is_started()
    finally:
        shutdown()


def test_repositories_unavailable_outside_context(sqlite_unit_of_work: UowFactory) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_uncommitted_changes_are_discarded(sqlite_unit_of_work: UowFactory) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.capabilities.save(make_capability("users_item.view"))

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.capabilities.find_by_name("users_item.view") is None


def test_exception_rolls_back(sqlite_unit_of_work: UowFactory) -> None:
    with pytest.raises(RuntimeError), sqlite_unit_of_work() as uow:
        uow.repositories.capabilities.save(make_capability("users_item.view"))
        uow.session.flush()
        raise RuntimeError("boom")

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.capabilities.find_by_name("users_item.view") is None


def test_duplicate_capability_migration_persists(sqlite_unit_of_work: UowFactory) -> None:
    foo = make_capability("foo.view")
    bar = make_capability("bar.view")
    role_a, role_b, role_c = uuid4(), uuid4(), uuid4()
    user_id = uuid4()
    holder = make_capability_set("holder.manage", [foo.id])
    with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        repositories.capabilities.save(foo)
        repositories.capabilities.save(bar)
        repositories.capability_sets.save(holder)
        repositories.role_capabilities.save_all(
            [
                RoleCapability(owner_id=role_a, target_id=foo.id),
                RoleCapability(owner_id=role_b, target_id=foo.id),
                RoleCapability(owner_id=role_c, target_id=foo.id),
                RoleCapability(owner_id=role_c, target_id=bar.id),
            ]
        )
        repositories.user_capabilities.save(UserCapability(owner_id=user_id, target_id=foo.id))
        uow.commit()

    sink = RecordingSink()
    report = DuplicateCapabilityMigration(sqlite_unit_of_work, sink).run("foo.view", "bar.view")

    assert report.status is MigrationStatus.COMPLETED
    assert report.count_for(RelationKind.ROLE_CAPABILITY).migrated == 2
    assert report.count_for(RelationKind.ROLE_CAPABILITY).deleted == 1
    assert report.count_for(RelationKind.USER_CAPABILITY).migrated == 1
    assert report.updated_capability_sets == 1

    with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        assert repositories.capabilities.find_by_name("foo.view") is None
        assert repositories.role_capabilities.find_all_by_target(foo.id) == []
        migrated = repositories.role_capabilities.find_all_by_target(bar.id)
        assert {item.owner_id for item in migrated} == {role_a, role_b, role_c}
        assert [
            item.owner_id for item in repositories.user_capabilities.find_all_by_target(bar.id)
        ] == [user_id]
        stored_holder = repositories.capability_sets.find_by_name("holder.manage")
        assert stored_holder is not None
        assert stored_holder.capability_ids == [bar.id]

    rerun = DuplicateCapabilityMigration(sqlite_unit_of_work, sink).run("foo.view", "bar.view")
    assert rerun.status is MigrationStatus.ALREADY_APPLIED


def test_capability_replacements_against_sqlite(sqlite_unit_of_work: UowFactory) -> None:
    old = make_capability("users.view")
    new = make_capability("users_item.view")
    dummy = make_capability("orders.view", dummy=True)
    successor = make_capability("orders_item.view")
    holder = make_capability_set("orders.manage", [dummy.id])
    role_id = uuid4()
    with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        for capability in (old, new, dummy, successor):
            repositories.capabilities.save(capability)
        repositories.capability_sets.save(holder)
        repositories.role_capabilities.save(RoleCapability(owner_id=role_id, target_id=old.id))
        uow.commit()

    replacements = deduce_replacements(
        {
            "users.view.permission": ["users_item.view.permission"],
            "orders.view.permission": ["orders_item.view.permission"],
        },
        unit_of_work_factory=sqlite_unit_of_work,
    )
    assert replacements is not None
    result = apply_replacements(
        replacements, unit_of_work_factory=sqlite_unit_of_work, event_sink=RecordingSink()
    )

    assert {item.name for item in result.deleted_capabilities} == {"users.view", "orders.view"}
    with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        assigned = repositories.role_capabilities.find_all_by_owner(role_id)
        assert [item.target_id for item in assigned] == [new.id]
        assert repositories.capabilities.find_by_ids([old.id, dummy.id], include_dummy=True) == []
        stored_holder = repositories.capability_sets.find_by_name("orders.manage")
        assert stored_holder is not None
        assert stored_holder.capability_ids == [successor.id]


def test_assigning_unknown_capability_set_writes_nothing(sqlite_unit_of_work: UowFactory) -> None:
    known = make_capability_set("users.manage")
    with sqlite_unit_of_work() as uow:
        uow.repositories.capability_sets.save(known)
        uow.commit()
    role_id, unknown = uuid4(), uuid4()

    with pytest.raises(AssignmentTargetNotFoundError) as raised:
        update_role_capability_sets(
            role_id=role_id,
            capability_set_ids=[known.id, unknown],
            unit_of_work_factory=sqlite_unit_of_work,
            event_sink=RecordingSink(),
        )

    assert raised.value.missing == (unknown,)
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.role_capability_sets.find_all_by_owner(role_id) == []


def test_schema_is_at_head_after_upgrade(sqlite_engine: Engine) -> None:
    assert current_revision(sqlite_engine) == "0001"
