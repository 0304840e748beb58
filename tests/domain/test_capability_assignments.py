from __future__ import annotations

from uuid import uuid4

import pytest

from capsync.domain.capability_assignments import (
    AssignmentTargetNotFoundError,
    update_role_capabilities,
    update_role_capability_sets,
    update_user_capabilities,
    update_user_capability_sets,
)
from capsync.domain.events import TenantPermissionsChanged, UserPermissionsChanged
from capsync.domain.model import RoleCapability, UserCapabilitySet
from tests.helpers.authorization import (
    FakeAuthorizationUnitOfWork,
    RecordingSink,
    make_capability,
    make_capability_set,
)


def test_role_capabilities_are_replaced_in_one_batch(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    role_id = uuid4()
    kept, dropped = uuid4(), uuid4()
    added = make_capability("item.view")
    fake_unit_of_work.repositories.capabilities.save(added)
    store = fake_unit_of_work.repositories.role_capabilities
    store.save_all(
        [
            RoleCapability(owner_id=role_id, target_id=kept),
            RoleCapability(owner_id=role_id, target_id=dropped),
        ]
    )

    result = update_role_capabilities(
        role_id=role_id,
        capability_ids=[added.id, kept, added.id],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert [relation.target_id for relation in result.added] == [added.id]
    assert [relation.target_id for relation in result.deleted] == [dropped]
    assert len(result.updated) == 1
    assigned = {relation.target_id for relation in store.find_all_by_owner(role_id)}
    assert assigned == {kept, added.id}
    assert fake_unit_of_work.commits == 1
    assert recording_sink.events == [TenantPermissionsChanged()]


def test_unchanged_assignment_publishes_nothing(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    role_id, capability_id = uuid4(), uuid4()
    fake_unit_of_work.repositories.role_capabilities.save(
        RoleCapability(owner_id=role_id, target_id=capability_id)
    )

    result = update_role_capabilities(
        role_id=role_id,
        capability_ids=[capability_id],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert len(result.updated) == 1
    assert result.added == []
    assert result.deleted == []
    assert recording_sink.events == []


def test_user_capabilities_publish_user_notification(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    user_id = uuid4()
    capability = make_capability("item.view", dummy=True)
    fake_unit_of_work.repositories.capabilities.save(capability)
    capability_id = capability.id

    update_user_capabilities(
        user_id=user_id,
        capability_ids=[capability_id],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert fake_unit_of_work.repositories.user_capabilities.exists_by_owner_and_target(
        user_id, capability_id
    )
    assert recording_sink.events == [UserPermissionsChanged(user_id)]


def test_clearing_user_capability_sets(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    user_id, set_id = uuid4(), uuid4()
    store = fake_unit_of_work.repositories.user_capability_sets
    store.save(UserCapabilitySet(owner_id=user_id, target_id=set_id))

    result = update_user_capability_sets(
        user_id=user_id,
        capability_set_ids=[],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert [relation.target_id for relation in result.deleted] == [set_id]
    assert store.find_all_by_owner(user_id) == []
    assert recording_sink.events == [UserPermissionsChanged(user_id)]


def test_role_capability_sets_publish_tenant_notification(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    role_id = uuid4()
    capability_set = make_capability_set("item.manage")
    fake_unit_of_work.repositories.capability_sets.save(capability_set)
    set_id = capability_set.id

    update_role_capability_sets(
        role_id=role_id,
        capability_set_ids=[set_id],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert recording_sink.events == [TenantPermissionsChanged()]


def test_missing_owner_is_rejected(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    with pytest.raises(ValueError, match="Owner id"):
        update_role_capabilities(
            role_id=None,  # type: ignore[arg-type]
            capability_ids=[uuid4()],
            unit_of_work_factory=fake_unit_of_work,
            event_sink=recording_sink,
        )

    assert fake_unit_of_work.entered == 0


def test_unknown_capability_ids_are_rejected_before_any_write(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    role_id, assigned, unknown = uuid4(), uuid4(), uuid4()
    known = make_capability("item.view")
    fake_unit_of_work.repositories.capabilities.save(known)
    store = fake_unit_of_work.repositories.role_capabilities
    # already assigned ids are kept without a lookup
    store.save(RoleCapability(owner_id=role_id, target_id=assigned))

    with pytest.raises(AssignmentTargetNotFoundError, match=str(unknown)) as raised:
        update_role_capabilities(
            role_id=role_id,
            capability_ids=[assigned, known.id, unknown],
            unit_of_work_factory=fake_unit_of_work,
            event_sink=recording_sink,
        )

    assert raised.value.missing == (unknown,)
    assert str(raised.value).startswith("Capabilities not found by ids")
    assert {relation.target_id for relation in store.find_all_by_owner(role_id)} == {assigned}
    assert fake_unit_of_work.commits == 0
    assert fake_unit_of_work.rollbacks == 1
    assert recording_sink.events == []


def test_unknown_capability_set_ids_are_rejected(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    user_id, unknown = uuid4(), uuid4()

    with pytest.raises(AssignmentTargetNotFoundError, match="Capability sets not found"):
        update_user_capability_sets(
            user_id=user_id,
            capability_set_ids=[unknown],
            unit_of_work_factory=fake_unit_of_work,
            event_sink=recording_sink,
        )

    assert fake_unit_of_work.repositories.user_capability_sets.find_all_by_owner(user_id) == []
    assert recording_sink.events == []
