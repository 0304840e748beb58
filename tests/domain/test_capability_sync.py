from __future__ import annotations

from uuid import uuid4

import pytest

from capsync.domain.capability_sync import sync_application_capabilities
from capsync.domain.events import (
    CapabilityCollectionEvent,
    CapabilityEvent,
    DomainEventType,
    TenantPermissionsChanged,
)
from capsync.domain.execution_context import ExecutionContext
from capsync.domain.model import Endpoint, HttpMethod, RoleCapability, UserCapability
from tests.helpers.authorization import (
    FakeAuthorizationUnitOfWork,
    RecordingSink,
    StaticContextProvider,
    make_capability,
    make_capability_set,
)


def test_initial_sync_creates_all_capabilities(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    incoming = [make_capability("users_item.view"), make_capability("users_item.create")]

    result = sync_application_capabilities(
        application_id="app-1.0.0",
        capabilities=incoming,
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
        context_provider=StaticContextProvider(ExecutionContext(tenant_id="diku")),
    )

    assert [item.name for item in result.created] == ["users_item.create", "users_item.view"]
    assert fake_unit_of_work.commits == 1

    capability_events = recording_sink.of_type(CapabilityEvent)
    assert {event.type for event in capability_events} == {DomainEventType.CREATE}
    assert all(
        event.context is not None and event.context.tenant_id == "diku"
        for event in capability_events
    )
    collection_events = recording_sink.of_type(CapabilityCollectionEvent)
    assert len(collection_events) == 1
    assert collection_events[0].type is DomainEventType.CREATE
    assert isinstance(recording_sink.events[-1], TenantPermissionsChanged)


def test_resync_updates_changed_content_and_deletes_missing(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    repository = fake_unit_of_work.repositories.capabilities
    unchanged = make_capability("users_item.view")
    changed = make_capability("users_item.edit", description="before")
    removed = make_capability("users_item.delete")
    for capability in (unchanged, changed, removed):
        repository.save(capability)

    incoming = [
        make_capability("users_item.view"),
        make_capability(
            "users_item.edit",
            description="after",
            endpoints=[Endpoint("/users/{id}", HttpMethod.PUT)],
        ),
    ]

    result = sync_application_capabilities(
        application_id="app-1.0.0",
        capabilities=incoming,
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert result.unchanged == 1
    assert result.created == []
    assert result.deleted == [removed]
    assert len(result.updated) == 1
    pair = result.updated[0]
    assert pair.new_item is changed
    assert pair.old_item.description == "before"
    assert changed.description == "after"
    assert changed.endpoints == [Endpoint("/users/{id}", HttpMethod.PUT)]
    assert repository.find_by_name("users_item.delete") is None
    assert {item.id for item in repository.find_all_by_application("app-1.0.0")} == {
        unchanged.id,
        changed.id,
    }

    updates = [
        event
        for event in recording_sink.of_type(CapabilityEvent)
        if event.type is DomainEventType.UPDATE
    ]
    assert len(updates) == 1
    assert updates[0].old_value is not None
    assert updates[0].old_value.description == "before"

    collection = recording_sink.of_type(CapabilityCollectionEvent)[0]
    assert collection.type is DomainEventType.UPDATE
    assert collection.new_value is not None
    assert {item.name for item in collection.new_value} == {"users_item.view", "users_item.edit"}


def test_identical_resync_publishes_nothing(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    fake_unit_of_work.repositories.capabilities.save(make_capability("users_item.view"))

    result = sync_application_capabilities(
        application_id="app-1.0.0",
        capabilities=[make_capability("users_item.view")],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert not result.changed
    assert result.unchanged == 1
    assert recording_sink.events == []


def test_foreign_application_capability_is_rejected(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    with pytest.raises(ValueError, match="belongs to application"):
        sync_application_capabilities(
            application_id="app-1.0.0",
            capabilities=[make_capability("users_item.view", application_id="other-2.0.0")],
            unit_of_work_factory=fake_unit_of_work,
            event_sink=recording_sink,
        )

    assert fake_unit_of_work.entered == 0


def test_blank_application_is_rejected(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    with pytest.raises(ValueError, match="blank"):
        sync_application_capabilities(
            application_id=" ",
            capabilities=[],
            unit_of_work_factory=fake_unit_of_work,
            event_sink=recording_sink,
        )


def test_deleted_capability_loses_its_assignments_and_set_entries(
    fake_unit_of_work: FakeAuthorizationUnitOfWork, recording_sink: RecordingSink
) -> None:
    repositories = fake_unit_of_work.repositories
    kept = make_capability("users_item.view")
    removed = make_capability("users_item.delete")
    repositories.capabilities.save(kept)
    repositories.capabilities.save(removed)
    holder = make_capability_set("users.manage", [removed.id, kept.id])
    repositories.capability_sets.save(holder)
    role_id, user_id = uuid4(), uuid4()
    repositories.role_capabilities.save_all(
        [
            RoleCapability(owner_id=role_id, target_id=removed.id),
            RoleCapability(owner_id=role_id, target_id=kept.id),
        ]
    )
    repositories.user_capabilities.save(UserCapability(owner_id=user_id, target_id=removed.id))

    sync_application_capabilities(
        application_id="app-1.0.0",
        capabilities=[make_capability("users_item.view")],
        unit_of_work_factory=fake_unit_of_work,
        event_sink=recording_sink,
    )

    assert repositories.role_capabilities.find_all_by_target(removed.id) == []
    assert repositories.user_capabilities.find_all_by_target(removed.id) == []
    remaining = repositories.role_capabilities.find_all_by_owner(role_id)
    assert [item.target_id for item in remaining] == [kept.id]
    assert holder.capability_ids == [kept.id]
