from __future__ import annotations

import json
from typing import TYPE_CHECKING
from uuid import uuid4

from capsync.adapters.cache import InMemoryPermissionCache
from capsync.app import build_event_bus, migrate_duplicate_capability, sync_capabilities_from_file
from capsync.domain.cache_eviction import user_cache_key
from capsync.domain.capability_migration import MigrationStatus
from capsync.domain.events import CapabilityEvent, DomainEventType, TenantPermissionsChanged
from capsync.domain.execution_context import ExecutionContext, execution_scope
from capsync.domain.model import RoleCapability
from tests.helpers.authorization import (
    FakeAuthorizationUnitOfWork,
    RecordingSink,
    make_capability,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_migration_evicts_tenant_cache_through_event_bus(
    fake_unit_of_work: FakeAuthorizationUnitOfWork,
) -> None:
    foo = make_capability("foo.view")
    bar = make_capability("bar.view")
    repositories = fake_unit_of_work.repositories
    repositories.capabilities.save(foo)
    repositories.capabilities.save(bar)
    repositories.role_capabilities.save(RoleCapability(owner_id=uuid4(), target_id=foo.id))

    cache = InMemoryPermissionCache()
    user_id = uuid4()
    cache.put(user_cache_key("diku", user_id), frozenset({"foo.view"}))
    cache.put(user_cache_key("other", user_id), frozenset({"foo.view"}))

    with execution_scope(ExecutionContext(tenant_id="diku")):
        report = migrate_duplicate_capability(
            "foo.view",
            "bar.view",
            unit_of_work_factory=fake_unit_of_work,
            event_sink=build_event_bus(cache=cache),
        )

    assert report.status is MigrationStatus.COMPLETED
    assert cache.get(user_cache_key("diku", user_id)) is None
    assert cache.get(user_cache_key("other", user_id)) is not None


def test_sync_capabilities_from_file(
    tmp_path: Path,
    fake_unit_of_work: FakeAuthorizationUnitOfWork,
    recording_sink: RecordingSink,
) -> None:
    path = tmp_path / "descriptor.json"
    path.write_text(
        json.dumps(
            {
                "moduleId": "mod-users-19.3.0",
                "applicationId": "app-users-1.0.0",
                "resources": [
                    {
                        "permission": {"permissionName": "users.item.get"},
                        "endpoints": [{"pathPattern": "/users/{id}", "method": "GET"}],
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    result = sync_capabilities_from_file(
        path, unit_of_work_factory=fake_unit_of_work, event_sink=recording_sink
    )

    assert [item.name for item in result.created] == ["users_item.view"]
    stored = fake_unit_of_work.repositories.capabilities.find_by_name("users_item.view")
    assert stored is not None
    assert stored.application_id == "app-users-1.0.0"
    assert len(recording_sink.of_type(CapabilityEvent)) == 1
    assert len(recording_sink.of_type(TenantPermissionsChanged)) == 1


def test_sync_hands_replaced_permission_holders_the_successor(
    tmp_path: Path,
    fake_unit_of_work: FakeAuthorizationUnitOfWork,
    recording_sink: RecordingSink,
) -> None:
    repositories = fake_unit_of_work.repositories
    old = make_capability("users.view", application_id="app-users-1.0.0")
    old.permission = "users.get"
    repositories.capabilities.save(old)
    role_id = uuid4()
    repositories.role_capabilities.save(RoleCapability(owner_id=role_id, target_id=old.id))

    path = tmp_path / "descriptor.json"
    path.write_text(
        json.dumps(
            {
                "moduleId": "mod-users-20.0.0",
                "applicationId": "app-users-1.0.0",
                "resources": [
                    {
                        "permission": {
                            "permissionName": "users.item.get",
                            "replaces": ["users.get"],
                        },
                        "endpoints": [{"pathPattern": "/users/{id}", "method": "GET"}],
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    result = sync_capabilities_from_file(
        path, unit_of_work_factory=fake_unit_of_work, event_sink=recording_sink
    )

    successor = repositories.capabilities.find_by_name("users_item.view")
    assert successor is not None
    assert result.deleted == [old]
    assigned = repositories.role_capabilities.find_all_by_owner(role_id)
    assert [item.target_id for item in assigned] == [successor.id]
    deletions = [
        event
        for event in recording_sink.of_type(CapabilityEvent)
        if event.type is DomainEventType.DELETE
    ]
    assert len(deletions) == 1
    assert len(recording_sink.of_type(TenantPermissionsChanged)) == 2
