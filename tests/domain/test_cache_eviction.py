from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from capsync.adapters.cache import InMemoryPermissionCache
from capsync.adapters.events import InProcessEventBus
from capsync.domain.cache_eviction import (
    UserPermissionsCacheEvictor,
    register_cache_eviction,
    user_cache_key,
)
from capsync.domain.events import TenantPermissionsChanged, UserPermissionsChanged
from capsync.domain.execution_context import (
    ContextVarExecutionContextProvider,
    ExecutionContext,
    execution_scope,
)


@pytest.fixture
def cache() -> InMemoryPermissionCache:
    return InMemoryPermissionCache(ttl_seconds=60, max_size=100)


@pytest.fixture
def bus(cache: InMemoryPermissionCache) -> InProcessEventBus:
    bus = InProcessEventBus()
    register_cache_eviction(
        bus, UserPermissionsCacheEvictor(cache, ContextVarExecutionContextProvider())
    )
    return bus


def test_user_notification_evicts_only_that_user(
    cache: InMemoryPermissionCache, bus: InProcessEventBus
) -> None:
    user_a, user_b = uuid4(), uuid4()
    cache.put(user_cache_key("diku", user_a), frozenset({"users.item.get"}))
    cache.put(user_cache_key("diku", user_b), frozenset({"users.item.get"}))
    cache.put(user_cache_key("other", user_a), frozenset({"users.item.get"}))

    with execution_scope(ExecutionContext(tenant_id="diku")):
        bus.publish(UserPermissionsChanged(user_a))

    assert cache.get(user_cache_key("diku", user_a)) is None
    assert cache.get(user_cache_key("diku", user_b)) is not None
    assert cache.get(user_cache_key("other", user_a)) is not None


def test_tenant_notification_evicts_whole_tenant(
    cache: InMemoryPermissionCache, bus: InProcessEventBus
) -> None:
    user_a, user_b = uuid4(), uuid4()
    cache.put(user_cache_key("diku", user_a), frozenset())
    cache.put(user_cache_key("diku", user_b), frozenset())
    cache.put(user_cache_key("diku2", user_a), frozenset())

    with execution_scope(ExecutionContext(tenant_id="diku")):
        bus.publish(TenantPermissionsChanged())

    assert cache.get(user_cache_key("diku", user_a)) is None
    assert cache.get(user_cache_key("diku", user_b)) is None
    assert cache.get(user_cache_key("diku2", user_a)) is not None


def test_missing_tenant_skips_eviction_with_warning(
    cache: InMemoryPermissionCache,
    bus: InProcessEventBus,
    caplog: pytest.LogCaptureFixture,
) -> None:
    user_id = uuid4()
    cache.put(user_cache_key("diku", user_id), frozenset())

    with caplog.at_level(logging.WARNING, logger="capsync.domain.cache_eviction"):
        bus.publish(TenantPermissionsChanged())
        with execution_scope(ExecutionContext(tenant_id="  ")):
            bus.publish(UserPermissionsChanged(user_id))

    assert len(cache) == 1
    assert sum("Tenant is not set" in record.getMessage() for record in caplog.records) == 2
