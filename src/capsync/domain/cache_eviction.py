"""Evict cached user permissions when a notification says they went stale."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from capsync.domain.events import TenantPermissionsChanged, UserPermissionsChanged

if TYPE_CHECKING:
    from uuid import UUID

    from capsync.domain.execution_context import ExecutionContextProvider
    from capsync.domain.ports import EventSubscriber, PermissionCache

log = logging.getLogger(__name__)


def user_cache_key(tenant_id: str, user_id: UUID) -> str:
    return f"{tenant_id}:{user_id}"


def tenant_cache_prefix(tenant_id: str) -> str:
    return f"{tenant_id}:"


class UserPermissionsCacheEvictor:
    """Removes cache entries of the tenant bound to the current execution context."""

    def __init__(self, cache: PermissionCache, context_provider: ExecutionContextProvider) -> None:
        self._cache = cache
        self._context_provider = context_provider

    def evict_user(self, event: UserPermissionsChanged) -> None:
        tenant_id = self._tenant_id()
        if tenant_id is None:
            return
        key = user_cache_key(tenant_id, event.user_id)
        if self._cache.evict(key):
            log.debug("Evicted user permissions for key %s", key)

    def evict_tenant(self, _event: TenantPermissionsChanged) -> None:
        tenant_id = self._tenant_id()
        if tenant_id is None:
            return
        evicted = self._cache.evict_prefix(tenant_cache_prefix(tenant_id))
        log.debug("Evicted %s user permission entries of tenant %s", evicted, tenant_id)

    def _tenant_id(self) -> str | None:
        context = self._context_provider.current()
        tenant_id = context.tenant_id if context is not None else None
        if not tenant_id or not tenant_id.strip():
            log.warning("Tenant is not set in the execution context, skipping cache eviction")
            return None
        return tenant_id


def register_cache_eviction(
    subscriber: EventSubscriber, evictor: UserPermissionsCacheEvictor
) -> None:
    subscriber.subscribe(UserPermissionsChanged, evictor.evict_user)
    subscriber.subscribe(TenantPermissionsChanged, evictor.evict_tenant)
