"""Domain events and cache notifications."""

from __future__ import annotations

from capsync.domain.events.domain_event import (
    CapabilityCollectionEvent,
    CapabilityEvent,
    CapabilitySetEvent,
    DomainEvent,
    DomainEventType,
)
from capsync.domain.events.notifications import TenantPermissionsChanged, UserPermissionsChanged

__all__ = [
    "CapabilityCollectionEvent",
    "CapabilityEvent",
    "CapabilitySetEvent",
    "DomainEvent",
    "DomainEventType",
    "TenantPermissionsChanged",
    "UserPermissionsChanged",
]
