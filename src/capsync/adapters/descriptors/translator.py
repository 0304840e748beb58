"""Translate module capability descriptors into domain capabilities."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from capsync.domain.capability_actions import capability_name, parse_permission
from capsync.domain.model import Capability, Endpoint

from .schema import CapabilityDescriptor, CapabilityDescriptorInput

if TYPE_CHECKING:
    from pathlib import Path

    from .schema import ResourcePayload

log = getLogger(__name__)


def load_descriptor(path: Path) -> CapabilityDescriptor:
    """Read and validate a descriptor JSON document."""

    return CapabilityDescriptor.model_validate_json(path.read_text(encoding="utf-8"))


def _ensure_descriptor(descriptor: CapabilityDescriptorInput) -> CapabilityDescriptor:
    if isinstance(descriptor, CapabilityDescriptor):
        return descriptor
    return CapabilityDescriptor.model_validate(descriptor)


def capabilities_from_descriptor(descriptor: CapabilityDescriptorInput) -> list[Capability]:
    """Build one capability per classifiable permission of the descriptor.

    Permissions whose action cannot be inferred are skipped with a warning.
    Permissions that resolve to the same capability name are collapsed and
    their endpoints combined.
    """

    payload = _ensure_descriptor(descriptor)
    by_name: dict[str, Capability] = {}
    for resource in payload.resources:
        capability = _to_capability(payload, resource)
        if capability is None:
            continue
        existing = by_name.get(capability.name)
        if existing is None:
            by_name[capability.name] = capability
            continue
        log.info("Duplicated capability name found: %s", capability.name)
        for endpoint in capability.endpoints:
            if endpoint not in existing.endpoints:
                existing.endpoints.append(endpoint)
    return list(by_name.values())


def _to_capability(
    descriptor: CapabilityDescriptor, resource: ResourcePayload
) -> Capability | None:
    permission = resource.permission
    data = parse_permission(permission.permission_name)
    if data is None:
        log.warning(
            "Capability cannot be resolved for permission '%s' of module %s",
            permission.permission_name,
            descriptor.module_id,
        )
        return None

    endpoints = list(
        dict.fromkeys(Endpoint(endpoint.path, endpoint.method) for endpoint in resource.endpoints)
    )
    return Capability(
        name=capability_name(data.resource, data.action),
        resource=data.resource,
        application_id=descriptor.application_id,
        action=data.action,
        type=data.type,
        permission=data.permission,
        description=permission.description,
        endpoints=endpoints,
    )


def replacements_from_descriptor(
    descriptor: CapabilityDescriptorInput,
) -> dict[str, frozenset[str]]:
    """Map every permission listed under ``replaces`` to the permissions superseding it."""

    payload = _ensure_descriptor(descriptor)
    successors: dict[str, set[str]] = {}
    for resource in payload.resources:
        permission = resource.permission
        for old_permission in (item.strip() for item in permission.replaces):
            if not old_permission or old_permission == permission.permission_name:
                continue
            successors.setdefault(old_permission, set()).add(permission.permission_name)
    if successors:
        log.info(
            "Module %s replaces %s permission(s): %s",
            payload.module_id,
            len(successors),
            ", ".join(sorted(successors)),
        )
    return {old: frozenset(new) for old, new in successors.items()}
