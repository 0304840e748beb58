"""Reconcile the capabilities registered for one application."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from capsync.domain.capability_replacements import unlink_capability
from capsync.domain.events import (
    CapabilityCollectionEvent,
    CapabilityEvent,
    TenantPermissionsChanged,
)
from capsync.domain.reconciliation import UpdatePair, by_name, merge

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from capsync.domain.execution_context import ExecutionContextProvider
    from capsync.domain.model import Capability
    from capsync.domain.ports import AuthorizationUnitOfWork, EventSink

log = logging.getLogger(__name__)


@dataclass(slots=True)
class CapabilitySyncResult:
    """Outcome of an application capability sync."""

    application_id: str
    created: list[Capability] = field(default_factory=list["Capability"])
    updated: list[UpdatePair[Capability]] = field(default_factory=list["UpdatePair[Capability]"])
    deleted: list[Capability] = field(default_factory=list["Capability"])
    unchanged: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


def sync_application_capabilities(
    *,
    application_id: str,
    capabilities: Iterable[Capability],
    unit_of_work_factory: Callable[[], AuthorizationUnitOfWork],
    event_sink: EventSink,
    context_provider: ExecutionContextProvider | None = None,
) -> CapabilitySyncResult:
    """Store ``capabilities`` as the full capability list of ``application_id``.

    Capabilities are matched by name. Stored rows keep their id when their
    content changes; rows no longer described by the application are deleted
    along with their assignments and capability set entries.
    Events are published only after the transaction committed.
    """

    if not application_id or not application_id.strip():
        raise ValueError("Application id must not be blank")

    incoming = list(capabilities)
    for capability in incoming:
        if capability.application_id != application_id:
            raise ValueError(
                f"Capability '{capability.name}' belongs to application "
                f"'{capability.application_id}', expected '{application_id}'"
            )

    result = CapabilitySyncResult(application_id=application_id)
    now = datetime.now(tz=UTC)

    with unit_of_work_factory() as uow:
        repository = uow.repositories.capabilities
        stored = repository.find_all_by_application(application_id)
        previous = [replace(capability) for capability in stored]

        def on_add(capability: Capability) -> None:
            capability.updated_at = now
            repository.save(capability)
            result.created.append(capability)

        def on_update(pair: UpdatePair[Capability]) -> None:
            current = pair.old_item
            if current.same_content(pair.new_item):
                result.unchanged += 1
                return
            before = replace(current)
            current.copy_content_from(pair.new_item)
            current.updated_at = now
            repository.save(current)
            result.updated.append(UpdatePair(current, before))

        def on_delete(capability: Capability) -> None:
            unlink_capability(uow.repositories, capability.id)
            repository.delete(capability)
            result.deleted.append(capability)

        merge(incoming, stored, by_name, on_add=on_add, on_update=on_update, on_delete=on_delete)
        uow.commit()

    log.info(
        "Synced capabilities of %s: created=%s, updated=%s, deleted=%s, unchanged=%s",
        application_id,
        len(result.created),
        len(result.updated),
        len(result.deleted),
        result.unchanged,
    )

    if result.changed:
        _publish(result, previous, event_sink, context_provider)
    return result


def _publish(
    result: CapabilitySyncResult,
    previous: list[Capability],
    event_sink: EventSink,
    context_provider: ExecutionContextProvider | None,
) -> None:
    context = context_provider.current() if context_provider is not None else None

    events: list[CapabilityEvent] = [CapabilityEvent.created(item) for item in result.created]
    events += [CapabilityEvent.updated(pair.new_item, pair.old_item) for pair in result.updated]
    events += [CapabilityEvent.deleted(item) for item in result.deleted]
    for event in events:
        event_sink.publish(event.with_context(context))

    deleted_ids = {item.id for item in result.deleted}
    updated = {pair.new_item.id: pair.new_item for pair in result.updated}
    current = [updated.get(item.id, item) for item in previous if item.id not in deleted_ids]
    current += result.created

    if not previous:
        collection_event = CapabilityCollectionEvent.created(tuple(current))
    elif not current:
        collection_event = CapabilityCollectionEvent.deleted(tuple(previous))
    else:
        collection_event = CapabilityCollectionEvent.updated(tuple(current), tuple(previous))
    event_sink.publish(collection_event.with_context(context))
    event_sink.publish(TenantPermissionsChanged())
