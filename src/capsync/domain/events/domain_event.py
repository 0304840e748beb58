"""Payload-bearing change events published after a successful commit."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from capsync.domain.execution_context import ExecutionContext
    from capsync.domain.model import Capability, ExtendedCapabilitySet


class DomainEventType(StrEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, kw_only=True)
class DomainEvent[T]:
    """Immutable record of a single entity change.

    Construction validates the shape of the change: ``CREATE`` carries only a
    new value, ``DELETE`` only an old value and ``UPDATE`` both.
    """

    new_value: T | None = None
    old_value: T | None = None
    type: DomainEventType
    timestamp: datetime = field(default_factory=_utcnow)
    context: ExecutionContext | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.new_value is None and self.old_value is None:
            raise ValueError("Domain event requires a new or an old value")
        match self.type:
            case DomainEventType.CREATE:
                if self.new_value is None or self.old_value is not None:
                    raise ValueError("CREATE event requires a new value and no old value")
            case DomainEventType.UPDATE:
                if self.new_value is None or self.old_value is None:
                    raise ValueError("UPDATE event requires both new and old values")
            case DomainEventType.DELETE:
                if self.old_value is None or self.new_value is not None:
                    raise ValueError("DELETE event requires an old value and no new value")

    @classmethod
    def created(cls, new_value: T) -> Self:
        return cls(new_value=new_value, type=DomainEventType.CREATE)

    @classmethod
    def updated(cls, new_value: T, old_value: T) -> Self:
        return cls(new_value=new_value, old_value=old_value, type=DomainEventType.UPDATE)

    @classmethod
    def deleted(cls, old_value: T) -> Self:
        return cls(old_value=old_value, type=DomainEventType.DELETE)

    def with_timestamp(self, timestamp: datetime) -> Self:
        return replace(self, timestamp=timestamp)

    def with_context(self, context: ExecutionContext | None) -> Self:
        """Attach a snapshot of ``context``; later changes to it are not seen."""

        return replace(self, context=context.snapshot() if context is not None else None)


@dataclass(frozen=True, kw_only=True)
class CapabilityEvent(DomainEvent["Capability"]):
    """Change of a single capability."""


@dataclass(frozen=True, kw_only=True)
class CapabilitySetEvent(DomainEvent["ExtendedCapabilitySet"]):
    """Change of a capability set, carrying its resolved capabilities."""


@dataclass(frozen=True, kw_only=True)
class CapabilityCollectionEvent(DomainEvent[tuple["Capability", ...]]):
    """Bulk change of the capabilities registered for one application."""

    def __post_init__(self) -> None:
        if self.new_value is not None and not isinstance(self.new_value, tuple):
            object.__setattr__(self, "new_value", tuple(self.new_value))
        if self.old_value is not None and not isinstance(self.old_value, tuple):
            object.__setattr__(self, "old_value", tuple(self.old_value))
        super().__post_init__()
