"""Outbound event ports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from capsync.domain.execution_context import ExecutionContextProvider

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class EventSink(Protocol):
    """Receives domain events and notifications after a successful commit."""

    def publish(self, event: object) -> None: ...


@runtime_checkable
class EventSubscriber(Protocol):
    """Registers listeners for one event type (subclasses included)."""

    def subscribe[TEvent](
        self, event_type: type[TEvent], handler: Callable[[TEvent], object]
    ) -> None: ...


__all__ = ["EventSink", "EventSubscriber", "ExecutionContextProvider"]
