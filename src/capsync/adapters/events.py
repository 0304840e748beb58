"""In-process event bus implementing the event sink port."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)


class InProcessEventBus:
    """Synchronous publish/subscribe keyed by event type.

    A handler registered for a type also receives instances of its subclasses.
    Handlers run in registration order on the publishing thread; a failing
    handler propagates its exception to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], object]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe[TEvent](
        self, event_type: type[TEvent], handler: Callable[[TEvent], object]
    ) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def publish(self, event: object) -> None:
        with self._lock:
            handlers = [
                handler
                for event_type, registered in self._handlers.items()
                if isinstance(event, event_type)
                for handler in registered
            ]
        if not handlers:
            log.debug("No handler subscribed for %s", type(event).__name__)
            return
        for handler in handlers:
            handler(event)


if TYPE_CHECKING:
    from capsync.domain.ports import EventSink, EventSubscriber

    _sink_check: EventSink = InProcessEventBus()
    _subscriber_check: EventSubscriber = InProcessEventBus()
