from __future__ import annotations

"""In-memory publish/subscribe channel for lifecycle events.

The bus decouples the orchestrator, tool executor and trace recorder from
whoever observes them (UI bridges, loggers, monitoring). Semantics:

- subscribers are keyed by ``EventKind`` (or subscribe to every kind);
- delivery is synchronous, in emission order and in subscription order;
- there is no back-pressure and no persistence across process restarts;
- a failing subscriber is logged and skipped, it never affects the publisher
  or the other subscribers.

Each orchestrator owns its bus instance; there is no process-wide singleton.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .models import BusEvent, EventKind

logger = logging.getLogger(__name__)

EventHandler = Callable[[BusEvent], Any]


class EventBus:
    """Typed fan-out channel keyed by ``EventKind``."""

    def __init__(self) -> None:
        self._handlers: Dict[EventKind, List[EventHandler]] = {}
        self._wildcard: List[EventHandler] = []
        self._once: Dict[EventKind, List[EventHandler]] = {}

    def subscribe(self, kind: EventKind, handler: EventHandler) -> Callable[[], None]:
        """
        Register ``handler`` for events of ``kind``.

        Returns:
            A callable that removes the subscription.
        """
        self._handlers.setdefault(kind, []).append(handler)
        return lambda: self.unsubscribe(kind, handler)

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for every event kind."""
        self._wildcard.append(handler)

        def _remove() -> None:
            if handler in self._wildcard:
                self._wildcard.remove(handler)

        return _remove

    def once(self, kind: EventKind, handler: EventHandler) -> None:
        """Register ``handler`` for the next event of ``kind`` only."""
        self._once.setdefault(kind, []).append(handler)

    def unsubscribe(self, kind: EventKind, handler: EventHandler) -> None:
        for registry in (self._handlers, self._once):
            handlers = registry.get(kind)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def clear(self, kind: Optional[EventKind] = None) -> None:
        """Remove all subscribers for ``kind``, or every subscriber when omitted."""
        if kind is None:
            self._handlers.clear()
            self._once.clear()
            self._wildcard.clear()
            return
        self._handlers.pop(kind, None)
        self._once.pop(kind, None)

    def listener_count(self, kind: Optional[EventKind] = None) -> int:
        if kind is None:
            total = sum(len(h) for h in self._handlers.values()) + sum(len(h) for h in self._once.values())
            return total + len(self._wildcard)
        return len(self._handlers.get(kind, [])) + len(self._once.get(kind, []))

    def publish(self, event: BusEvent) -> int:
        """
        Deliver ``event`` to its subscribers.

        Returns:
            The number of subscribers that received the event without raising.
        """
        handlers = list(self._handlers.get(event.kind, []))
        handlers.extend(self._once.pop(event.kind, []))
        handlers.extend(self._wildcard)

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(f"Event subscriber {handler!r} failed on {event.kind.value}")
        return delivered

    def emit(self, kind: EventKind, **fields: Any) -> BusEvent:
        """Build a ``BusEvent`` from keyword fields, publish it and return it."""
        event = BusEvent(kind=kind, **fields)
        self.publish(event)
        return event
