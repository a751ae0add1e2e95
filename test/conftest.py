from __future__ import annotations

from typing import List

import pytest

from codesmith_ai.agent_core.events import BusEvent, EventBus, EventKind


class EventLog:
    """Collects every event published on a bus, in order."""

    def __init__(self, bus: EventBus) -> None:
        self.events: List[BusEvent] = []
        bus.subscribe_all(self.events.append)

    def kinds(self) -> List[EventKind]:
        return [e.kind for e in self.events]

    def of(self, kind: EventKind) -> List[BusEvent]:
        return [e for e in self.events if e.kind == kind]


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def event_log(event_bus: EventBus) -> EventLog:
    return EventLog(event_bus)
