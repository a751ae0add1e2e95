"""Event bus carrying agent lifecycle notifications.

This package exports:

- ``EventKind``: the enumerated event taxonomy.
- ``BusEvent``: the event payload model.
- ``EventBus``: the publish/subscribe channel.
"""

from .bus import EventBus, EventHandler
from .models import BusEvent, EventKind

__all__ = [
    "BusEvent",
    "EventBus",
    "EventHandler",
    "EventKind",
]
