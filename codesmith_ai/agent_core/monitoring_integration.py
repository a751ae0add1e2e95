"""
Event bus observers for logging and Logfire.

``attach_event_logging`` subscribes one observer to every event kind. It writes
each event to the standard log (failures at warning level, turn lifecycle at
info, everything else at debug) and forwards tool outcomes to the Logfire
helpers in ``codesmith_ai.core.monitoring``.

Usage:
    from codesmith_ai.agent_core.monitoring_integration import attach_event_logging

    detach = attach_event_logging(orchestrator_bus)
    ...
    detach()
"""

import logging
from typing import Callable, Optional

from codesmith_ai.core.monitoring import log_tool_call

from .events import BusEvent, EventBus, EventKind

logger = logging.getLogger(__name__)

_FAILURE_KINDS = frozenset(
    {
        EventKind.tool_failed,
        EventKind.trace_step_failed,
        EventKind.trace_failed,
        EventKind.validation_failed,
        EventKind.error_occurred,
    }
)
_LIFECYCLE_KINDS = frozenset({EventKind.conversation_started, EventKind.conversation_ended})


def _describe(event: BusEvent) -> str:
    parts = [event.kind.value]
    if event.conversation_id:
        parts.append(f"conversation={event.conversation_id}")
    if event.trace_id:
        parts.append(f"trace={event.trace_id}")
    if event.tool_name:
        parts.append(f"tool={event.tool_name}")
    if event.duration_ms is not None:
        parts.append(f"duration_ms={event.duration_ms:.1f}")
    if event.error:
        parts.append(f"error={event.error}")
    return " ".join(parts)


def attach_event_logging(bus: EventBus, target: Optional[logging.Logger] = None) -> Callable[[], None]:
    """
    Subscribe a logging observer to every event on ``bus``.

    Args:
        bus: The event bus to observe.
        target: Logger to write to; defaults to this module's logger.

    Returns:
        A callable that detaches the observer.
    """
    log = target or logger

    def _observe(event: BusEvent) -> None:
        if event.kind in _FAILURE_KINDS:
            log.warning(_describe(event))
        elif event.kind in _LIFECYCLE_KINDS:
            log.info(_describe(event))
        else:
            log.debug(_describe(event))

        if event.kind == EventKind.tool_completed:
            log_tool_call(event.tool_name or "", True, event.duration_ms)
        elif event.kind == EventKind.tool_failed:
            log_tool_call(event.tool_name or "", False, event.duration_ms)

    return bus.subscribe_all(_observe)
