from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from ..schemas.base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventKind(str, Enum):
    tool_called = "toolCalled"
    tool_completed = "toolCompleted"
    tool_failed = "toolFailed"
    trace_started = "traceStarted"
    trace_step_started = "traceStepStarted"
    trace_step_completed = "traceStepCompleted"
    trace_step_failed = "traceStepFailed"
    trace_step_skipped = "traceStepSkipped"
    trace_completed = "traceCompleted"
    trace_failed = "traceFailed"
    validation_failed = "validationFailed"
    conversation_started = "conversationStarted"
    conversation_ended = "conversationEnded"
    error_occurred = "errorOccurred"


class BusEvent(BaseSchema):
    """Lifecycle notification delivered to event bus subscribers.

    Every event carries a timestamp and at least one of ``conversation_id`` /
    ``trace_id``; the optional typed fields hold the common per-kind details
    and ``data`` carries anything else.
    """

    kind: EventKind
    timestamp: datetime = Field(default_factory=_utc_now)
    conversation_id: Optional[str] = None
    trace_id: Optional[str] = None
    tool_name: Optional[str] = None
    step_id: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[float] = None
    data: Dict[str, Any] = Field(default_factory=dict)
