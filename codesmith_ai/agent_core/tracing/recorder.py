from __future__ import annotations

"""Append-only execution ledger for agent turns.

A trace is opened when a turn (or an ad-hoc tool call) starts and closed
exactly once. Steps follow strict stack discipline: the current step is always
the last element of ``Trace.steps`` and at most one step is running at a time.

Tracing must never crash business logic, so misuse (unknown trace id, no open
step, opening a step while another is running) is logged as a warning and
otherwise ignored.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..events import EventBus, EventKind
from ..schemas.domain import (
    Trace,
    TraceStatus,
    TraceStep,
    TraceStepStatus,
    TraceStepType,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _error_text(error: Any) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, BaseException):
        return f"{type(error).__name__}: {error}"
    return str(error)


class TraceRecorder:
    """Owns the active-trace map and publishes ``trace*`` events."""

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        self._bus = event_bus
        self._active: Dict[str, Trace] = {}

    def _emit(self, kind: EventKind, **fields: Any) -> None:
        if self._bus is not None:
            self._bus.emit(kind, **fields)

    def start(self, name: str, initial_data: Any = None, *, conversation_id: Optional[str] = None) -> str:
        """
        Start a new trace.

        Args:
            name: Human-readable trace name (e.g. ``"Turn: <conversation id>"``).
            initial_data: Optional data captured at trace start.
            conversation_id: Conversation the trace belongs to, copied onto events.

        Returns:
            The generated trace id.
        """
        trace = Trace(name=name, initial_data=initial_data)
        self._active[trace.id] = trace
        logger.info(f"[Trace:{trace.id}] Started trace \"{name}\"")
        self._emit(
            EventKind.trace_started,
            trace_id=trace.id,
            conversation_id=conversation_id,
            data={"name": name, "initial_data": initial_data},
        )
        return trace.id

    def get(self, trace_id: str) -> Optional[Trace]:
        """Return a snapshot of an active trace, or None when closed or unknown."""
        trace = self._active.get(trace_id)
        return trace.model_copy(deep=True) if trace is not None else None

    def active_trace_ids(self) -> List[str]:
        return list(self._active)

    def add_step(
        self,
        trace_id: str,
        step_id: Optional[str] = None,
        type: TraceStepType = TraceStepType.step,
        name: Optional[str] = None,
        data: Any = None,
    ) -> Optional[str]:
        """
        Open a new step on an active trace.

        Returns:
            The step id, or None when the step was not opened.
        """
        trace = self._active.get(trace_id)
        if trace is None:
            logger.warning(f"add_step called for unknown trace ID: {trace_id}")
            return None
        current = trace.current_step
        if current is not None and current.status == TraceStepStatus.running:
            logger.warning(
                f"[Trace:{trace_id}] add_step '{name or step_id}' ignored: step '{current.name or current.id}' is still running"
            )
            return None

        step = TraceStep(id=step_id or str(uuid4()), type=type, name=name, data=data)
        trace.steps.append(step)
        logger.debug(f"[Trace:{trace_id}] Step started: {name or step.id} ({type.value})")
        self._emit(
            EventKind.trace_step_started,
            trace_id=trace_id,
            step_id=step.id,
            data={"type": type.value, "name": name, "data": data},
        )
        return step.id

    def _open_step(self, trace_id: str, operation: str) -> Optional[TraceStep]:
        trace = self._active.get(trace_id)
        if trace is None:
            logger.warning(f"{operation} called for unknown trace ID: {trace_id}")
            return None
        step = trace.current_step
        if step is None or step.status != TraceStepStatus.running:
            logger.warning(f"{operation} called with no open step on trace: {trace_id}")
            return None
        return step

    def end_step(self, trace_id: str, result: Any = None) -> None:
        """Close the current step as completed."""
        step = self._open_step(trace_id, "end_step")
        if step is None:
            return
        step.end_time = _utc_now()
        step.status = TraceStepStatus.completed
        step.result = result
        logger.debug(f"[Trace:{trace_id}] Step completed: {step.name or step.id}. Duration: {step.duration_ms:.1f}ms")
        self._emit(
            EventKind.trace_step_completed,
            trace_id=trace_id,
            step_id=step.id,
            duration_ms=step.duration_ms,
            data={"name": step.name, "result": result},
        )

    def fail_step(self, trace_id: str, error: Any) -> None:
        """Close the current step as failed."""
        step = self._open_step(trace_id, "fail_step")
        if step is None:
            return
        step.end_time = _utc_now()
        step.status = TraceStepStatus.failed
        step.error = _error_text(error)
        logger.error(f"[Trace:{trace_id}] Step failed: {step.name or step.id}. Duration: {step.duration_ms:.1f}ms: {step.error}")
        self._emit(
            EventKind.trace_step_failed,
            trace_id=trace_id,
            step_id=step.id,
            duration_ms=step.duration_ms,
            error=step.error,
            data={"name": step.name},
        )

    def skip_step(self, trace_id: str, reason: Optional[str] = None) -> None:
        """Mark the current step as skipped."""
        step = self._open_step(trace_id, "skip_step")
        if step is None:
            return
        step.end_time = _utc_now()
        step.status = TraceStepStatus.skipped
        step.result = {"skipped": True, "reason": reason}
        logger.debug(f"[Trace:{trace_id}] Step skipped: {step.name or step.id}. Reason: {reason or 'No reason provided'}")
        self._emit(
            EventKind.trace_step_skipped,
            trace_id=trace_id,
            step_id=step.id,
            duration_ms=step.duration_ms,
            data={"name": step.name, "reason": reason},
        )

    def _close_dangling_step(self, trace: Trace) -> None:
        step = trace.current_step
        if step is not None and step.status == TraceStepStatus.running:
            logger.warning(f"[Trace:{trace.id}] Closing trace with step '{step.name or step.id}' still running")
            self.skip_step(trace.id, "trace closed")

    def end(self, trace_id: str, final_result: Any = None) -> Optional[Trace]:
        """
        Close a trace as completed and remove it from the active set.

        Returns:
            The closed trace, or None when the id is unknown.
        """
        trace = self._active.get(trace_id)
        if trace is None:
            logger.warning(f"end called for unknown trace ID: {trace_id}")
            return None
        self._close_dangling_step(trace)
        trace.end_time = _utc_now()
        trace.status = TraceStatus.completed
        trace.final_result = final_result
        del self._active[trace_id]
        logger.info(f"[Trace:{trace_id}] Completed trace \"{trace.name}\". Total duration: {trace.duration_ms:.1f}ms")
        self._emit(
            EventKind.trace_completed,
            trace_id=trace_id,
            duration_ms=trace.duration_ms,
            data={"name": trace.name, "final_result": final_result},
        )
        return trace

    def fail(self, trace_id: str, error: Any) -> Optional[Trace]:
        """
        Close a trace as failed and remove it from the active set.

        Returns:
            The closed trace, or None when the id is unknown.
        """
        trace = self._active.get(trace_id)
        if trace is None:
            logger.warning(f"fail called for unknown trace ID: {trace_id}")
            return None
        self._close_dangling_step(trace)
        trace.end_time = _utc_now()
        trace.status = TraceStatus.failed
        trace.error = _error_text(error)
        del self._active[trace_id]
        logger.error(f"[Trace:{trace_id}] FAILED trace \"{trace.name}\". Total duration: {trace.duration_ms:.1f}ms: {trace.error}")
        self._emit(
            EventKind.trace_failed,
            trace_id=trace_id,
            duration_ms=trace.duration_ms,
            error=trace.error,
            data={"name": trace.name},
        )
        return trace

    def clear(self) -> None:
        """Drop every active trace without closing it."""
        self._active.clear()
