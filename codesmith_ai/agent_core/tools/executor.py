from __future__ import annotations

"""Validated, traced tool invocation.

``ToolExecutor.execute`` is the only path through which the orchestrator runs a
tool. For each call it:

1. resolves the tool in the ``ToolRegistry`` (missing tool: configuration error,
   raised as-is and never retried);
2. validates the parameters against the tool's input schema before any side
   effect (caller error, no trace step is opened);
   then asks the ``PermissionPolicy`` for the tool's required permissions (a
   refused call is reported like a validation failure and never runs);
3. opens a ``tool`` trace step carrying the *validated* parameters;
4. awaits the tool handler;
5. validates the result against the tool's output schema when one is declared
   (contract violation);
6. closes the step and publishes ``toolCompleted`` or ``toolFailed``.

Every failure after resolution is re-raised as a ``ToolExecutionError``
subclass carrying the tool name and underlying cause.

When no ``trace_id`` is given the executor owns an ad-hoc trace around the
single call; otherwise the caller owns the trace lifecycle.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..errors import (
    SchemaValidationError,
    ToolContractViolationError,
    ToolExecutionError,
    ToolInputValidationError,
    ToolPermissionDeniedError,
    ToolRuntimeError,
)
from ..events import EventBus, EventKind
from ..policy import PermissionPolicy
from ..schemas.domain import TraceStepType
from ..tracing import TraceRecorder
from ..validation import SchemaValidator
from .registry import ToolRegistry

logger = logging.getLogger(__name__)


def to_plain(value: Any) -> Any:
    """Render tool inputs/outputs as JSON-compatible data for traces and state."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


class ToolExecutor:
    """Wraps registry lookups with validation, tracing and event emission."""

    def __init__(
        self,
        registry: ToolRegistry,
        validator: SchemaValidator,
        recorder: TraceRecorder,
        event_bus: EventBus,
        permissions: Optional[PermissionPolicy] = None,
    ) -> None:
        self._registry = registry
        self._permissions = permissions or PermissionPolicy()
        self._validator = validator
        self._recorder = recorder
        self._bus = event_bus

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def permissions(self) -> PermissionPolicy:
        return self._permissions

    async def execute(
        self,
        tool_name: str,
        params: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> Any:
        """
        Execute ``tool_name`` with ``params``.

        Args:
            tool_name: Registered dot-namespaced tool name.
            params: Raw parameters, validated against the tool's input schema.
            trace_id: Trace owned by the caller. When omitted an ad-hoc trace is
                opened and closed around this call.
            conversation_id: Copied onto published events.

        Returns:
            The validated result (an ``output_schema`` instance when declared,
            otherwise the handler's raw return value).

        Raises:
            ToolNotFoundError: The tool is not registered.
            ToolExecutionError: Validation, contract or runtime failure.
        """
        tool = self._registry.get(tool_name)

        owns_trace = trace_id is None
        if owns_trace:
            trace_id = self._recorder.start(
                f"Tool: {tool_name}",
                {"tool_name": tool_name, "params": params},
                conversation_id=conversation_id,
            )

        try:
            result = await self._run(tool, params or {}, trace_id, conversation_id)
        except ToolExecutionError as exc:
            if owns_trace:
                self._recorder.fail(trace_id, exc)
            raise
        except asyncio.CancelledError:
            if owns_trace:
                self._recorder.fail(trace_id, "cancelled")
            raise

        if owns_trace:
            self._recorder.end(trace_id, {"tool_name": tool_name, "result": to_plain(result)})
        return result

    async def _run(self, tool, params: Dict[str, Any], trace_id: str, conversation_id: Optional[str]) -> Any:
        name = tool.name
        try:
            validated = self._validator.validate_with(
                tool.input_schema,
                params,
                schema_name=f"tool:{name}:input",
                conversation_id=conversation_id,
                trace_id=trace_id,
            )
        except SchemaValidationError as exc:
            error = ToolInputValidationError(name, exc)
            logger.warning(f"Rejected call to '{name}' before execution: {exc}")
            self._publish_failure(error, trace_id, conversation_id)
            raise error from exc

        plain_params = to_plain(validated)
        if tool.required_permissions:
            decision = await self._permissions.check(name, tool.required_permissions, plain_params, conversation_id)
            if not decision.allowed:
                error = ToolPermissionDeniedError(name, decision.permission, decision.reason)
                self._publish_failure(error, trace_id, conversation_id)
                raise error

        self._bus.emit(
            EventKind.tool_called,
            conversation_id=conversation_id,
            trace_id=trace_id,
            tool_name=name,
            data={"params": plain_params},
        )
        self._recorder.add_step(
            trace_id,
            type=TraceStepType.tool,
            name=name,
            data={"tool_name": name, "params": plain_params},
        )

        started = time.perf_counter()
        try:
            raw = await tool.handler(validated)
        except asyncio.CancelledError:
            logger.info(f"Tool '{name}' cancelled while running")
            self._recorder.fail_step(trace_id, "cancelled")
            raise
        except Exception as exc:
            error = ToolRuntimeError(name, exc)
            logger.error(f"Tool '{name}' raised: {exc}", exc_info=True)
            self._fail(error, trace_id, conversation_id, started)
            raise error from exc

        result = raw
        if tool.output_schema is not None:
            try:
                result = self._validator.validate_with(
                    tool.output_schema,
                    raw,
                    schema_name=f"tool:{name}:output",
                    conversation_id=conversation_id,
                    trace_id=trace_id,
                )
            except SchemaValidationError as exc:
                error = ToolContractViolationError(name, exc)
                logger.error(f"Contract violation: tool '{name}' returned data outside its output schema: {exc}")
                self._fail(error, trace_id, conversation_id, started)
                raise error from exc

        duration_ms = (time.perf_counter() - started) * 1000
        plain_result = to_plain(result)
        self._recorder.end_step(trace_id, plain_result)
        self._bus.emit(
            EventKind.tool_completed,
            conversation_id=conversation_id,
            trace_id=trace_id,
            tool_name=name,
            duration_ms=duration_ms,
            data={"params": plain_params, "result": plain_result},
        )
        logger.debug(f"Tool '{name}' completed in {duration_ms:.1f}ms")
        return result

    def _fail(self, error: ToolExecutionError, trace_id: str, conversation_id: Optional[str], started: float) -> None:
        self._recorder.fail_step(trace_id, error)
        self._publish_failure(error, trace_id, conversation_id, (time.perf_counter() - started) * 1000)

    def _publish_failure(
        self,
        error: ToolExecutionError,
        trace_id: str,
        conversation_id: Optional[str],
        duration_ms: Optional[float] = None,
    ) -> None:
        self._bus.emit(
            EventKind.tool_failed,
            conversation_id=conversation_id,
            trace_id=trace_id,
            tool_name=error.tool_name,
            error=str(error),
            duration_ms=duration_ms,
            data=error.details(),
        )
