from __future__ import annotations

"""LangGraph agent loop.

``AgentOrchestrator`` drives one turn of the five-phase cycle::

    initial_analysis -> reasoning -> action -> reflection -+-> reasoning
                                        ^                  +-> correction -> action
                                        |                  +-> respond (done)
                                        +------------------+

Execution model
---------------

- The graph runs over a ``_GraphState`` that wraps a frozen ``AgentState``.
  Nodes never mutate state; they return a replacement and set ``_route``.
- Initial analysis runs once and sets ``iteration_count`` to 1. Each trip
  back to reasoning (or through correction) advances it by one, so
  ``iteration_count <= max_iterations`` always holds.
- Every phase opens a trace step, makes exactly one decision-provider or
  tool-executor call, appends one history entry and closes the step. For
  ``tool`` actions the executor's tool step is the phase's step.

Failure and cancellation
------------------------

- Tool errors are recorded on the action result and flow on to reflection.
- Any other exception inside a phase fails its step, appends a failed history
  entry, publishes ``errorOccurred`` and routes straight to ``respond``.
- ``cancel(conversation_id)`` sets the turn's cancellation event. It is
  checked at every phase boundary and raced against every awaited call; the
  turn then ends ``cancelled`` with a failed trace.

Nothing raised inside a turn escapes ``process_turn``.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar

from langgraph.graph import END, StateGraph

from codesmith_ai.core.monitoring import log_error, log_turn_completed, log_turn_started

from ..decision import DecisionProvider, decision_schema_name
from ..errors import (
    DecisionValidationError,
    SchemaValidationError,
    ToolExecutionError,
    ToolNotFoundError,
    TurnCancelledError,
)
from ..events import EventBus, EventKind
from ..repos import AgentStateRepository, TraceRepository
from ..schemas import (
    ActionKind,
    ActionOutcome,
    AgentState,
    CompletionStatus,
    EntryStatus,
    HistoryEntry,
    Phase,
    ReasoningDecision,
    ToolExecutionRecord,
    TraceStepStatus,
    TraceStepType,
)
from ..tools import ToolExecutor
from ..tools.executor import to_plain
from ..tracing import TraceRecorder
from ..validation import SchemaValidator
from .models import AgentLoopConfig, TurnResult, _GraphState
from .response import compose_response

logger = logging.getLogger(__name__)

T = TypeVar("T")

RESPOND = "respond"


class AgentOrchestrator:
    """Run agent turns with tracing, events and per-conversation state.

    Turns for different conversations may run concurrently. Turns for the same
    conversation are serialized: a new turn waits for the running one to finish
    and then starts from its saved state.

    Per-conversation locks exist only while a turn for that conversation is
    running or queued. The final state of each conversation's last turn is
    cached in memory so the next turn can continue from it; call ``forget`` to
    drop that cache entry once a conversation is closed.
    """

    def __init__(
        self,
        decision_provider: DecisionProvider,
        executor: ToolExecutor,
        recorder: TraceRecorder,
        event_bus: EventBus,
        validator: SchemaValidator,
        state_repository: Optional[AgentStateRepository] = None,
        trace_repository: Optional[TraceRepository] = None,
        config: Optional[AgentLoopConfig] = None,
    ) -> None:
        """
        Initialize the AgentOrchestrator.

        Args:
            decision_provider: Produces the decision for every non-action phase.
            executor: The only path through which tools run.
            recorder: Owns the per-turn traces.
            event_bus: Receives lifecycle events.
            validator: Must have the ``decision.<phase>`` schemas registered.
            state_repository: Optional persistence for final turn states.
            trace_repository: Optional persistence for closed traces.
            config: Loop configuration; defaults to ``AgentLoopConfig()``.
        """
        self._provider = decision_provider
        self._executor = executor
        self._recorder = recorder
        self._bus = event_bus
        self._validator = validator
        self._state_repo = state_repository
        self._trace_repo = trace_repository
        self._config = config or AgentLoopConfig()

        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}
        self._states: Dict[str, AgentState] = {}
        self._graph = self._build_graph()

    @property
    def config(self) -> AgentLoopConfig:
        return self._config

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("initial_analysis", self._node_initial_analysis)
        g.add_node("reasoning", self._node_reasoning)
        g.add_node("action", self._node_action)
        g.add_node("reflection", self._node_reflection)
        g.add_node("correction", self._node_correction)
        g.add_node(RESPOND, self._node_respond)

        g.set_entry_point("initial_analysis")
        g.add_conditional_edges(
            "initial_analysis", self._route, {"reasoning": "reasoning", RESPOND: RESPOND}
        )
        g.add_conditional_edges("reasoning", self._route, {"action": "action", RESPOND: RESPOND})
        g.add_conditional_edges("action", self._route, {"reflection": "reflection", RESPOND: RESPOND})
        g.add_conditional_edges(
            "reflection",
            self._route,
            {"reasoning": "reasoning", "correction": "correction", RESPOND: RESPOND},
        )
        g.add_conditional_edges("correction", self._route, {"action": "action", RESPOND: RESPOND})
        g.add_edge(RESPOND, END)
        return g.compile()

    @staticmethod
    def _route(gs: _GraphState) -> str:
        return gs.get("_route", RESPOND)

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    async def process_turn(
        self,
        conversation_id: str,
        user_message: str,
        context_data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Run one turn and return the final response text."""
        result = await self.run_turn(conversation_id, user_message, context_data)
        return result.response

    async def run_turn(
        self,
        conversation_id: str,
        user_message: str,
        context_data: Optional[Dict[str, Any]] = None,
    ) -> TurnResult:
        """
        Run one turn and return the full result.

        Args:
            conversation_id: Conversation the turn belongs to.
            user_message: The user's input for this turn.
            context_data: Optional ``project_context`` / ``editor_context``
                snapshots. Any other keys are merged into the project context.

        Returns:
            TurnResult with the response, terminal state and closed trace.
        """
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        if lock.locked():
            logger.info(f"Turn for conversation {conversation_id} queued behind the running turn")
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                self._cancel_events[conversation_id] = asyncio.Event()
                try:
                    return await self._run_locked(conversation_id, user_message, context_data)
                finally:
                    self._cancel_events.pop(conversation_id, None)
        finally:
            self._release_lock(conversation_id, lock)

    def _release_lock(self, conversation_id: str, lock: asyncio.Lock) -> None:
        remaining = self._lock_users.get(conversation_id, 1) - 1
        if remaining > 0:
            self._lock_users[conversation_id] = remaining
            return
        self._lock_users.pop(conversation_id, None)
        if self._locks.get(conversation_id) is lock:
            del self._locks[conversation_id]

    def cancel(self, conversation_id: str) -> bool:
        """
        Signal the running turn of ``conversation_id`` to stop.

        Returns:
            True if a running turn was signalled, False if none was running.
        """
        event = self._cancel_events.get(conversation_id)
        if event is None:
            logger.debug(f"cancel: no running turn for conversation {conversation_id}")
            return False
        logger.info(f"Cancellation requested for conversation {conversation_id}")
        event.set()
        return True

    def get_state(self, conversation_id: str) -> Optional[AgentState]:
        """Return the cached final state of the conversation's last turn."""
        return self._states.get(conversation_id)

    def forget(self, conversation_id: str) -> None:
        """Drop the cached state of a conversation (the repository is untouched)."""
        self._states.pop(conversation_id, None)

    @property
    def active_conversations(self) -> List[str]:
        """Conversations with a running or queued turn."""
        return sorted(self._locks)

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------

    async def _previous_state(self, conversation_id: str) -> Optional[AgentState]:
        cached = self._states.get(conversation_id)
        if cached is not None or self._state_repo is None:
            return cached
        try:
            return await self._state_repo.get(conversation_id)
        except Exception as e:
            logger.error(f"Failed to load previous state for conversation {conversation_id}: {e}", exc_info=True)
            return None

    def _carried_history(self, previous: Optional[AgentState]) -> Tuple[HistoryEntry, ...]:
        """History visible to the next turn: every earlier turn, newest entries kept."""
        if previous is None:
            return ()
        carried = tuple(previous.previous_history) + tuple(previous.history)
        return carried[-self._config.history_carry_limit :]

    def _initial_state(
        self,
        conversation_id: str,
        user_message: str,
        context_data: Optional[Dict[str, Any]],
        previous: Optional[AgentState],
        trace_id: str,
    ) -> AgentState:
        context = dict(context_data or {})
        editor_context = context.pop("editor_context", None) or {}
        project_context = context.pop("project_context", None) or {}
        project_context = {**context, **project_context}
        return AgentState(
            conversation_id=conversation_id,
            user_message=user_message,
            objective=user_message,
            max_iterations=self._config.max_iterations,
            project_context=project_context,
            editor_context=editor_context,
            previous_history=self._carried_history(previous),
            trace_id=trace_id,
        )

    async def _run_locked(
        self,
        conversation_id: str,
        user_message: str,
        context_data: Optional[Dict[str, Any]],
    ) -> TurnResult:
        started = time.perf_counter()
        previous = await self._previous_state(conversation_id)

        trace_id = self._recorder.start(
            f"Turn: {conversation_id}",
            {"user_message": user_message, "context_keys": sorted(context_data or {})},
            conversation_id=conversation_id,
        )
        state = self._initial_state(conversation_id, user_message, context_data, previous, trace_id)

        self._bus.emit(
            EventKind.conversation_started,
            conversation_id=conversation_id,
            trace_id=trace_id,
            data={"user_message": user_message, "max_iterations": state.max_iterations},
        )
        log_turn_started(conversation_id, trace_id, user_message)

        trace = None
        try:
            final_gs = await self._graph.ainvoke(
                {"state": state, "trace_id": trace_id},
                config={"recursion_limit": self._config.recursion_limit},
            )
            final_state: AgentState = final_gs["state"]
            trace = final_gs.get("_trace")
            response = final_state.final_response or compose_response(final_state)
        except asyncio.CancelledError:
            self._recorder.fail(trace_id, "turn task cancelled")
            self._bus.emit(
                EventKind.conversation_ended,
                conversation_id=conversation_id,
                trace_id=trace_id,
                duration_ms=(time.perf_counter() - started) * 1000,
                data={"status": CompletionStatus.cancelled.value},
            )
            raise
        except Exception as exc:
            logger.error(f"Agent loop for conversation {conversation_id} aborted: {exc}", exc_info=True)
            log_error(type(exc).__name__, str(exc), {"conversation_id": conversation_id})
            final_state = state.model_copy(
                update={"completion_status": CompletionStatus.failed, "error": str(exc)}
            )
            response = compose_response(final_state)
            final_state = final_state.model_copy(update={"final_response": response})
            trace = self._recorder.fail(trace_id, exc)

        await self._persist(final_state, trace)

        duration_ms = (time.perf_counter() - started) * 1000
        self._bus.emit(
            EventKind.conversation_ended,
            conversation_id=conversation_id,
            trace_id=trace_id,
            duration_ms=duration_ms,
            data={
                "status": final_state.completion_status.value,
                "iterations": final_state.iteration_count,
                "iteration_exhausted": final_state.iteration_exhausted,
            },
        )
        log_turn_completed(conversation_id, final_state.completion_status.value, duration_ms)

        return TurnResult(
            response=response,
            state=final_state,
            trace=trace,
            iteration_exhausted=final_state.iteration_exhausted,
            cancelled=final_state.completion_status == CompletionStatus.cancelled,
        )

    async def _persist(self, state: AgentState, trace) -> None:
        self._states[state.conversation_id] = state
        if self._state_repo is not None:
            try:
                await self._state_repo.save(state)
            except Exception as e:
                logger.error(f"Failed to save state for conversation {state.conversation_id}: {e}", exc_info=True)
        if self._trace_repo is not None and trace is not None:
            try:
                await self._trace_repo.append(state.conversation_id, trace)
            except Exception as e:
                logger.error(f"Failed to save trace {trace.id}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Phase plumbing
    # ------------------------------------------------------------------

    def _is_cancelled(self, state: AgentState) -> bool:
        event = self._cancel_events.get(state.conversation_id)
        return event is not None and event.is_set()

    async def _cancellable(self, awaitable: Awaitable[T], state: AgentState, phase: Phase) -> T:
        """Await ``awaitable`` unless the turn is cancelled first.

        The inner task never outlives this call: if the caller's own task is
        cancelled while waiting, the inner task is cancelled and awaited before
        ``CancelledError`` propagates.
        """
        event = self._cancel_events.get(state.conversation_id)
        if event is None:
            return await awaitable

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise
        finally:
            waiter.cancel()
        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise TurnCancelledError(state.conversation_id, phase.value)

    def _cancelled_at_boundary(self, state: AgentState, phase: Phase) -> Dict[str, Any]:
        logger.info(f"[{state.conversation_id}] Turn cancelled before phase '{phase.value}'")
        self._recorder.add_step(state.trace_id, name=phase.value, data={"phase": phase.value})
        self._recorder.skip_step(state.trace_id, "cancelled")
        new = state.model_copy(update={"completion_status": CompletionStatus.cancelled})
        return {"state": new, "_route": RESPOND}

    def _interrupted(self, state: AgentState, phase: Phase, step_open: bool) -> Dict[str, Any]:
        logger.info(f"[{state.conversation_id}] Turn cancelled during phase '{phase.value}'")
        if step_open:
            self._recorder.fail_step(state.trace_id, "cancelled")
        entry = HistoryEntry(
            phase=phase,
            iteration=state.iteration_count,
            status=EntryStatus.failed,
            data={"cancelled": True},
        )
        new = state.with_entry(entry, completion_status=CompletionStatus.cancelled)
        return {"state": new, "_route": RESPOND}

    def _phase_failed(self, state: AgentState, phase: Phase, exc: Exception, step_open: bool) -> Dict[str, Any]:
        logger.error(f"[{state.conversation_id}] Phase '{phase.value}' failed: {exc}", exc_info=True)
        if step_open:
            self._recorder.fail_step(state.trace_id, exc)
        data: Dict[str, Any] = {"fatal": True, "error": str(exc), "error_type": type(exc).__name__}
        if isinstance(exc, DecisionValidationError):
            data["violations"] = [v.to_dict() for v in exc.violations]
        entry = HistoryEntry(phase=phase, iteration=state.iteration_count, status=EntryStatus.failed, data=data)
        self._bus.emit(
            EventKind.error_occurred,
            conversation_id=state.conversation_id,
            trace_id=state.trace_id,
            error=str(exc),
            data={"phase": phase.value, "error_type": type(exc).__name__},
        )
        log_error(type(exc).__name__, str(exc), {"conversation_id": state.conversation_id, "phase": phase.value})
        new = state.with_entry(entry, completion_status=CompletionStatus.failed, error=str(exc))
        return {"state": new, "_route": RESPOND}

    async def _decide(self, phase: Phase, state: AgentState):
        """Ask the provider for ``phase`` and validate the answer against its schema."""
        payload = await self._cancellable(self._provider.decide(phase, state), state, phase)
        try:
            return await self._validator.avalidate(
                decision_schema_name(phase),
                payload,
                conversation_id=state.conversation_id,
                trace_id=state.trace_id,
            )
        except SchemaValidationError as exc:
            logger.error(f"Contract violation: decision provider returned an invalid '{phase.value}' decision")
            raise DecisionValidationError(phase.value, exc) from exc

    async def _decision_phase(self, gs: _GraphState, phase: Phase, apply) -> Dict[str, Any]:
        """Run a provider-backed phase: step, decision, history entry, route."""
        state = gs["state"]
        if self._is_cancelled(state):
            return self._cancelled_at_boundary(state, phase)

        self._recorder.add_step(
            state.trace_id,
            type=TraceStepType.prompt,
            name=phase.value,
            data={"phase": phase.value, "iteration": state.iteration_count},
        )
        try:
            decision = await self._decide(phase, state)
            new_state, route = apply(state, decision)
        except TurnCancelledError:
            return self._interrupted(state, phase, step_open=True)
        except Exception as exc:
            return self._phase_failed(state, phase, exc, step_open=True)

        self._recorder.end_step(state.trace_id, {"decision": decision.model_dump(mode="json"), "next": route})
        logger.debug(f"[{state.conversation_id}] {phase.value} -> {route}")
        return {"state": new_state, "_route": route}

    @staticmethod
    def _entry(phase: Phase, iteration: int, decision, status: EntryStatus = EntryStatus.success) -> HistoryEntry:
        return HistoryEntry(
            phase=phase,
            iteration=iteration,
            status=status,
            data=decision.model_dump(mode="json", exclude={"phase"}),
        )

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def _node_initial_analysis(self, gs: _GraphState) -> Dict[str, Any]:
        def apply(state: AgentState, decision):
            new = state.with_entry(
                self._entry(Phase.initial_analysis, 1, decision),
                analysis_result=decision,
                intent=decision.intent,
                objective=decision.objective or state.user_message,
                entities=tuple(decision.entities),
                iteration_count=1,
            )
            return new, "reasoning"

        return await self._decision_phase(gs, Phase.initial_analysis, apply)

    async def _node_reasoning(self, gs: _GraphState) -> Dict[str, Any]:
        def apply(state: AgentState, decision):
            new = state.with_entry(
                self._entry(Phase.reasoning, state.iteration_count, decision),
                reasoning_result=decision,
            )
            return new, "action"

        return await self._decision_phase(gs, Phase.reasoning, apply)

    async def _node_reflection(self, gs: _GraphState) -> Dict[str, Any]:
        def apply(state: AgentState, decision):
            entry = self._entry(Phase.reflection, state.iteration_count, decision)
            action = state.action_result
            responded = action is not None and action.action == ActionKind.respond and action.success

            if responded and decision.is_successful and not decision.needs_correction:
                return state.with_entry(
                    entry, reflection_result=decision, completion_status=CompletionStatus.completed
                ), RESPOND
            if state.iteration_count >= state.max_iterations:
                logger.warning(
                    f"[{state.conversation_id}] Iteration limit {state.max_iterations} reached; ending turn"
                )
                return state.with_entry(
                    entry,
                    reflection_result=decision,
                    completion_status=CompletionStatus.completed,
                    iteration_exhausted=True,
                ), RESPOND
            if decision.needs_correction:
                return state.with_entry(entry, reflection_result=decision), "correction"
            return state.with_entry(
                entry, reflection_result=decision, iteration_count=state.iteration_count + 1
            ), "reasoning"

        return await self._decision_phase(gs, Phase.reflection, apply)

    async def _node_correction(self, gs: _GraphState) -> Dict[str, Any]:
        def apply(state: AgentState, decision):
            iteration = state.iteration_count + 1
            next_step = ReasoningDecision(**decision.next_action.model_dump())
            new = state.with_entry(
                self._entry(Phase.correction, iteration, decision),
                correction_result=decision,
                reasoning_result=next_step,
                iteration_count=iteration,
            )
            return new, "action"

        return await self._decision_phase(gs, Phase.correction, apply)

    async def _node_action(self, gs: _GraphState) -> Dict[str, Any]:
        state = gs["state"]
        phase = Phase.action
        if self._is_cancelled(state):
            return self._cancelled_at_boundary(state, phase)

        decision = state.reasoning_result
        if decision is None:
            return self._phase_failed(state, phase, RuntimeError("no action was planned"), step_open=False)

        try:
            if decision.action == ActionKind.tool:
                new_state = await self._run_tool(state, decision)
            else:
                new_state = self._run_inline(state, decision)
        except TurnCancelledError:
            return self._interrupted(state, phase, step_open=False)
        except Exception as exc:
            trace = self._recorder.get(state.trace_id)
            current = trace.current_step if trace is not None else None
            open_step = current is not None and current.status == TraceStepStatus.running
            return self._phase_failed(state, phase, exc, step_open=open_step)
        return {"state": new_state, "_route": "reflection"}

    async def _run_tool(self, state: AgentState, decision: ReasoningDecision) -> AgentState:
        tool_name = decision.tool_name or ""
        started = time.perf_counter()
        try:
            result = await self._cancellable(
                self._executor.execute(
                    tool_name,
                    decision.params,
                    trace_id=state.trace_id,
                    conversation_id=state.conversation_id,
                ),
                state,
                Phase.action,
            )
        except (ToolExecutionError, ToolNotFoundError) as exc:
            category = getattr(exc, "category", "configuration")
            logger.warning(f"[{state.conversation_id}] Tool '{tool_name}' failed ({category}): {exc}")
            if isinstance(exc, ToolNotFoundError):
                self._bus.emit(
                    EventKind.error_occurred,
                    conversation_id=state.conversation_id,
                    trace_id=state.trace_id,
                    tool_name=tool_name,
                    error=str(exc),
                    data={"phase": Phase.action.value, "category": category},
                )
            return self._record_action(
                state,
                ActionOutcome(
                    action=ActionKind.tool,
                    success=False,
                    tool_name=tool_name,
                    params=decision.params,
                    error=str(exc),
                    error_category=category,
                ),
                (time.perf_counter() - started) * 1000,
            )

        return self._record_action(
            state,
            ActionOutcome(
                action=ActionKind.tool,
                success=True,
                tool_name=tool_name,
                params=decision.params,
                result=to_plain(result),
            ),
            (time.perf_counter() - started) * 1000,
        )

    def _run_inline(self, state: AgentState, decision: ReasoningDecision) -> AgentState:
        """``prompt`` and ``respond`` actions run no tool but still get their own step."""
        step_type = TraceStepType.prompt if decision.action == ActionKind.prompt else TraceStepType.step
        self._recorder.add_step(
            state.trace_id,
            type=step_type,
            name=Phase.action.value,
            data={"action": decision.action.value},
        )
        if decision.action == ActionKind.respond:
            text = (decision.response or "").strip()
            outcome = ActionOutcome(
                action=ActionKind.respond,
                success=bool(text),
                result=text or None,
                error=None if text else "respond action carried no response text",
                error_category=None if text else "validation",
            )
        else:
            outcome = ActionOutcome(action=ActionKind.prompt, success=True, result=decision.reasoning)

        if outcome.success:
            self._recorder.end_step(state.trace_id, {"success": True, "result": outcome.result})
        else:
            self._recorder.fail_step(state.trace_id, outcome.error)
        return self._record_action(state, outcome)

    def _record_action(self, state: AgentState, outcome: ActionOutcome, duration_ms: Optional[float] = None) -> AgentState:
        data: Dict[str, Any] = {
            "action": outcome.action.value,
            "success": outcome.success,
            "tool_name": outcome.tool_name,
            "params": outcome.params,
            "result": outcome.result,
            "error": outcome.error,
            "error_category": outcome.error_category,
        }
        if outcome.action == ActionKind.respond and outcome.success:
            data["response"] = outcome.result
        entry = HistoryEntry(
            phase=Phase.action,
            iteration=state.iteration_count,
            status=EntryStatus.success if outcome.success else EntryStatus.failed,
            data=data,
        )
        updates: Dict[str, Any] = {"action_result": outcome}
        if outcome.action == ActionKind.tool:
            updates["tool_executions"] = state.tool_executions + (
                ToolExecutionRecord(
                    tool_name=outcome.tool_name or "",
                    input=outcome.params,
                    output=outcome.result,
                    error=outcome.error,
                    error_category=outcome.error_category,
                    success=outcome.success,
                    duration_ms=duration_ms,
                ),
            )
        return state.with_entry(entry, **updates)

    async def _node_respond(self, gs: _GraphState) -> Dict[str, Any]:
        state = gs["state"]
        if state.completion_status == CompletionStatus.in_progress:
            state = state.model_copy(update={"completion_status": CompletionStatus.completed})
        response = compose_response(state)
        state = state.model_copy(update={"final_response": response})

        summary = {
            "status": state.completion_status.value,
            "iterations": state.iteration_count,
            "iteration_exhausted": state.iteration_exhausted,
            "response": response,
        }
        if state.completion_status == CompletionStatus.completed:
            trace = self._recorder.end(state.trace_id, summary)
        elif state.completion_status == CompletionStatus.cancelled:
            trace = self._recorder.fail(state.trace_id, "cancelled")
        else:
            trace = self._recorder.fail(state.trace_id, state.error or "turn failed")
        return {"state": state, "_trace": trace}
