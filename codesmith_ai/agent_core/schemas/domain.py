from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import Field, model_validator

from .base import BaseSchema, FrozenSchema
from .decisions import (
    ActionKind,
    AnalysisDecision,
    CorrectionDecision,
    ReasoningDecision,
    ReflectionDecision,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    initial_analysis = "initial_analysis"
    reasoning = "reasoning"
    action = "action"
    reflection = "reflection"
    correction = "correction"


class CompletionStatus(str, Enum):
    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class EntryStatus(str, Enum):
    success = "success"
    failed = "failed"


class TraceStatus(str, Enum):
    running = "running"
    completed = "completed"
    failed = "failed"


class TraceStepStatus(str, Enum):
    running = "running"
    completed = "completed"
    failed = "failed"
    skipped = "skipped"


class TraceStepType(str, Enum):
    step = "step"
    tool = "tool"
    prompt = "prompt"
    event = "event"


class HistoryEntry(FrozenSchema):
    """One phase execution. Immutable once appended to ``AgentState.history``."""

    phase: Phase
    iteration: int
    timestamp: datetime = Field(default_factory=_utc_now)
    status: EntryStatus = EntryStatus.success
    data: Dict[str, Any] = Field(default_factory=dict)


class ToolExecutionRecord(FrozenSchema):
    tool_name: str
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    error: Optional[str] = None
    error_category: Optional[str] = None
    success: bool
    duration_ms: Optional[float] = None
    timestamp: datetime = Field(default_factory=_utc_now)


class ActionOutcome(FrozenSchema):
    """Outcome of the Action phase, whatever kind of action ran."""

    action: ActionKind
    success: bool
    tool_name: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    error_category: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)


class AgentState(FrozenSchema):
    """Per-conversation state of one turn.

    The orchestrator is the only writer and never mutates an instance: every
    phase produces a new ``AgentState`` via ``model_copy(update=...)``. The
    ``history`` tuple is append-only and is the source of truth for what
    happened during the turn; ``*_result`` fields only mirror the latest
    decision of each phase.
    """

    conversation_id: str
    user_message: str
    objective: str = ""
    intent: Optional[str] = None
    entities: Tuple[str, ...] = ()

    iteration_count: int = 0
    max_iterations: int = Field(default=15, gt=0)
    completion_status: CompletionStatus = CompletionStatus.in_progress
    iteration_exhausted: bool = False

    history: Tuple[HistoryEntry, ...] = ()
    tool_executions: Tuple[ToolExecutionRecord, ...] = ()

    analysis_result: Optional[AnalysisDecision] = None
    reasoning_result: Optional[ReasoningDecision] = None
    action_result: Optional[ActionOutcome] = None
    reflection_result: Optional[ReflectionDecision] = None
    correction_result: Optional[CorrectionDecision] = None

    project_context: Dict[str, Any] = Field(default_factory=dict)
    editor_context: Dict[str, Any] = Field(default_factory=dict)
    previous_history: Tuple[HistoryEntry, ...] = ()

    trace_id: Optional[str] = None
    error: Optional[str] = None
    final_response: Optional[str] = None
    started_at: datetime = Field(default_factory=_utc_now)

    @model_validator(mode="after")
    def _iteration_within_cap(self) -> "AgentState":
        if self.iteration_count > self.max_iterations:
            raise ValueError(
                f"iteration_count ({self.iteration_count}) exceeds max_iterations ({self.max_iterations})"
            )
        return self

    def with_entry(self, entry: HistoryEntry, **updates: Any) -> "AgentState":
        """Return a new state with ``entry`` appended and ``updates`` applied."""
        iteration = updates.get("iteration_count", self.iteration_count)
        if iteration > self.max_iterations:
            raise ValueError(f"iteration_count ({iteration}) exceeds max_iterations ({self.max_iterations})")
        updates["history"] = self.history + (entry,)
        return self.model_copy(update=updates)

    def entries_for(self, phase: Phase) -> List[HistoryEntry]:
        return [e for e in self.history if e.phase == phase]

    @property
    def is_terminal(self) -> bool:
        return self.completion_status != CompletionStatus.in_progress


class TraceStep(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    type: TraceStepType = TraceStepType.step
    name: Optional[str] = None
    start_time: datetime = Field(default_factory=_utc_now)
    end_time: Optional[datetime] = None
    status: TraceStepStatus = TraceStepStatus.running
    data: Any = None
    result: Any = None
    error: Any = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000.0


class Trace(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    start_time: datetime = Field(default_factory=_utc_now)
    end_time: Optional[datetime] = None
    status: TraceStatus = TraceStatus.running
    initial_data: Any = None
    steps: List[TraceStep] = Field(default_factory=list)
    final_result: Any = None
    error: Any = None

    @property
    def current_step(self) -> Optional[TraceStep]:
        return self.steps[-1] if self.steps else None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000.0
