"""Schemas and DTOs for the agent core."""

from .decisions import (
    ActionKind,
    AnalysisDecision,
    CorrectionDecision,
    Insight,
    NextAction,
    PhaseDecision,
    ReasoningDecision,
    ReflectionDecision,
)
from .domain import (
    ActionOutcome,
    AgentState,
    CompletionStatus,
    EntryStatus,
    HistoryEntry,
    Phase,
    ToolExecutionRecord,
    Trace,
    TraceStatus,
    TraceStep,
    TraceStepStatus,
    TraceStepType,
)

__all__ = [
    "ActionKind",
    "ActionOutcome",
    "AgentState",
    "AnalysisDecision",
    "CompletionStatus",
    "CorrectionDecision",
    "EntryStatus",
    "HistoryEntry",
    "Insight",
    "NextAction",
    "Phase",
    "PhaseDecision",
    "ReasoningDecision",
    "ReflectionDecision",
    "ToolExecutionRecord",
    "Trace",
    "TraceStatus",
    "TraceStep",
    "TraceStepStatus",
    "TraceStepType",
]
