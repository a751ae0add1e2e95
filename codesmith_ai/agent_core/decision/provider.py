from __future__ import annotations

"""Decision provider contract.

The orchestrator asks a ``DecisionProvider`` what to do in every phase except
Action. Implementations may call a language model, run rules, or replay
fixtures; the orchestrator validates whatever comes back against the phase
schema registered under ``decision.<phase>`` before trusting it.
"""

from typing import Any, Dict, Mapping, Protocol, Type, Union

from pydantic import BaseModel

from ..schemas import (
    AgentState,
    AnalysisDecision,
    CorrectionDecision,
    Phase,
    ReasoningDecision,
    ReflectionDecision,
)
from ..validation import SchemaValidator

DecisionPayload = Union[BaseModel, Mapping[str, Any]]

DECISION_SCHEMAS: Dict[Phase, Type[BaseModel]] = {
    Phase.initial_analysis: AnalysisDecision,
    Phase.reasoning: ReasoningDecision,
    Phase.reflection: ReflectionDecision,
    Phase.correction: CorrectionDecision,
}


def decision_schema_name(phase: Phase) -> str:
    return f"decision.{phase.value}"


def register_decision_schemas(validator: SchemaValidator) -> None:
    """Register every phase decision model under ``decision.<phase>``."""
    for phase, schema in DECISION_SCHEMAS.items():
        validator.register(decision_schema_name(phase), schema)


class DecisionProvider(Protocol):
    """Produces the structured decision for ``phase`` given a state snapshot."""

    async def decide(self, phase: Phase, state: AgentState) -> DecisionPayload: ...
