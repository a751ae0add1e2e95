from __future__ import annotations

"""Phase decision models.

Every phase of the agent loop that consults the decision provider receives a
structured decision back. Each decision type is a tagged variant: the
``phase`` literal identifies which phase produced it, so a decision meant for
one phase can never be accepted by another.

- ``AnalysisDecision``: intent/objective/entities extracted from the raw message.
- ``ReasoningDecision``: the next action (``tool``, ``prompt`` or ``respond``).
- ``ReflectionDecision``: verdict on the last action.
- ``CorrectionDecision``: revised plan plus an immediate next action.

The validator registers these under ``decision.<phase>`` and the orchestrator
validates every provider payload before trusting it.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from .base import BaseSchema


class ActionKind(str, Enum):
    tool = "tool"
    prompt = "prompt"
    respond = "respond"


class NextAction(BaseSchema):
    """What the agent should do next.

    - ``tool``: invoke ``tool_name`` with ``params`` through the tool executor.
    - ``prompt``: a non-side-effecting thought; ``reasoning`` is the outcome.
    - ``respond``: finish with ``response`` as the user-facing answer.
    """

    action: ActionKind
    tool_name: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    reasoning: str = ""
    response: Optional[str] = None

    @field_validator("params", mode="before")
    @classmethod
    def _none_params_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def _tool_action_needs_tool_name(self) -> "NextAction":
        if self.action == ActionKind.tool and not (self.tool_name or "").strip():
            raise ValueError("a tool action requires a non-empty tool_name")
        return self


class AnalysisDecision(BaseSchema):
    phase: Literal["initial_analysis"] = "initial_analysis"
    intent: str
    objective: str
    entities: List[str] = Field(default_factory=list)


class ReasoningDecision(NextAction):
    phase: Literal["reasoning"] = "reasoning"


class Insight(BaseSchema):
    type: Literal["observation", "learning", "warning"] = "observation"
    content: str


def _coerce_flag(value: Any) -> bool:
    """Strict truthiness: only an explicit yes counts, anything else is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(value, int):
        return value == 1
    return False


class ReflectionDecision(BaseSchema):
    phase: Literal["reflection"] = "reflection"
    is_successful: bool
    needs_correction: bool = False
    insights: List[Insight] = Field(default_factory=list)
    reflection: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    correction_strategy: Optional[str] = None

    @field_validator("needs_correction", mode="before")
    @classmethod
    def _ambiguous_means_no_correction(cls, value: Any) -> bool:
        return _coerce_flag(value)

    @field_validator("insights", mode="before")
    @classmethod
    def _plain_string_insights(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"content": v} if isinstance(v, str) else v for v in value]
        return value


class CorrectionDecision(BaseSchema):
    phase: Literal["correction"] = "correction"
    revised_plan: List[str]
    next_action: NextAction
    root_cause: Optional[str] = None

    @field_validator("revised_plan", mode="before")
    @classmethod
    def _single_step_plan(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


PhaseDecision = Annotated[
    Union[AnalysisDecision, ReasoningDecision, ReflectionDecision, CorrectionDecision],
    Field(discriminator="phase"),
]
