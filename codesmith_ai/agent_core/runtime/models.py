"""Loop configuration, turn result and LangGraph state types.

- ``AgentLoopConfig`` holds the knobs of the agent loop.
- ``TurnResult`` is what ``AgentOrchestrator.run_turn`` hands back.
- ``_GraphState`` is the state passed between LangGraph nodes. It wraps the
  frozen ``AgentState``; nodes replace it wholesale and record where the graph
  goes next in ``_route``.
"""

from dataclasses import dataclass
from typing import NotRequired, Optional, Required, TypedDict

from pydantic import BaseModel, Field

from codesmith_ai.core.config import Settings, settings as default_settings

from ..schemas.domain import AgentState, CompletionStatus, Trace


class AgentLoopConfig(BaseModel):
    """Agent loop configuration.

    ``max_iterations`` caps the number of reasoning cycles per turn. Reaching it
    is not an error: the turn ends with a best-effort response.
    ``history_carry_limit`` bounds how many history entries from earlier turns
    are handed to the next turn as ``previous_history``.
    """

    max_iterations: int = Field(default=15, gt=0)
    history_carry_limit: int = Field(default=50, gt=0)

    model_config = {"frozen": True}

    @property
    def recursion_limit(self) -> int:
        """LangGraph super-step budget: every cycle visits at most three nodes."""
        return self.max_iterations * 5 + 10

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AgentLoopConfig":
        s = settings or default_settings
        return cls(max_iterations=s.max_iterations)


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one turn."""

    response: str
    state: AgentState
    trace: Optional[Trace]
    iteration_exhausted: bool = False
    cancelled: bool = False

    @property
    def status(self) -> CompletionStatus:
        return self.state.completion_status


class _GraphState(TypedDict):
    """LangGraph state for a single turn.

    Required keys:

    - ``state``: the current immutable ``AgentState``.
    - ``trace_id``: the turn's trace.

    Optional keys:

    - ``_route``: next node chosen by the node that just ran.
    - ``_trace``: the closed trace, set by the ``respond`` node.
    """

    state: Required[AgentState]
    trace_id: Required[str]
    _route: NotRequired[str]
    _trace: NotRequired[Optional[Trace]]
