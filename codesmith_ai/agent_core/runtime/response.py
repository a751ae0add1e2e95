"""Final response composition.

The user-facing text of a turn is derived from ``AgentState.history`` only,
never from the mutable ``*_result`` fields. Failures are explained in plain
language; technical details stay in the trace and event stream.
"""

from typing import List, Optional

from ..schemas.domain import AgentState, CompletionStatus, EntryStatus, HistoryEntry, Phase

FAILURE_MESSAGE = (
    "Sorry, I ran into a problem while working on your request and could not finish it. "
    "Please try again, or rephrase the request."
)
CANCELLED_MESSAGE = "The request was cancelled before it finished."

_PHASE_LABELS = {
    Phase.initial_analysis: "understanding the request",
    Phase.reasoning: "planning the next step",
    Phase.action: "carrying out an action",
    Phase.reflection: "reviewing the result of an action",
    Phase.correction: "adjusting the plan",
}


def _last_answer(history: List[HistoryEntry]) -> Optional[str]:
    for entry in reversed(history):
        if (
            entry.phase == Phase.action
            and entry.status == EntryStatus.success
            and entry.data.get("action") == "respond"
            and entry.data.get("response")
        ):
            return str(entry.data["response"])
    return None


def _tools_run(history: List[HistoryEntry]) -> List[str]:
    return [
        str(e.data.get("tool_name"))
        for e in history
        if e.phase == Phase.action and e.status == EntryStatus.success and e.data.get("action") == "tool"
    ]


def _last_reasoning(history: List[HistoryEntry]) -> Optional[str]:
    for entry in reversed(history):
        if entry.phase in (Phase.reasoning, Phase.correction) and entry.status == EntryStatus.success:
            text = entry.data.get("reasoning") or entry.data.get("root_cause")
            if text:
                return str(text)
    return None


def _failed_phase(history: List[HistoryEntry]) -> Optional[Phase]:
    for entry in reversed(history):
        if entry.status == EntryStatus.failed and entry.data.get("fatal"):
            return entry.phase
    return None


def compose_response(state: AgentState) -> str:
    """Build the user-facing response for a terminal ``state``."""
    history = list(state.history)

    if state.completion_status == CompletionStatus.cancelled:
        tools = _tools_run(history)
        if tools:
            return f"{CANCELLED_MESSAGE} Actions already completed were not undone: {', '.join(tools)}."
        return CANCELLED_MESSAGE

    if state.completion_status == CompletionStatus.failed:
        phase = _failed_phase(history)
        if phase is None:
            return FAILURE_MESSAGE
        return f"Sorry, something went wrong while {_PHASE_LABELS[phase]}, so I could not finish your request. Please try again."

    answer = _last_answer(history)
    if not state.iteration_exhausted:
        return answer or "I finished working on your request but have nothing further to add."

    note = (
        f"I reached the limit of {state.max_iterations} reasoning steps before fully completing the request, "
        "so this answer may be incomplete."
    )
    if answer:
        return f"{answer}\n\n{note}"

    lines = [note]
    tools = _tools_run(history)
    if tools:
        lines.append("Steps completed: " + ", ".join(tools) + ".")
    reasoning = _last_reasoning(history)
    if reasoning:
        lines.append(f"Where I got to: {reasoning}")
    return "\n".join(lines)
