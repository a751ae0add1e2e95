"""Phase system prompts and state rendering for model-backed decisions."""

import json
from typing import Any, Dict, List

from ..schemas import AgentState, HistoryEntry, Phase

RECENT_HISTORY = 10

_PREAMBLE = (
    "You are a coding assistant working inside the user's workspace. "
    "You work in phases: initial analysis, reasoning, action, reflection and correction. "
    "Always answer with the structured output requested for the current phase."
)

SYSTEM_PROMPTS: Dict[Phase, str] = {
    Phase.initial_analysis: (
        "{preamble}\n\n"
        "PHASE: initial analysis.\n"
        "Read the user's message and extract:\n"
        "- intent: the kind of request (question, bug fix, refactor, explanation, file operation, ...)\n"
        "- objective: one sentence describing what a complete answer achieves\n"
        "- entities: specific file names, symbols, libraries or concepts mentioned\n\n"
        "Tools available later in the turn:\n{tools}"
    ),
    Phase.reasoning: (
        "{preamble}\n\n"
        "PHASE: reasoning.\n"
        "Decide the single next action towards the objective:\n"
        "- action=tool: call one of the tools below; set tool_name and params exactly as the tool expects\n"
        "- action=prompt: think without side effects; put the conclusion in reasoning\n"
        "- action=respond: you can answer now; put the complete user-facing answer in response\n"
        "Prefer respond as soon as the history holds enough information.\n\n"
        "Tools:\n{tools}"
    ),
    Phase.reflection: (
        "{preamble}\n\n"
        "PHASE: reflection.\n"
        "Judge the outcome of the last action against the objective.\n"
        "- is_successful: whether the action did what it was meant to do\n"
        "- needs_correction: true only if the plan must change (wrong tool, bad parameters, failed call)\n"
        "- insights: short observations, learnings or warnings for the next step\n"
        "- confidence: 0.0 to 1.0"
    ),
    Phase.correction: (
        "{preamble}\n\n"
        "PHASE: correction.\n"
        "The last action did not work. Identify the root cause, write a revised plan as a list of steps, "
        "and give the immediate next_action (tool, prompt or respond) that starts the revised plan.\n\n"
        "Tools:\n{tools}"
    ),
}


def system_prompt(phase: Phase, tool_catalogue: str) -> str:
    return SYSTEM_PROMPTS[phase].format(preamble=_PREAMBLE, tools=tool_catalogue)


def _entry(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "phase": entry.phase.value,
        "iteration": entry.iteration,
        "status": entry.status.value,
        "data": entry.data,
    }


def render_state(phase: Phase, state: AgentState) -> str:
    """Render the parts of ``state`` a model needs for ``phase`` as a prompt."""
    snapshot: Dict[str, Any] = {
        "user_message": state.user_message,
        "objective": state.objective or None,
        "intent": state.intent,
        "entities": list(state.entities),
        "iteration": state.iteration_count,
        "max_iterations": state.max_iterations,
    }
    if state.project_context:
        snapshot["project_context"] = state.project_context
    if state.editor_context:
        snapshot["editor_context"] = state.editor_context
    if state.previous_history and phase == Phase.initial_analysis:
        snapshot["previous_turn"] = [_entry(e) for e in state.previous_history[-RECENT_HISTORY:]]

    recent: List[Dict[str, Any]] = [_entry(e) for e in state.history[-RECENT_HISTORY:]]
    if recent:
        snapshot["history"] = recent
    if phase in (Phase.reflection, Phase.correction) and state.action_result is not None:
        snapshot["last_action"] = state.action_result.model_dump(mode="json")
    if phase == Phase.correction and state.reflection_result is not None:
        snapshot["reflection"] = state.reflection_result.model_dump(mode="json")

    body = json.dumps(snapshot, indent=2, default=str)
    return f"Current phase: {phase.value}\n\nAgent state:\n{body}"
