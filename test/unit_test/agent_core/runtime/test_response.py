from __future__ import annotations

from codesmith_ai.agent_core.runtime.response import CANCELLED_MESSAGE, FAILURE_MESSAGE, compose_response
from codesmith_ai.agent_core.schemas import AgentState, CompletionStatus, EntryStatus, HistoryEntry, Phase


def _state(*entries: HistoryEntry, **updates) -> AgentState:
    base = AgentState(conversation_id="c1", user_message="hi", max_iterations=3, iteration_count=1)
    return base.model_copy(update={"history": tuple(entries), **updates})


def _tool(name: str, ok: bool = True) -> HistoryEntry:
    return HistoryEntry(
        phase=Phase.action,
        iteration=1,
        status=EntryStatus.success if ok else EntryStatus.failed,
        data={"action": "tool", "tool_name": name, "success": ok},
    )


def _answer(text: str) -> HistoryEntry:
    return HistoryEntry(
        phase=Phase.action, iteration=1, data={"action": "respond", "success": True, "response": text}
    )


def test_completed_uses_last_answer() -> None:
    state = _state(_answer("first"), _answer("second"), completion_status=CompletionStatus.completed)

    assert compose_response(state) == "second"


def test_answer_comes_from_history_not_result_fields() -> None:
    state = _state(completion_status=CompletionStatus.completed, final_response=None)

    assert "nothing further" in compose_response(state)


def test_exhausted_with_answer_appends_limit_note() -> None:
    state = _state(
        _answer("partial answer"),
        completion_status=CompletionStatus.completed,
        iteration_exhausted=True,
    )

    text = compose_response(state)

    assert text.startswith("partial answer")
    assert "limit of 3 reasoning steps" in text


def test_exhausted_without_answer_summarizes_progress() -> None:
    reasoning = HistoryEntry(phase=Phase.reasoning, iteration=1, data={"reasoning": "need to read setup.py"})
    state = _state(
        _tool("filesystem.getFileContents"),
        _tool("search.searchWorkspace", ok=False),
        reasoning,
        completion_status=CompletionStatus.completed,
        iteration_exhausted=True,
    )

    text = compose_response(state)

    assert "Steps completed: filesystem.getFileContents." in text
    assert "search.searchWorkspace" not in text
    assert "Where I got to: need to read setup.py" in text


def test_failed_names_the_phase_without_internals() -> None:
    fatal = HistoryEntry(
        phase=Phase.reflection,
        iteration=1,
        status=EntryStatus.failed,
        data={"fatal": True, "error": "KeyError: 'x'", "error_type": "KeyError"},
    )
    state = _state(fatal, completion_status=CompletionStatus.failed, error="KeyError: 'x'")

    text = compose_response(state)

    assert "reviewing the result of an action" in text
    assert "KeyError" not in text


def test_failed_without_fatal_entry() -> None:
    assert compose_response(_state(completion_status=CompletionStatus.failed)) == FAILURE_MESSAGE


def test_cancelled_lists_completed_tools() -> None:
    assert compose_response(_state(completion_status=CompletionStatus.cancelled)) == CANCELLED_MESSAGE

    state = _state(_tool("filesystem.writeFile"), completion_status=CompletionStatus.cancelled)
    assert "filesystem.writeFile" in compose_response(state)
