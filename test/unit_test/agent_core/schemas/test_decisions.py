from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from codesmith_ai.agent_core.schemas import (
    ActionKind,
    AnalysisDecision,
    CorrectionDecision,
    PhaseDecision,
    ReasoningDecision,
    ReflectionDecision,
)


def test_tool_action_requires_tool_name() -> None:
    with pytest.raises(ValidationError):
        ReasoningDecision(action="tool", reasoning="need a file")
    with pytest.raises(ValidationError):
        ReasoningDecision(action="tool", tool_name="   ")

    ok = ReasoningDecision(action="tool", tool_name="filesystem.getWorkspaceFiles", params=None)
    assert ok.params == {}
    assert ok.action == ActionKind.tool


def test_respond_and_prompt_actions_need_no_tool() -> None:
    assert ReasoningDecision(action="respond", response="done").response == "done"
    assert ReasoningDecision(action="prompt", reasoning="think").tool_name is None


def test_unknown_action_rejected() -> None:
    with pytest.raises(ValidationError):
        ReasoningDecision(action="dance")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (True, True),
        (False, False),
        ("true", True),
        ("Yes", True),
        ("1", True),
        (1, True),
        ("maybe", False),
        ("", False),
        (None, False),
        (0, False),
        (2, False),
    ],
)
def test_ambiguous_needs_correction_is_false(raw, expected) -> None:
    decision = ReflectionDecision(is_successful=True, needs_correction=raw)
    assert decision.needs_correction is expected


def test_missing_needs_correction_defaults_false() -> None:
    assert ReflectionDecision.model_validate({"is_successful": False}).needs_correction is False


def test_string_insights_become_observations() -> None:
    decision = ReflectionDecision(is_successful=True, insights=["file listed", {"type": "warning", "content": "big"}])

    assert [(i.type, i.content) for i in decision.insights] == [("observation", "file listed"), ("warning", "big")]


def test_confidence_bounds() -> None:
    with pytest.raises(ValidationError):
        ReflectionDecision(is_successful=True, confidence=1.5)


def test_correction_single_step_plan_and_next_action() -> None:
    decision = CorrectionDecision(
        revised_plan="read the file first",
        next_action={"action": "tool", "tool_name": "filesystem.getFileContents", "params": {"file_path": "a"}},
    )
    assert decision.revised_plan == ["read the file first"]
    assert decision.next_action.tool_name == "filesystem.getFileContents"

    with pytest.raises(ValidationError):
        CorrectionDecision(revised_plan=[], next_action={"action": "tool"})


def test_phase_tag_discriminates_decisions() -> None:
    adapter = TypeAdapter(PhaseDecision)

    assert isinstance(adapter.validate_python({"phase": "initial_analysis", "intent": "q", "objective": "o"}), AnalysisDecision)
    assert isinstance(adapter.validate_python({"phase": "reflection", "is_successful": True}), ReflectionDecision)
    with pytest.raises(ValidationError):
        adapter.validate_python({"phase": "action", "action": "respond"})


def test_decision_for_one_phase_is_not_accepted_by_another() -> None:
    with pytest.raises(ValidationError):
        ReasoningDecision.model_validate({"phase": "reflection", "action": "respond"})
    with pytest.raises(ValidationError):
        AnalysisDecision.model_validate({"intent": "q", "objective": "o", "unexpected": 1})
