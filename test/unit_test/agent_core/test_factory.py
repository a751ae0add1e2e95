from __future__ import annotations

from codesmith_ai.agent_core.decision import PydanticAIDecisionProvider
from codesmith_ai.agent_core.events import EventBus
from codesmith_ai.agent_core.factory import (
    build_default_registry,
    build_orchestrator,
    build_permission_policy,
    build_validator,
)
from codesmith_ai.agent_core.policy import PermissionMode
from codesmith_ai.agent_core.runtime import AgentLoopConfig, AgentOrchestrator
from codesmith_ai.agent_core.tools.builtin.definitions import (
    APPLY_WORKSPACE_EDIT,
    GET_FILE_CONTENTS,
    GET_PROJECT_INFO,
    LIST_FILES,
    SEARCH_WORKSPACE,
    WRITE_FILE,
)
from codesmith_ai.core.config import Settings


def test_default_registry_has_workspace_tools(tmp_path) -> None:
    registry = build_default_registry(tmp_path)

    assert set(registry.names()) == {
        LIST_FILES,
        GET_FILE_CONTENTS,
        WRITE_FILE,
        SEARCH_WORKSPACE,
        GET_PROJECT_INFO,
        APPLY_WORKSPACE_EDIT,
    }


def test_validator_knows_every_decision_schema() -> None:
    validator = build_validator()

    for phase in ("initial_analysis", "reasoning", "reflection", "correction"):
        assert validator.has(f"decision.{phase}")
    assert not validator.has("decision.action")


def test_build_orchestrator_defaults(tmp_path) -> None:
    from pydantic_ai.models.test import TestModel

    settings = Settings(CODESMITH_AI_WORKSPACE_ROOT=str(tmp_path), CODESMITH_AI_MAX_ITERATIONS=4)
    bus = EventBus()

    orchestrator = build_orchestrator(
        decision_provider=PydanticAIDecisionProvider(TestModel(), build_default_registry(tmp_path)),
        settings=settings,
        event_bus=bus,
        configure_logging=False,
    )

    assert isinstance(orchestrator, AgentOrchestrator)
    assert orchestrator.config == AgentLoopConfig(max_iterations=4)
    assert bus.listener_count() == 1


def test_build_orchestrator_without_event_logging(tmp_path) -> None:
    from pydantic_ai.models.test import TestModel

    bus = EventBus()

    build_orchestrator(
        decision_provider=PydanticAIDecisionProvider(TestModel(), build_default_registry(tmp_path)),
        settings=Settings(CODESMITH_AI_WORKSPACE_ROOT=str(tmp_path)),
        event_bus=bus,
        configure_logging=False,
        log_events=False,
    )

    assert bus.listener_count() == 0


def test_permission_policy_follows_write_setting() -> None:
    default = build_permission_policy(Settings())
    assert default.config.mode_for("filesystem.write") == PermissionMode.prompt
    assert default.config.mode_for("filesystem.read") == PermissionMode.allow

    session = build_permission_policy(Settings(CODESMITH_AI_WRITE_PERMISSION="prompt-session"))
    assert session.config.mode_for("filesystem.write") == PermissionMode.prompt_session
