"""Unit tests for the settings model."""

import pytest
from pydantic import ValidationError

from codesmith_ai.agent_core.runtime import AgentLoopConfig
from codesmith_ai.core.config import LogfireConfig, ModelSettings, Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "CODESMITH_AI_LOG_LEVEL",
        "CODESMITH_AI_MAX_ITERATIONS",
        "CODESMITH_AI_MODEL",
        "CODESMITH_AI_DECISION_RETRIES",
        "CODESMITH_AI_WORKSPACE_ROOT",
        "CODESMITH_AI_WRITE_PERMISSION",
        "LOGFIRE_ENABLED",
        "LOGFIRE_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir("/")
    return monkeypatch


class TestSettingsDefaults:
    def test_defaults(self, clean_env):
        s = Settings()

        assert s.log_level == "INFO"
        assert s.max_iterations == 15
        assert s.workspace_root == "."
        assert s.write_permission == "prompt"
        assert s.llm.model == "openai:gpt-4o"
        assert s.logfire.enabled is False

    def test_grouped_models(self, clean_env):
        s = Settings()

        assert isinstance(s.llm, ModelSettings)
        assert isinstance(s.logfire, LogfireConfig)
        assert s.logfire.service_name == "codesmith-ai"


class TestSettingsFromEnvironment:
    def test_values_are_read_from_env(self, clean_env):
        clean_env.setenv("CODESMITH_AI_MAX_ITERATIONS", "4")
        clean_env.setenv("CODESMITH_AI_MODEL", "test")
        clean_env.setenv("CODESMITH_AI_DECISION_RETRIES", "3")
        clean_env.setenv("LOGFIRE_ENABLED", "true")
        clean_env.setenv("LOGFIRE_TOKEN", "tok")

        s = Settings()

        assert s.max_iterations == 4
        assert s.llm.model == "test"
        assert s.llm.decision_retries == 3
        assert s.logfire.enabled is True
        assert s.logfire.token == "tok"

    @pytest.mark.parametrize("value", ["0", "-2"])
    def test_max_iterations_must_be_positive(self, clean_env, value):
        clean_env.setenv("CODESMITH_AI_MAX_ITERATIONS", value)

        with pytest.raises(ValidationError):
            Settings()


class TestAgentLoopConfig:
    def test_from_settings(self, clean_env):
        clean_env.setenv("CODESMITH_AI_MAX_ITERATIONS", "7")

        config = AgentLoopConfig.from_settings(Settings())

        assert config.max_iterations == 7
        assert config.recursion_limit == 7 * 5 + 10

    def test_rejects_non_positive_cap(self):
        with pytest.raises(ValidationError):
            AgentLoopConfig(max_iterations=0)
