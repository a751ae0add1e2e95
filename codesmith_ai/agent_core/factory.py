from __future__ import annotations

"""Convenience factories for wiring the agent core.

Every component is constructed explicitly and passed by reference; there are
no process-wide singletons. ``build_orchestrator`` gives a ready-to-use
``AgentOrchestrator`` with the builtin workspace tools, the model-backed
decision provider and in-memory persistence, while every piece can be
replaced by the caller (tests inject fake decision providers).
"""

from pathlib import Path
from typing import Optional, Union

from codesmith_ai.core.config import Settings, settings as default_settings
from codesmith_ai.core.logging_config import setup_logging
from codesmith_ai.core.monitoring import initialize_logfire

from .decision import DecisionProvider, PydanticAIDecisionProvider, register_decision_schemas
from .events import EventBus
from .monitoring_integration import attach_event_logging
from .policy import ConfirmFn, PermissionConfig, PermissionMode, PermissionPolicy, ToolPermission
from .repos import (
    AgentStateRepository,
    InMemoryAgentStateRepository,
    InMemoryTraceRepository,
    TraceRepository,
)
from .runtime import AgentLoopConfig, AgentOrchestrator
from .tools import ToolExecutor, ToolRegistry
from .tools.builtin import register_workspace_tools
from .tracing import TraceRecorder
from .validation import SchemaValidator


def build_default_registry(workspace_root: Union[str, Path]) -> ToolRegistry:
    """Build a ``ToolRegistry`` holding the builtin workspace tools rooted at ``workspace_root``."""
    registry = ToolRegistry()
    register_workspace_tools(registry, workspace_root)
    return registry


def build_validator(event_bus: Optional[EventBus] = None) -> SchemaValidator:
    """Build a ``SchemaValidator`` with every phase decision schema registered."""
    validator = SchemaValidator(event_bus)
    register_decision_schemas(validator)
    return validator


def build_permission_policy(settings: Optional[Settings] = None, confirm: Optional[ConfirmFn] = None) -> PermissionPolicy:
    """Build the default ``PermissionPolicy``: reads allowed, writes per ``CODESMITH_AI_WRITE_PERMISSION``."""
    s = settings or default_settings
    config = PermissionConfig()
    modes = dict(config.modes)
    modes[ToolPermission.filesystem_write.value] = PermissionMode(s.write_permission)
    return PermissionPolicy(PermissionConfig(modes=modes, default_mode=config.default_mode), confirm=confirm)


def build_orchestrator(
    *,
    decision_provider: Optional[DecisionProvider] = None,
    settings: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
    event_bus: Optional[EventBus] = None,
    state_repository: Optional[AgentStateRepository] = None,
    trace_repository: Optional[TraceRepository] = None,
    config: Optional[AgentLoopConfig] = None,
    permission_policy: Optional[PermissionPolicy] = None,
    confirm_permission: Optional[ConfirmFn] = None,
    configure_logging: bool = True,
    log_events: bool = True,
) -> AgentOrchestrator:
    """
    Construct an ``AgentOrchestrator`` and its collaborators.

    Args:
        decision_provider: Defaults to a ``PydanticAIDecisionProvider`` using the configured model.
        settings: Defaults to the process settings loaded from the environment.
        registry: Defaults to the builtin workspace tools rooted at ``settings.workspace_root``.
        event_bus: Defaults to a new bus owned by this orchestrator.
        state_repository: Defaults to an in-memory repository.
        trace_repository: Defaults to an in-memory repository.
        config: Defaults to ``AgentLoopConfig.from_settings(settings)``.
        permission_policy: Defaults to ``build_permission_policy(settings, confirm_permission)``.
        confirm_permission: Asked to approve calls whose permissions are in a ``prompt`` mode.
        configure_logging: Apply the logging configuration and initialize Logfire.
        log_events: Attach the logging observer to the event bus.
    """
    s = settings or default_settings
    if configure_logging:
        setup_logging(s.log_level, s.log_format, s.enable_file_logging)
        initialize_logfire()

    bus = event_bus or EventBus()
    if log_events:
        attach_event_logging(bus)

    tools = registry if registry is not None else build_default_registry(s.workspace_root)
    validator = build_validator(bus)
    recorder = TraceRecorder(bus)
    permissions = permission_policy or build_permission_policy(s, confirm_permission)
    executor = ToolExecutor(tools, validator, recorder, bus, permissions)
    provider = decision_provider or PydanticAIDecisionProvider(s.llm.model, tools, retries=s.llm.decision_retries)

    return AgentOrchestrator(
        decision_provider=provider,
        executor=executor,
        recorder=recorder,
        event_bus=bus,
        validator=validator,
        state_repository=state_repository if state_repository is not None else InMemoryAgentStateRepository(),
        trace_repository=trace_repository if trace_repository is not None else InMemoryTraceRepository(),
        config=config or AgentLoopConfig.from_settings(s),
    )
