"""Agent core: the orchestration loop of the coding assistant.

Components, leaves first:

- ``validation.SchemaValidator``: named pydantic schemas for tool and decision payloads.
- ``tools.ToolRegistry``: catalogue of dot-namespaced tools.
- ``tracing.TraceRecorder``: append-only per-turn execution ledger.
- ``events.EventBus``: typed fan-out of lifecycle events.
- ``policy.PermissionPolicy``: grants or refuses the permissions a tool declares.
- ``tools.ToolExecutor``: validated, permission-checked, traced tool invocation.
- ``decision``: the capability that turns agent state into the next step.
- ``runtime.AgentOrchestrator``: the five-phase LangGraph state machine.

Use ``factory.build_orchestrator`` for the default wiring.
"""

from .events import BusEvent, EventBus, EventKind
from .factory import build_default_registry, build_orchestrator, build_permission_policy, build_validator
from .policy import PermissionMode, PermissionPolicy
from .runtime import AgentLoopConfig, AgentOrchestrator, TurnResult
from .tools import ToolDefinition, ToolExecutor, ToolRegistry
from .tracing import TraceRecorder
from .validation import SchemaValidator

__all__ = [
    "AgentLoopConfig",
    "AgentOrchestrator",
    "BusEvent",
    "EventBus",
    "EventKind",
    "PermissionMode",
    "PermissionPolicy",
    "SchemaValidator",
    "ToolDefinition",
    "ToolExecutor",
    "ToolRegistry",
    "TraceRecorder",
    "TurnResult",
    "build_default_registry",
    "build_orchestrator",
    "build_permission_policy",
    "build_validator",
]
