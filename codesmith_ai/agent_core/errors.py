"""Error types for the agent core.

Defines the hierarchy the orchestrator converts into phase state:

- ``ConfigurationError``: something referenced (tool, schema) is not registered.
  Fatal to the single call, never retried.
- ``SchemaValidationError``: a payload failed its schema; carries field-level
  violations.
- ``ToolExecutionError``: the normalized error raised by the tool executor for
  any failure after tool resolution. Subclasses tell apart caller errors
  (bad input), contract violations (bad output) and runtime errors (the tool
  itself raised).
- ``DecisionValidationError``: the decision provider returned a payload that
  does not match its phase schema.
- ``TurnCancelledError``: a turn observed its cancellation signal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FieldViolation:
    """One field-level schema violation."""

    loc: str
    message: str
    type: str

    def to_dict(self) -> Dict[str, str]:
        return {"loc": self.loc, "message": self.message, "type": self.type}


class AgentCoreError(Exception):
    """Base error for all agent core exceptions."""


class ConfigurationError(AgentCoreError):
    """Raised when a referenced tool, schema or phase is not registered."""


class ToolNotFoundError(ConfigurationError):
    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool not registered: '{tool_name}'")


class SchemaNotFoundError(ConfigurationError):
    def __init__(self, schema_name: str) -> None:
        self.schema_name = schema_name
        super().__init__(f"Schema not registered: '{schema_name}'")


class SchemaValidationError(AgentCoreError):
    """Raised when a payload does not satisfy its schema."""

    def __init__(self, schema_name: str, violations: List[FieldViolation]) -> None:
        self.schema_name = schema_name
        self.violations = list(violations)
        detail = "; ".join(f"{v.loc}: {v.message}" for v in self.violations) or "invalid payload"
        super().__init__(f"Validation failed for '{schema_name}': {detail}")

    def violations_as_dicts(self) -> List[Dict[str, str]]:
        return [v.to_dict() for v in self.violations]


class ToolExecutionError(AgentCoreError):
    """Normalized tool failure carrying the tool name and underlying cause."""

    category = "runtime"

    def __init__(self, tool_name: str, cause: Optional[BaseException] = None, message: Optional[str] = None) -> None:
        self.tool_name = tool_name
        self.cause = cause
        detail = message or (str(cause) if cause is not None else "unknown error")
        super().__init__(f"Tool execution failed for '{tool_name}': {detail}")

    def details(self) -> Dict[str, Any]:
        return {"tool_name": self.tool_name, "category": self.category, "error": str(self)}


class ToolInputValidationError(ToolExecutionError):
    """Caller error: the parameters do not match the tool's input schema."""

    category = "validation"

    def __init__(self, tool_name: str, cause: SchemaValidationError) -> None:
        self.violations = list(cause.violations)
        super().__init__(tool_name, cause, message=f"invalid parameters ({cause})")

    def details(self) -> Dict[str, Any]:
        out = super().details()
        out["violations"] = [v.to_dict() for v in self.violations]
        return out


class ToolContractViolationError(ToolExecutionError):
    """The tool returned data inconsistent with its own output schema."""

    category = "contract_violation"

    def __init__(self, tool_name: str, cause: SchemaValidationError) -> None:
        self.violations = list(cause.violations)
        super().__init__(tool_name, cause, message=f"output violates declared schema ({cause})")

    def details(self) -> Dict[str, Any]:
        out = super().details()
        out["violations"] = [v.to_dict() for v in self.violations]
        return out


class ToolRuntimeError(ToolExecutionError):
    """The tool's own logic raised."""

    category = "runtime"


class ToolPermissionDeniedError(ToolExecutionError):
    """The permission policy refused the call; the handler never ran."""

    category = "permission_denied"

    def __init__(self, tool_name: str, permission: Optional[str], reason: Optional[str]) -> None:
        self.permission = permission
        super().__init__(tool_name, message=reason or "permission denied")

    def details(self) -> Dict[str, Any]:
        out = super().details()
        out["permission"] = self.permission
        return out


class DecisionValidationError(AgentCoreError):
    """The decision provider returned a payload failing its phase schema."""

    def __init__(self, phase: str, cause: SchemaValidationError) -> None:
        self.phase = phase
        self.cause = cause
        self.violations = list(cause.violations)
        super().__init__(f"Decision provider returned an invalid '{phase}' decision: {cause}")


class TurnCancelledError(AgentCoreError):
    def __init__(self, conversation_id: str, phase: Optional[str] = None) -> None:
        self.conversation_id = conversation_id
        self.phase = phase
        where = f" before phase '{phase}'" if phase else ""
        super().__init__(f"Turn for conversation '{conversation_id}' was cancelled{where}")
