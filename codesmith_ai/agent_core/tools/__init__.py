"""Tool contract, registry and validated executor."""

from .base import ToolDefinition
from .executor import ToolExecutor
from .registry import ToolRegistry

__all__ = ["ToolDefinition", "ToolExecutor", "ToolRegistry"]
