from __future__ import annotations

"""Tool registry.

The registry maps a dot-namespaced tool name to its ``ToolDefinition``.
Registrations happen once at startup through explicit ``register`` calls
(see ``register_workspace_tools``); the registry is read-only while turns run.
"""

import logging
from typing import Dict, List

from ..errors import ConfigurationError, ToolNotFoundError
from .base import ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    In-memory mapping of tool names to definitions.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name and logs a warning.
        - ``get`` raises ``ToolNotFoundError`` if the tool is missing.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """
        Register a tool definition.

        Args:
            tool: The tool to register. Its name must be dot-namespaced (``group.toolName``).

        Raises:
            ConfigurationError: If the name is not dot-namespaced.
        """
        namespace, _, short = tool.name.partition(".")
        if not namespace or not short:
            raise ConfigurationError(f"Tool name must be dot-namespaced (e.g. 'filesystem.readFile'): '{tool.name}'")
        if tool.name in self._tools:
            logger.warning(f"Tool '{tool.name}' already registered. Overwriting.")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool '{tool.name}'")

    def get(self, name: str) -> ToolDefinition:
        """
        Retrieve a registered tool by name.

        Raises:
            ToolNotFoundError: If no tool is registered with the given name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return sorted(self._tools)

    def tools(self) -> List[ToolDefinition]:
        return [self._tools[n] for n in self.names()]

    def describe(self) -> str:
        """Render the tool catalogue as text for model prompts."""
        if not self._tools:
            return "No tools are available."
        lines = []
        for tool in self.tools():
            lines.append(f"- {tool.name}: {tool.description}")
            lines.append(f"  parameters: {tool.parameter_summary()}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
