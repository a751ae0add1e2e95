"""Builtin workspace tools (filesystem, project search and code edits)."""

from .workspace import WorkspacePathError, register_workspace_tools, workspace_tools

__all__ = ["WorkspacePathError", "register_workspace_tools", "workspace_tools"]
