"""Permission policy models.

A tool declares the permissions it needs (``ToolDefinition.required_permissions``);
``PermissionConfig`` maps each permission to a ``PermissionMode``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from ..schemas.base import BaseSchema, FrozenSchema


class ToolPermission(str, Enum):
    filesystem_read = "filesystem.read"
    filesystem_write = "filesystem.write"
    workspace_info_read = "workspace.info.read"


class PermissionMode(str, Enum):
    """How a permission is granted.

    - ``allow``: granted without asking.
    - ``deny``: always refused.
    - ``prompt``: the confirmation handler is asked on every call.
    - ``prompt_session``: asked once, then remembered for the conversation.
    """

    allow = "allow"
    deny = "deny"
    prompt = "prompt"
    prompt_session = "prompt-session"


class PermissionConfig(BaseSchema):
    """Per-permission modes.

    Permissions without an entry in ``modes`` use ``default_mode``. Reads are
    allowed by default; writes need confirmation.
    """

    modes: Dict[str, PermissionMode] = Field(
        default_factory=lambda: {
            ToolPermission.filesystem_read.value: PermissionMode.allow,
            ToolPermission.workspace_info_read.value: PermissionMode.allow,
            ToolPermission.filesystem_write.value: PermissionMode.prompt,
        }
    )
    default_mode: PermissionMode = PermissionMode.prompt

    def mode_for(self, permission: str) -> PermissionMode:
        return self.modes.get(permission, self.default_mode)


class PermissionRequest(FrozenSchema):
    """What the confirmation handler is asked to approve."""

    tool_name: str
    permission: str
    params: Dict[str, Any] = Field(default_factory=dict)
    conversation_id: Optional[str] = None


class PermissionDecision(FrozenSchema):
    allowed: bool
    permission: Optional[str] = None
    reason: Optional[str] = None
