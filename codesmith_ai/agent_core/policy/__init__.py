"""Permission policy for side-effecting tool calls."""

from .models import PermissionConfig, PermissionDecision, PermissionMode, PermissionRequest, ToolPermission
from .permissions import ConfirmFn, PermissionPolicy

__all__ = [
    "ConfirmFn",
    "PermissionConfig",
    "PermissionDecision",
    "PermissionMode",
    "PermissionPolicy",
    "PermissionRequest",
    "ToolPermission",
]
