from __future__ import annotations

"""Permission checks for tool calls.

``PermissionPolicy`` is consulted by the ``ToolExecutor`` after a call's
parameters validate and before the tool runs. A refused call never reaches its
handler.

Design goals
------------

- Keep allow/deny decisions out of prompts and out of tool handlers.
- Let the embedding application confirm sensitive calls through a single
  async callback.
- Remember ``prompt-session`` grants per conversation until cleared.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple, Union

from .models import PermissionConfig, PermissionDecision, PermissionMode, PermissionRequest

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[PermissionRequest], Union[bool, Awaitable[bool]]]

_NO_CONVERSATION = "*"


class PermissionPolicy:
    """Grant or refuse the permissions a tool call requires."""

    def __init__(self, config: Optional[PermissionConfig] = None, confirm: Optional[ConfirmFn] = None) -> None:
        self._cfg = config or PermissionConfig()
        self._confirm = confirm
        self._session_grants: Set[Tuple[str, str]] = set()

    @classmethod
    def allow_all(cls) -> "PermissionPolicy":
        """A policy that grants every permission without asking."""
        return cls(PermissionConfig(modes={}, default_mode=PermissionMode.allow))

    @property
    def config(self) -> PermissionConfig:
        return self._cfg

    async def check(
        self,
        tool_name: str,
        permissions: Iterable[str],
        params: Optional[Dict[str, Any]] = None,
        conversation_id: Optional[str] = None,
    ) -> PermissionDecision:
        """
        Decide whether ``tool_name`` may run.

        Permissions are checked in order; the first refusal wins.

        Returns:
            ``PermissionDecision`` naming the refused permission and why, or
            ``allowed=True`` when every permission is granted.
        """
        for permission in permissions:
            mode = self._cfg.mode_for(permission)
            if mode == PermissionMode.allow:
                continue
            if mode == PermissionMode.deny:
                return self._refuse(tool_name, permission, f"permission '{permission}' is denied by configuration")

            key = (conversation_id or _NO_CONVERSATION, permission)
            if mode == PermissionMode.prompt_session and key in self._session_grants:
                continue
            if self._confirm is None:
                return self._refuse(
                    tool_name, permission, f"permission '{permission}' requires confirmation and no handler is set"
                )

            request = PermissionRequest(
                tool_name=tool_name,
                permission=permission,
                params=params or {},
                conversation_id=conversation_id,
            )
            granted = self._confirm(request)
            if inspect.isawaitable(granted):
                granted = await granted
            if not granted:
                return self._refuse(tool_name, permission, f"permission '{permission}' was refused by the user")
            if mode == PermissionMode.prompt_session:
                self._session_grants.add(key)
                logger.debug(f"Granted '{permission}' for the rest of conversation {conversation_id}")

        return PermissionDecision(allowed=True)

    def clear_session(self, conversation_id: Optional[str] = None) -> None:
        """Forget remembered grants for one conversation, or for all of them."""
        if conversation_id is None:
            self._session_grants.clear()
            return
        self._session_grants = {g for g in self._session_grants if g[0] != conversation_id}

    @staticmethod
    def _refuse(tool_name: str, permission: str, reason: str) -> PermissionDecision:
        logger.warning(f"Refused call to '{tool_name}': {reason}")
        return PermissionDecision(allowed=False, permission=permission, reason=reason)
