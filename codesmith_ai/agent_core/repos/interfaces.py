from __future__ import annotations

"""Repository interface contracts.

The orchestrator depends on these Protocols instead of concrete persistence
implementations. All methods are async; implementations must store the frozen
``AgentState`` as given (no partial updates) and keep closed traces immutable.
"""

from typing import List, Optional, Protocol

from ..schemas.domain import AgentState, Trace


class AgentStateRepository(Protocol):
    """Persist the final per-turn ``AgentState`` keyed by conversation id."""

    async def save(self, state: AgentState) -> None:
        """
        Store ``state`` as the latest state of its conversation.

        Args:
            state: The terminal state produced by a turn.
        """
        ...

    async def get(self, conversation_id: str) -> Optional[AgentState]:
        """
        Retrieve the latest stored state of a conversation.

        Returns:
            The AgentState if found, else None.
        """
        ...

    async def delete(self, conversation_id: str) -> None:
        """Remove a conversation's state. Unknown ids are a no-op."""
        ...

    async def list_conversations(self) -> List[str]:
        ...


class TraceRepository(Protocol):
    """Append-only store of closed traces."""

    async def append(self, conversation_id: str, trace: Trace) -> None:
        """
        Store a closed trace.

        Args:
            conversation_id: Conversation the traced turn belongs to.
            trace: The closed trace returned by ``TraceRecorder.end``/``fail``.
        """
        ...

    async def list(self, conversation_id: str) -> List[Trace]:
        """Return a conversation's traces, oldest first."""
        ...
