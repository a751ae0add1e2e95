"""In-memory repository implementations.

Used by default when no persistence backend is wired in, and by tests.
Contents are lost when the process exits.
"""

from typing import Dict, List, Optional

from ..schemas.domain import AgentState, Trace


class InMemoryAgentStateRepository:
    def __init__(self) -> None:
        self._states: Dict[str, AgentState] = {}

    async def save(self, state: AgentState) -> None:
        self._states[state.conversation_id] = state

    async def get(self, conversation_id: str) -> Optional[AgentState]:
        return self._states.get(conversation_id)

    async def delete(self, conversation_id: str) -> None:
        self._states.pop(conversation_id, None)

    async def list_conversations(self) -> List[str]:
        return sorted(self._states)


class InMemoryTraceRepository:
    def __init__(self) -> None:
        self._traces: Dict[str, List[Trace]] = {}

    async def append(self, conversation_id: str, trace: Trace) -> None:
        self._traces.setdefault(conversation_id, []).append(trace)

    async def list(self, conversation_id: str) -> List[Trace]:
        return list(self._traces.get(conversation_id, []))
