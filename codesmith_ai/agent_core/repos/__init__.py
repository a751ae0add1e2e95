"""Persistence boundary for conversation state and closed traces.

The orchestrator is written against the Protocols in ``repos.interfaces`` so
it can run with the in-memory implementations in ``repos.memory``, test fakes,
or any future backend.
"""

from .interfaces import AgentStateRepository, TraceRepository
from .memory import InMemoryAgentStateRepository, InMemoryTraceRepository

__all__ = [
    "AgentStateRepository",
    "InMemoryAgentStateRepository",
    "InMemoryTraceRepository",
    "TraceRepository",
]
