"""Agent loop runtime: the LangGraph orchestrator and its result types."""

from .engine import AgentOrchestrator
from .models import AgentLoopConfig, TurnResult
from .response import compose_response

__all__ = ["AgentLoopConfig", "AgentOrchestrator", "TurnResult", "compose_response"]
