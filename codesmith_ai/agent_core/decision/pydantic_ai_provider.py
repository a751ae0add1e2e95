from __future__ import annotations

"""Decision provider backed by pydantic-ai.

One ``pydantic_ai.Agent`` per phase, each with the phase decision model as its
``output_type`` so the model is forced into the structured shape the
orchestrator expects. Agents are built on first use; the tool catalogue is
read from the ``ToolRegistry`` at that point.
"""

import logging
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.models import Model

from ..errors import ConfigurationError
from ..schemas import AgentState, Phase
from ..tools import ToolRegistry
from .prompts import render_state, system_prompt
from .provider import DECISION_SCHEMAS

logger = logging.getLogger(__name__)


class PydanticAIDecisionProvider:
    """
    Produce phase decisions by calling a language model through pydantic-ai.

    Args:
        model: A pydantic-ai model instance or identifier (e.g. ``"openai:gpt-4o"``).
        registry: Tool registry whose catalogue is shown to the model.
        retries: Output validation retries granted to the model per decision.
    """

    def __init__(self, model: Union[Model, str], registry: ToolRegistry, retries: int = 1) -> None:
        self._model = model
        self._registry = registry
        self._retries = retries
        self._agents: Dict[Phase, Agent[None, Any]] = {}

    def agent_for(self, phase: Phase) -> Agent[None, Any]:
        agent = self._agents.get(phase)
        if agent is not None:
            return agent
        schema = DECISION_SCHEMAS.get(phase)
        if schema is None:
            raise ConfigurationError(f"No decision schema for phase '{phase.value}'")

        agent = Agent(
            self._model,
            output_type=schema,
            system_prompt=system_prompt(phase, self._registry.describe()),
            retries=self._retries,
            name=f"codesmith-{phase.value}",
        )
        self._agents[phase] = agent
        logger.debug(f"Built decision agent for phase '{phase.value}' with output type {schema.__name__}")
        return agent

    async def decide(self, phase: Phase, state: AgentState) -> BaseModel:
        agent = self.agent_for(phase)
        prompt = render_state(phase, state)
        logger.debug(f"Requesting '{phase.value}' decision for conversation {state.conversation_id}")
        result = await agent.run(prompt)
        return result.output

    def override_model(self, model: Optional[Union[Model, str]]) -> None:
        """Swap the model and drop the cached agents so they are rebuilt on next use."""
        if model is not None:
            self._model = model
        self._agents.clear()
