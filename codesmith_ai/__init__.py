"""codesmith-ai.

This package contains the orchestration core of a coding-assistant agent: given
a user message it plans, invokes workspace tools, observes the results and
iterates until it can answer.

High-level architecture
-----------------------

A turn runs a bounded five-phase cycle:

- **Initial analysis**: extracts intent, objective and entities once per turn.
- **Reasoning**: decides the next action (call a tool, think, or respond).
- **Action**: executes the action through the tool executor.
- **Reflection**: judges the outcome of the action.
- **Correction** (optional): revises the plan when reflection asks for it.

Core subpackages
----------------

- ``codesmith_ai.agent_core``:

  - Domain schemas (agent state, history, traces) and phase decisions.
  - Schema validator, event bus and trace recorder.
  - Tool registry/executor and the builtin workspace tools.
  - The LangGraph-based orchestrator driving the phase cycle.

- ``codesmith_ai.core``: settings, logging configuration and Logfire monitoring.

Typical workflow
----------------

Most integrations should use ``codesmith_ai.agent_core.factory.build_orchestrator``
and then call ``AgentOrchestrator.process_turn(conversation_id, message, context)``.
The call always returns a response string; failures are explained in natural
language while the trace and event stream keep the technical detail.
"""
