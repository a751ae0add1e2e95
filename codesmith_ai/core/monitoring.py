"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring agent
turns, including:
- Turn start/completion with final status and duration
- Tool invocations and their latency
- Error tracking

Logfire is optional at runtime: when ``LOGFIRE_ENABLED`` is false (the default)
every helper degrades to a debug log line.
"""

import logging
from typing import Optional

from codesmith_ai.core.config import settings

logger = logging.getLogger(__name__)

_logfire_ready = False


def initialize_logfire() -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    Sets up Logfire with pydantic-ai instrumentation so decision-provider
    model calls are traced alongside the turn events.

    Returns:
        True when Logfire was configured, False when it is disabled or unavailable.
    """
    global _logfire_ready

    cfg = settings.logfire
    if not cfg.enabled:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not cfg.token:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    try:
        import logfire

        logfire.configure(
            token=cfg.token,
            service_name=cfg.service_name,
            environment=cfg.environment,
        )
        try:
            logfire.instrument_pydantic_ai()
            logger.info("Logfire: Pydantic AI instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument Pydantic AI: {e}")

        _logfire_ready = True
        logger.info(f"Logfire monitoring initialized: environment={cfg.environment}, service={cfg.service_name}")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False


def is_logfire_enabled() -> bool:
    """Return True once ``initialize_logfire`` succeeded."""
    return _logfire_ready


def log_turn_started(conversation_id: str, trace_id: str, user_message: str) -> None:
    """
    Log the start of an agent turn with context.

    Args:
        conversation_id: The conversation the turn belongs to
        trace_id: The trace recording the turn
        user_message: The raw user message
    """
    if not _logfire_ready:
        logger.debug(f"Turn started: conversation_id={conversation_id}, trace_id={trace_id}")
        return
    try:
        import logfire

        logfire.info(
            "Agent turn started",
            conversation_id=conversation_id,
            trace_id=trace_id,
            user_message=user_message,
        )
    except Exception:
        logger.debug(f"Could not log turn start to Logfire: conversation_id={conversation_id}")


def log_turn_completed(conversation_id: str, status: str, duration_ms: Optional[float]) -> None:
    """
    Log the completion of an agent turn.

    Args:
        conversation_id: The conversation the turn belongs to
        status: Final completion status (completed, failed, cancelled)
        duration_ms: The duration of the turn in milliseconds
    """
    if not _logfire_ready:
        logger.debug(f"Turn ended: conversation_id={conversation_id}, status={status}, duration_ms={duration_ms}")
        return
    try:
        import logfire

        logfire.info(
            "Agent turn completed",
            conversation_id=conversation_id,
            status=status,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log turn completion to Logfire: conversation_id={conversation_id}")


def log_tool_call(tool_name: str, ok: bool, duration_ms: Optional[float] = None) -> None:
    """
    Log a tool invocation outcome.

    Args:
        tool_name: Dot-namespaced tool name
        ok: Whether the tool completed successfully
        duration_ms: Execution time in milliseconds (optional)
    """
    if not _logfire_ready:
        logger.debug(f"Tool call: {tool_name} ok={ok} duration_ms={duration_ms}")
        return
    try:
        import logfire

        logfire.info("Tool call", tool_name=tool_name, ok=ok, duration_ms=duration_ms)
    except Exception:
        logger.debug(f"Could not log tool call to Logfire: {tool_name}")


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _logfire_ready:
        logger.debug(f"{error_type}: {error_message}")
        return
    try:
        import logfire

        logfire.error(
            f"{error_type}: {error_message}",
            **(context or {}),
        )
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
