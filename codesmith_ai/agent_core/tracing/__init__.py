"""Per-turn execution tracing."""

from .recorder import TraceRecorder

__all__ = ["TraceRecorder"]
