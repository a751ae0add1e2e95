"""
Core utilities and configuration for codesmith-ai.

This package provides core functionality including settings, logging
configuration and monitoring helpers shared by the agent core.
"""

from codesmith_ai.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
