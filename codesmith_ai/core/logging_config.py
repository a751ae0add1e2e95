"""
Central logging setup for codesmith-ai.

Every module logs through ``logging.getLogger(__name__)``; this module decides
where those records go. Defaults come from ``Settings`` (``CODESMITH_AI_LOG_*``)
and can be overridden per call to ``setup_logging``.

- Console handler at the configured level, optional file handler at DEBUG.
- Three line formats: ``simple``, ``detailed`` (default) and ``json``.
- Per-module levels keep the agent loop verbose and third-party clients quiet.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from codesmith_ai.core.config import settings

LOG_LEVEL = settings.log_level.upper()
LOG_FORMAT = settings.log_format
LOG_FILE_DIR = settings.log_file_dir
ENABLE_FILE_LOGGING = settings.enable_file_logging
LOG_FILE_NAME = "codesmith_ai.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SIMPLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d %(funcName)s] %(message)s"
JSON_FORMAT = (
    '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"location": "%(filename)s:%(lineno)d", "func": "%(funcName)s", "msg": "%(message)s"}'
)

FORMATS: Dict[str, str] = {
    "simple": SIMPLE_FORMAT,
    "detailed": DETAILED_FORMAT,
    "json": JSON_FORMAT,
}

MODULE_LOG_LEVELS: Dict[str, str] = {
    "codesmith_ai.agent_core": "DEBUG",
    "codesmith_ai.agent_core.runtime": "DEBUG",
    "codesmith_ai.agent_core.tools": "DEBUG",
    "codesmith_ai.agent_core.decision": "DEBUG",
    "codesmith_ai.agent_core.tracing": "INFO",
    "codesmith_ai.agent_core.events": "INFO",
    "codesmith_ai.agent_core.validation": "INFO",
    # noisy clients used by model providers
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "openai": "WARNING",
    "anthropic": "WARNING",
    "asyncio": "WARNING",
}


def _build_handlers(level: str, formatter: logging.Formatter, to_file: bool) -> List[logging.Handler]:
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]

    if to_file:
        log_dir = Path(LOG_FILE_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    return handlers


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = True,
) -> None:
    """
    (Re)configure the root logger.

    Existing root handlers are removed first, so calling this twice does not
    duplicate output.

    Args:
        log_level: Console level; defaults to ``CODESMITH_AI_LOG_LEVEL``.
        log_format: ``simple``, ``detailed`` or ``json``; unknown names fall back to ``detailed``.
        enable_file: Allow the file handler. It is only added when
            ``CODESMITH_AI_ENABLE_FILE_LOGGING`` is also on.
    """
    level = (log_level or LOG_LEVEL).upper()
    fmt = log_format or LOG_FORMAT
    formatter = logging.Formatter(FORMATS.get(fmt, DETAILED_FORMAT), datefmt=DATE_FORMAT)
    to_file = enable_file and ENABLE_FILE_LOGGING

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    for handler in _build_handlers(level, formatter, to_file):
        root.addHandler(handler)

    for name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(module_level)

    root.info(f"Logging configured: level={level}, format={fmt}, file_logging={to_file}")


def get_logger(name: str) -> logging.Logger:
    """Shorthand for ``logging.getLogger(name)``."""
    return logging.getLogger(name)
