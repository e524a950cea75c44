"""Structured logging for the AI Dungeon Master.

Everything logs through structlog to stderr, so stdout stays free for
the narration. Console output is the default; JSON lines are meant for
piping a session log into other tools.

Example:
    >>> from ai_dm.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Tool executed", tool="roll_dice", success=True)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor


# Chatty below WARNING; every model call logs a request line
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")


def configure_logging(*, level: str = "INFO", json_format: bool = False) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_format: Render JSON lines instead of the console format.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # The SDK and its HTTP stack log through the standard library
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stderr,
        force=True,
    )
    quiet_third_party_loggers()


def quiet_third_party_loggers(level: int = logging.WARNING) -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context included in every log line until unbound.

    Example:
        >>> bind_context(session_id="session_abc")
        >>> logger.info("Exchange started")  # includes session_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


__all__ = [
    "NOISY_LOGGERS",
    "configure_logging",
    "quiet_third_party_loggers",
    "get_logger",
    "bind_context",
    "unbind_context",
]
