"""
Structured logging for the notifier.

Long-running services (feed monitor, watch recorder and tracker) log
through structlog with key/value fields; leaf modules keep using the
stdlib ``logging`` module, whose records are rendered by the same
pipeline once ``setup_logging()`` has run.

Per-cycle fields such as ``cycle_id`` are carried in contextvars so every
line written during one poll cycle, including those from the poller and
the pipeline, can be correlated.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import structlog
from structlog.types import Processor

from channel_notifier.config.settings import get_settings

# Chatty at INFO, useless at that level for a polling daemon
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "redis")


def _processors(json_output: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog and route stdlib logging through it.

    JSON lines in production, console output elsewhere.

    Args:
        level: Log level override. Defaults to DEBUG when ``settings.debug``
            is set, otherwise ``settings.log_level``.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Watch confirmed", source_id="UC...", item_id="dQw4w9WgXcQ")
    """
    settings = get_settings()
    level = level or ("DEBUG" if settings.debug else settings.log_level)

    structlog.configure(
        processors=_processors(json_output=settings.is_production),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Bind fields to every subsequent log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove previously bound fields."""
    structlog.contextvars.unbind_contextvars(*keys)


@contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """Bind fields for the duration of a block, then remove only those.

    Fields bound by an outer caller are left in place.

    Usage:
        with log_context(cycle_id=cycle_id):
            await poller.poll_many(sources)
    """
    bind_context(**kwargs)
    try:
        yield
    finally:
        unbind_context(*kwargs)
