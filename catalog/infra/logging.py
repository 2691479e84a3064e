"""structlog setup for the catalog worker.

JSON lines go to stdout outside dev so Cloud Logging can index the
``entity`` and ``sheet`` fields that sync and source events carry.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from catalog.config import Settings

QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "httpx", "httpcore", "google", "aiosqlite")


def _add_severity(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    # Cloud Logging reads "severity", structlog writes "level"
    level = event_dict.get("level")
    if level:
        event_dict["severity"] = level.upper()
    return event_dict


def setup_logging(settings: Settings) -> None:
    """Install structlog processors and route stdlib logging through stdout.

    Args:
        settings: Provides log_level, log_json and environment
    """
    as_json = settings.log_json and settings.environment != "dev"
    level = logging.getLevelName(settings.log_level.upper())

    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if as_json:
        chain += [
            _add_severity,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=chain,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Return a structlog logger, optionally bound to ``initial_context``."""
    logger = structlog.get_logger(name)
    return logger.bind(**initial_context) if initial_context else logger
