# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Logging setup for SchoolHub.

The cache layer logs structured events through get_logger; services and
repositories use plain stdlib loggers. Both end up on the same stdout
handler configured here.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from schoolhub.core.config.settings import Settings


def setup_logging(settings: "Settings") -> None:
    """Install structlog and stdlib logging at settings.log_level.

    Cache events render to the console in development or debug mode and
    as one JSON object per line otherwise.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development or settings.debug:
        processors: list[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Drivers log at WARNING and above.
    for logger_name in ("sqlalchemy", "aiosqlite", "asyncio", "redis"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("schoolhub").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the structlog logger used for cache events."""
    return structlog.get_logger(name)
