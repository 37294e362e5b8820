"""Structured logging for the edge authenticator.

Log events are emitted through structlog and rendered as one JSON object per
line, which is what edge log collectors ingest. Token values are never passed
to a logger; log classifications and identifiers instead.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_SILENT = logging.CRITICAL + 10


def configure_logging(log_level: str = "info", *, stream: Any = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: One of debug/info/warning/error/critical, or ``silent`` to
            drop everything.
        stream: Destination for rendered lines. Defaults to stdout.
    """
    level = _SILENT if log_level.lower() == "silent" else getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=level,
        force=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structured logger."""
    return structlog.get_logger(name)
