"""Structured logging setup.

Usage:
    configure_logging(log_level="INFO", json_output=False)
    logger = get_logger(__name__)
    logger = logger.bind(session=1)
    logger.info("vote accepted", voter="0xA1", proposal_id=2)
"""

from __future__ import annotations

import logging
import sys

import structlog


def get_logger(name: str = "ballotbox"):
    """Return a structlog logger that supports context binding."""
    return structlog.get_logger(name)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog on top of stdlib logging.

    Console mode renders key=value pairs; JSON mode renders one JSON
    object per line for log aggregation.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.processors.KeyValueRenderer(
            key_order=["timestamp", "level", "event"], drop_missing=True,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )
