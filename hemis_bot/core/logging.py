"""Structured logging setup."""

import logging
import sys

import structlog

from hemis_bot.core.config import settings


def setup_logging() -> None:
    """
    Configure structlog for JSON output on stdout.

    Request-scoped values bound via structlog.contextvars (request_id,
    slack command) are merged into every event.
    """
    level = logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # Quiet chatty libraries
    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))
    logging.getLogger("slack_sdk").setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()
