"""structlog setup.

Learn: Every module grabs `structlog.get_logger()` and logs dotted event
names with key/value context (`logger.info("task.created", task_id=...)`).
This module decides how those events are rendered: colored console output
locally, one JSON object per line everywhere else. Context bound through
structlog.contextvars (request_id, user_id) is merged into every line.
"""

import logging

import structlog

from taskkeeper.config import Settings


def configure_logging(settings: Settings) -> None:
    """Install the structlog processor chain for this process."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.is_local
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
