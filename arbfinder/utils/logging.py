"""
Logging setup for the arbitrage finder.
"""

import logging

import structlog
from structlog.processors import JSONRenderer, TimeStamper


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: JSON lines when True, coloured console output otherwise
    """
    renderer = JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def mask_secret(value: str) -> str:
    """Render a credential safely for logs: first/last 4 chars only."""
    if not value:
        return "(unset)"
    if len(value) < 8:
        return "(short)"
    return f"{value[:4]}...{value[-4:]} (len:{len(value)})"
