"""Root logger configuration."""

import logging
import sys
from typing import TextIO

from ..core.correlation import CorrelationFilter
from .context import ContextFilter
from .filters import PIIFilter
from .formatters import DevFormatter, JSONFormatter

QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    environment: str = "development",
    stream: TextIO | None = None,
) -> logging.Handler:
    """Replace the root handlers with a single configured stream handler.

    Returns the installed handler so an embedding application can detach it.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter(environment) if json_output else DevFormatter())
    # ContextFilter runs before CorrelationFilter.
    for log_filter in (PIIFilter(), ContextFilter(), CorrelationFilter()):
        handler.addFilter(log_filter)

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
