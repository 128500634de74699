"""Logging configuration (structlog on top of the stdlib logging module)."""

import logging
import sys

import structlog

from azops.core.config import LOG_LEVELS
from azops.core.exceptions import ConfigurationError

# Azure SDK clients log every HTTP request at INFO
NOISY_LOGGERS = ("azure", "azure.core.pipeline.policies.http_logging_policy", "azure.identity", "urllib3")


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure stdlib logging and structlog for a script run.

    Log records are written to stderr so that the run summary on stdout
    stays machine-readable.

    Args:
        level: Log level name (INFO, DEBUG, ...)
        json_logs: Render events as JSON lines instead of console output

    Raises:
        ConfigurationError: If the level name is unknown
    """
    level_name = str(level).strip().upper()
    if level_name not in LOG_LEVELS:
        raise ConfigurationError(f"Log level '{level}' is not valid. Use one of: {', '.join(LOG_LEVELS)}.")
    log_level = getattr(logging, level_name)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
