"""Shared structured logging for the note generation pipeline.

Every module obtains its logger through get_logger(__name__). Logs are JSON
lines written to stdout so that pipeline runs (CLI or API) can be followed
stage by stage and parsed by log tooling.
"""

import logging
import os
import sys

import structlog

_configured = False


def _configure() -> None:
    """Configure structlog and the stdlib root logger once per process."""
    global _configured

    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

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
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to the given module name.

    Args:
        name: Logger name, normally __name__ of the calling module.

    Returns:
        structlog logger emitting JSON events.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("captions_extracted", video_id="abc", segments=42)
    """
    if not _configured:
        _configure()

    return structlog.get_logger(name)
