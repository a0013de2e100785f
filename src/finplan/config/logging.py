"""structlog setup shared by the CLI and the function host."""

import logging
import sys
import uuid
from typing import Literal

import structlog

from finplan.config.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

# Chatty transport loggers; their failures surface through our own events.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def _renderer(log_format: LogFormat) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(level: LogLevel | None = None, format: LogFormat | None = None) -> None:
    """Route stdlib and structlog output through one renderer.

    Args:
        level: Overrides ``LOG_LEVEL``.
        format: Overrides ``LOG_FORMAT``; ``json`` for log shipping.
    """
    settings = get_settings()
    log_level = getattr(logging, level or settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(format or settings.log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(path: str, request_id: str | None = None) -> str:
    """Start a fresh log context for one HTTP request and return its id."""
    request_id = request_id or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, path=path)
    return request_id
