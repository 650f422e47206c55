"""Structured logging setup."""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

from ..config import settings


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """Configure stdlib logging and structlog.

    Call once at worker process start. Arguments default to the values in
    ``settings``.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        log_format: "json" or "console"
        log_file: Optional file to log to instead of stderr
    """
    level_name = (level or settings.log_level).upper()
    renderer_name = (log_format or settings.log_format).lower()
    target_file = log_file if log_file is not None else settings.log_file

    log_level = getattr(logging, level_name, logging.INFO)

    handler: logging.Handler
    if target_file:
        handler = logging.FileHandler(target_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    # docker-py and urllib3 are chatty at DEBUG
    logging.getLogger("docker").setLevel(max(log_level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))

    if renderer_name == "console":
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    """Get a structlog logger."""
    return structlog.get_logger(name)


@contextmanager
def log_stage(logger, stage: str, **context: Any) -> Iterator[Any]:
    """Log the start, end and duration of one orchestration stage.

    Failures are logged with the exception type and re-raised.

    Args:
        logger: structlog logger to emit on
        stage: Stage name, e.g. "ensure_image"
        **context: Extra key/value pairs bound to every event

    Yields:
        The logger bound with the stage context
    """
    bound = logger.bind(stage=stage, **context)
    started = time.monotonic()
    bound.debug("Stage started")
    try:
        yield bound
    except BaseException as e:
        bound.error(
            "Stage failed",
            error=str(e),
            error_class=type(e).__name__,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        raise
    bound.info(
        "Stage finished",
        duration_ms=round((time.monotonic() - started) * 1000, 2),
    )
