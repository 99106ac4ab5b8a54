import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

import structlog
from adintel.config import LOG_LEVEL, LOG_FILE


def setup_logging(level: str = None, log_file: Optional[Path] = LOG_FILE, stream=None):
    """Configure structured logging.

    Every event goes to stderr (or `stream`) so stdout stays free for command
    output such as `search --json`. When `log_file` is set events are also
    written there. Values bound with `structlog.contextvars` (the session's
    `request_id`) are merged into each event.
    """
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)

    stream = stream or sys.stderr
    handlers = [logging.StreamHandler(stream)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if stream.isatty() else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None):
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def new_request_id() -> str:
    """Short id used to trace one aggregation session across log lines."""
    return uuid.uuid4().hex[:10]


# Initialize logging on import
setup_logging()
logger = get_logger("adintel")
