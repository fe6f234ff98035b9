"""Structured logging for GameBin.

structlog renders JSON lines in production and a colored console view while
developing. Every entry carries a correlation id: the one bound by the HTTP
middleware while a request is served, or a fresh one otherwise.
"""

import logging
import sys
import uuid
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor

from gamebin.core.config import get_settings


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Ensure the entry has a correlation id.

    Entries logged outside a request (CLI commands, the cache sweeper) get a
    one-off id so they can still be grepped as a unit.
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = f"cid_{uuid.uuid4().hex[:12]}"
    return event_dict


def add_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    # PrintLogger has no name; module loggers are only named through get_logger
    event_dict["logger"] = getattr(logger, "name", None) or "gamebin"
    return event_dict


def rename_message_field(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Emit the event text under ``message``, as log shippers expect."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def configure_logging(settings: Any | None = None, stream: TextIO | None = None) -> None:
    """Install the structlog pipeline and align stdlib loggers with it.

    Args:
        settings: Settings to read level and format from (loaded when omitted).
        stream: Where entries are written, stdout by default. CLI commands
            pass stderr so exported data on stdout is not interleaved with logs.
    """
    if settings is None:
        settings = get_settings()

    level = getattr(logging, settings.log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        rename_message_field,
    ]

    console = settings.is_development or settings.log_format == "console"
    if console:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=not console,
    )

    # httpx and uvicorn log through the standard library
    logging.basicConfig(format="%(message)s", stream=stream or sys.stdout, level=level)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpx"):
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, named ``gamebin`` unless a name is given."""
    return structlog.get_logger(name or "gamebin")


class LoggingContext:
    """Bind key/values to every entry logged inside the ``with`` block.

    Example:
        with LoggingContext(command="export", collection="animals"):
            asyncio.run(run())
    """

    def __init__(self, **values: str) -> None:
        self.values = values

    def __enter__(self) -> "LoggingContext":
        structlog.contextvars.bind_contextvars(**self.values)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.values)


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    """Drop everything bound for the current request."""
    structlog.contextvars.clear_contextvars()
