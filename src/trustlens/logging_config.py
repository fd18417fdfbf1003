"""Structured logging configuration using structlog.

Development gets colored console output, production gets one JSON
object per line. Request-scoped values (request id, transaction id) are
carried through contextvars, and every JSON event is stamped with the
app name and environment of the settings logging was configured with.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from trustlens.config import Settings, get_settings

# Libraries that log every request or heartbeat at INFO/DEBUG
NOISY_LOGGERS = ("httpcore", "httpx", "uvicorn.access", "pymongo", "asyncio")


def _add_log_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Store the level under "level", normalising the "warn" alias."""
    event_dict["level"] = ("warning" if method_name == "warn" else method_name).upper()
    return event_dict


def app_context_processor(settings: Settings) -> Processor:
    """Build a processor that tags events with the app name and environment.

    The values are read once here, so a container running with its own
    settings logs under those settings rather than the process defaults.
    """
    app_name = settings.app_name
    environment = settings.environment.value

    def add_app_context(
        logger: Any, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_app_context


def build_processors(settings: Settings) -> list[Processor]:
    """Return the processor chain for the configured log format."""
    if settings.log_format == "json":
        return [
            structlog.contextvars.merge_contextvars,
            _add_log_level,
            app_context_processor(settings),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Call once at startup (the app lifespan and the CLI both do) before
    anything logs. Without explicit settings the environment is used.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.value)

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if settings.log_file:
        _add_file_handler(settings.log_file, level)
    _quiet_third_party(level)


def _add_file_handler(log_file: Path, level: int) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logging.getLogger().addHandler(handler)


def _quiet_third_party(level: int) -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
    # topology heartbeats only matter when debugging connection issues
    if level > logging.DEBUG:
        logging.getLogger("pymongo.topology").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("transaction_evaluated", transaction_id=txn.transaction_id)
    """
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values to every log call made later in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind log context for the duration of a with block.

    Example:
        with LogContext(transaction_id=submission.transaction_id):
            evaluation = engine.evaluate(submission, history)
    """

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self.kwargs)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self.kwargs.keys())
