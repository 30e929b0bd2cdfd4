"""Logging configuration and utilities."""

import logging
import sys
from typing import Any

import structlog


def get_context_logger(name: str) -> structlog.BoundLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog and stdlib logging for the sidecar process.

    Args:
        level: Log level name (e.g. "DEBUG", "INFO")
        fmt: "console" for human-readable output, "json" for log shippers
    """
    level = level.upper()
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if fmt == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    # Loggers are not cached so that reconfiguration (and test capture) applies
    # to loggers created at import time.
    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level, logging.INFO))


class RequestLogContext:
    """Context manager binding request fields into the structlog context.

    Bindings the caller already had for the same keys are restored on exit.
    """

    def __init__(self, **context: Any):
        """Initialize with context variables.

        Args:
            **context: Context key-value pairs (path, function, ...)
        """
        self.context = {k: v for k, v in context.items() if v is not None}
        self._bound = None

    def __enter__(self):
        """Enter context."""
        self._bound = structlog.contextvars.bound_contextvars(**self.context)
        self._bound.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context."""
        bound, self._bound = self._bound, None
        bound.__exit__(exc_type, exc_val, exc_tb)


__all__ = [
    "get_context_logger",
    "configure_logging",
    "RequestLogContext",
]
