"""Logging setup for procspec.

Every logger lives under the ``procspec`` namespace and carries the current
correlation id, so log lines from one request can be grouped together.
"""

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Optional

from procspec._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "procspec"

correlation_id_var: "ContextVar[Optional[str]]" = ContextVar("procspec_correlation_id", default=None)


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set, or None to clear
    """
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID."""
    return correlation_id_var.get()


class StructuredFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: "LogRecord") -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if correlation_id := get_correlation_id():
            log_entry["correlation_id"] = correlation_id

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_entry.update(extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return encode_json(log_entry)


class CorrelationIDFilter(logging.Filter):
    """Filter that adds correlation ID to log records."""

    def filter(self, record: "LogRecord") -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the ``procspec`` namespace.

    Args:
        name: Logger name. If not provided, returns the root procspec logger.

    Returns:
        Configured logger instance
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: Optional[str] = None,
    extra_handlers: "Optional[list[logging.Handler]]" = None,
) -> None:
    """Configure the ``procspec`` logger hierarchy.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: ``"structured"`` for JSON lines, anything else for plain text
        log_to_file: Optional file path to log to, always structured
        extra_handlers: Additional handlers to add
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if format_style == "structured":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for handler in extra_handlers or ():
        root_logger.addHandler(handler)

    root_logger.propagate = False

    root_logger.info(
        "procspec logging configured",
        extra={
            "extra_fields": {"level": level, "format_style": format_style, "handlers_count": len(root_logger.handlers)}
        },
    )


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log a message with structured extra fields.

    Args:
        logger: The logger to use
        level: Log level
        message: Log message
        **extra_fields: Additional fields to include in structured logs
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, extra={"extra_fields": extra_fields}, stacklevel=2)
