# ruff: noqa: PLR6301
"""Logging for mssqlkit.

Every logger lives under the ``mssqlkit`` namespace. Besides free-form
``extra_fields``, records emitted around a connection carry first-class attributes
(``connection_state``, ``error_code``, ``error_type``) so failures can be filtered by
state and driver code without parsing the message. A correlation ID set per unit of
work (one CLI invocation, one request) is attached to every record.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from mssqlkit._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

    from mssqlkit.exceptions import MssqlKitError

__all__ = (
    "CONNECTION_FIELDS",
    "ConsoleFormatter",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "connection_fields",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
)

ROOT_LOGGER_NAME: Final = "mssqlkit"
CONNECTION_FIELDS: Final = ("connection_state", "error_code", "error_type")
CONSOLE_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("mssqlkit_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context, ``None`` clears it."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def connection_fields(state: object, error: MssqlKitError | None = None) -> dict[str, Any]:
    """Build the ``extra`` mapping for a record about the managed connection.

    Args:
        state: Current connection state.
        error: Error being reported, if any.

    Returns:
        Record attributes understood by both formatters.
    """
    fields: dict[str, Any] = {"connection_state": str(state)}
    if error is not None:
        fields["error_code"] = error.code
        fields["error_type"] = type(error).__name__
    return fields


def _record_connection_fields(record: LogRecord) -> dict[str, Any]:
    return {name: getattr(record, name) for name in CONNECTION_FIELDS if hasattr(record, name)}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if correlation_id := get_correlation_id():
            entry["correlation_id"] = correlation_id
        entry.update(_record_connection_fields(record))
        if hasattr(record, "extra_fields"):
            entry.update(record.extra_fields)  # pyright: ignore
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)  # type: ignore[return-value]


class ConsoleFormatter(logging.Formatter):
    """Plain text with connection state and error code appended as ``[key=value ...]``."""

    def __init__(self, fmt: str = CONSOLE_FORMAT, datefmt: str | None = None) -> None:
        super().__init__(fmt, datefmt)

    def format(self, record: LogRecord) -> str:
        text = super().format(record)
        fields = _record_connection_fields(record)
        if not fields:
            return text
        suffix = " ".join(f"{name}={value}" for name, value in fields.items())
        first, newline, rest = text.partition("\n")
        return f"{first} [{suffix}]{newline}{rest}"


class CorrelationIDFilter(logging.Filter):
    """Attach the current correlation ID to records as ``correlation_id``."""

    def filter(self, record: LogRecord) -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the ``mssqlkit`` namespace.

    ``get_logger("driver.executor")`` and ``get_logger("mssqlkit.driver.executor")``
    return the same logger.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Route mssqlkit records to stderr and optionally a file.

    Args:
        level: Logging level name, case-insensitive.
        format_style: ``"structured"`` for JSON lines, ``"simple"`` for :class:`ConsoleFormatter` text.
        log_to_file: Path of a file that receives JSON lines regardless of ``format_style``.
        extra_handlers: Handlers added as given.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter() if format_style == "structured" else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for handler in extra_handlers or ():
        root_logger.addHandler(handler)

    root_logger.propagate = False
    root_logger.debug(
        "mssqlkit logging configured",
        extra={"extra_fields": {"level": level, "format_style": format_style, "handlers": len(root_logger.handlers)}},
    )
