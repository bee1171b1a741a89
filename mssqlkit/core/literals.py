"""SQL literal rendering for statements built without bound parameters."""

import datetime
import math
from typing import Any, Final

from mssqlkit.core.values import ValueKind, classify_value
from mssqlkit.exceptions import SQLBuilderError

__all__ = ("DATETIME_LITERAL_FORMAT", "escape_string", "quote_string", "render_literal")

DATETIME_LITERAL_FORMAT: Final = "%Y-%m-%d %H:%M:%S"


def escape_string(value: str) -> str:
    """Double every single quote in ``value``."""
    return value.replace("'", "''")


def quote_string(value: str) -> str:
    """Escape ``value`` and wrap it in single quotes."""
    return f"'{escape_string(value)}'"


def _render_datetime(value: "datetime.date") -> str:
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    return quote_string(value.strftime(DATETIME_LITERAL_FORMAT))


def _render_number(value: Any) -> str:
    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"Cannot render non-finite number {value!r} as a SQL literal"
            raise SQLBuilderError(msg)
        return repr(value)
    text = str(value)
    if text.lower().lstrip("-+") in {"nan", "snan", "infinity", "inf"}:
        msg = f"Cannot render non-finite number {value!r} as a SQL literal"
        raise SQLBuilderError(msg)
    return text


def render_literal(value: Any) -> str:
    """Render ``value`` as SQL literal text.

    Strings (and any value of an unrecognized type, via ``str()``) are quoted with
    embedded single quotes doubled. ``None`` renders as ``NULL``, booleans as ``1``/``0``,
    dates as ``'YYYY-MM-DD HH:MM:SS'`` and numbers as unquoted decimal text.

    Args:
        value: Value to render.

    Raises:
        SQLBuilderError: If ``value`` is a NaN or infinite number.

    Returns:
        The SQL literal.
    """
    kind = classify_value(value)
    if kind is ValueKind.NULL:
        return "NULL"
    if kind is ValueKind.BOOL:
        return "1" if value else "0"
    if kind is ValueKind.DATETIME:
        return _render_datetime(value)
    if kind in {ValueKind.INT, ValueKind.FLOAT}:
        return _render_number(value)
    return quote_string(value if isinstance(value, str) else str(value))
