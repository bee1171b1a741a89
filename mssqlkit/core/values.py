"""Value classification and data type inference.

Every runtime value handled by the builders and the binder is first classified
into one of the closed :class:`ValueKind` variants. The literal renderer and the
parameter data type inference both dispatch on that kind.
"""

import datetime
import math
from decimal import Decimal
from enum import Enum
from typing import Any, Final

__all__ = (
    "SQL_TYPE_NAMES",
    "DataType",
    "ValueKind",
    "classify_value",
    "coerce_value",
    "infer_data_type",
)


class ValueKind(str, Enum):
    """Closed set of scalar value variants."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    TEXT = "text"
    DATETIME = "datetime"

    def __str__(self) -> str:
        return self.value


class DataType(str, Enum):
    """Wire-level data type of a bound parameter."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"

    def __str__(self) -> str:
        return self.value


SQL_TYPE_NAMES: Final["dict[DataType, str]"] = {
    DataType.STRING: "NVARCHAR(MAX)",
    DataType.INTEGER: "BIGINT",
    DataType.FLOAT: "FLOAT",
    DataType.BOOLEAN: "BIT",
    DataType.DATETIME: "DATETIME2",
}

_KIND_TO_DATA_TYPE: Final["dict[ValueKind, DataType]"] = {
    ValueKind.NULL: DataType.STRING,
    ValueKind.BOOL: DataType.BOOLEAN,
    ValueKind.INT: DataType.INTEGER,
    ValueKind.FLOAT: DataType.FLOAT,
    ValueKind.TEXT: DataType.STRING,
    ValueKind.DATETIME: DataType.DATETIME,
}


def _has_fraction(value: "float | Decimal") -> bool:
    if isinstance(value, float):
        return not value.is_integer()
    if not value.is_finite():
        return True
    return value != value.to_integral_value()


def classify_value(value: Any) -> ValueKind:
    """Classify a runtime value.

    ``bool`` is checked before ``int`` because it is an ``int`` subclass, and numbers
    whose fractional part is zero classify as :attr:`ValueKind.INT`. Unknown types
    fall through to :attr:`ValueKind.TEXT`.

    Args:
        value: Any scalar value.

    Returns:
        The value's kind.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (datetime.datetime, datetime.date)):
        return ValueKind.DATETIME
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, (float, Decimal)):
        return ValueKind.FLOAT if _has_fraction(value) else ValueKind.INT
    return ValueKind.TEXT


def infer_data_type(value: Any) -> DataType:
    """Infer the wire data type of ``value``.

    ``None`` maps to :attr:`DataType.STRING` so that a typed NULL can always be bound.
    Never raises.
    """
    return _KIND_TO_DATA_TYPE[classify_value(value)]


_TRUE_STRINGS: Final = frozenset({"1", "true", "yes"})
_FALSE_STRINGS: Final = frozenset({"0", "false", "no", ""})


def _to_integer(value: Any) -> int:
    if isinstance(value, (float, Decimal)):
        finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
        if not finite:
            msg = f"{value!r} is not a finite number"
            raise ValueError(msg)
        if value != int(value):
            msg = f"{value!r} has a fractional part"
            raise ValueError(msg)
    return int(value)


def _to_boolean(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        msg = f"{value!r} is not a boolean"
        raise ValueError(msg)
    return bool(value)


def coerce_value(value: Any, data_type: DataType) -> Any:
    """Convert ``value`` to the Python type the driver expects for ``data_type``.

    ``None`` is never converted. Date/time values are passed through unchanged.
    Strings bound as BOOLEAN accept ``1/true/yes`` and ``0/false/no/""`` in any case.
    Numbers bound as INTEGER must not have a fractional part.

    Raises:
        ValueError: If the value cannot be represented as ``data_type``.
    """
    if value is None:
        return None
    if data_type is DataType.STRING:
        return value if isinstance(value, str) else str(value)
    if data_type is DataType.INTEGER:
        return value if type(value) is int else _to_integer(value)
    if data_type is DataType.FLOAT:
        return value if type(value) is float else float(value)
    if data_type is DataType.BOOLEAN:
        return _to_boolean(value)
    return value
