"""Unit tests for value classification and data type inference."""

import datetime
import math
from decimal import Decimal
from typing import Any

import pytest

from mssqlkit.core.values import SQL_TYPE_NAMES, DataType, ValueKind, classify_value, coerce_value, infer_data_type


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ValueKind.NULL),
        (True, ValueKind.BOOL),
        (False, ValueKind.BOOL),
        (0, ValueKind.INT),
        (-42, ValueKind.INT),
        (3.0, ValueKind.INT),
        (3.25, ValueKind.FLOAT),
        (Decimal("10.00"), ValueKind.INT),
        (Decimal("10.5"), ValueKind.FLOAT),
        (math.nan, ValueKind.FLOAT),
        (math.inf, ValueKind.FLOAT),
        ("text", ValueKind.TEXT),
        ("", ValueKind.TEXT),
        (datetime.datetime(2024, 1, 2, 3, 4, 5), ValueKind.DATETIME),
        (datetime.date(2024, 1, 2), ValueKind.DATETIME),
        (b"\x00\x01", ValueKind.TEXT),
        (object(), ValueKind.TEXT),
    ],
    ids=[
        "none",
        "true",
        "false",
        "zero",
        "negative",
        "integral_float",
        "fractional_float",
        "integral_decimal",
        "fractional_decimal",
        "nan",
        "inf",
        "str",
        "empty_str",
        "datetime",
        "date",
        "bytes",
        "object",
    ],
)
def test_classify_value(value: Any, expected: ValueKind) -> None:
    assert classify_value(value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, DataType.STRING),
        (True, DataType.BOOLEAN),
        (1, DataType.INTEGER),
        (2.0, DataType.INTEGER),
        (2.5, DataType.FLOAT),
        ("abc", DataType.STRING),
        (datetime.datetime(2024, 1, 1), DataType.DATETIME),
        ([1, 2], DataType.STRING),
    ],
)
def test_infer_data_type(value: Any, expected: DataType) -> None:
    assert infer_data_type(value) is expected


def test_infer_data_type_is_deterministic() -> None:
    values = [None, False, 7, 7.5, "x", datetime.datetime(2020, 5, 17)]
    assert [infer_data_type(v) for v in values] == [infer_data_type(v) for v in values]


def test_bool_is_not_classified_as_int() -> None:
    assert infer_data_type(True) is DataType.BOOLEAN
    assert infer_data_type(1) is DataType.INTEGER


@pytest.mark.parametrize(
    ("value", "data_type", "expected"),
    [
        (None, DataType.INTEGER, None),
        (12, DataType.STRING, "12"),
        ("12", DataType.INTEGER, 12),
        (12.0, DataType.INTEGER, 12),
        ("1.5", DataType.FLOAT, 1.5),
        (Decimal("7.00"), DataType.INTEGER, 7),
        (1, DataType.BOOLEAN, True),
        (0, DataType.BOOLEAN, False),
        ("false", DataType.BOOLEAN, False),
        ("FALSE", DataType.BOOLEAN, False),
        ("0", DataType.BOOLEAN, False),
        ("no", DataType.BOOLEAN, False),
        ("", DataType.BOOLEAN, False),
        ("True", DataType.BOOLEAN, True),
        (" yes ", DataType.BOOLEAN, True),
        ("1", DataType.BOOLEAN, True),
    ],
)
def test_coerce_value(value: Any, data_type: DataType, expected: Any) -> None:
    result = coerce_value(value, data_type)
    assert result == expected
    assert type(result) is type(expected)


@pytest.mark.parametrize(
    ("value", "data_type"),
    [
        (2.7, DataType.INTEGER),
        (Decimal("2.5"), DataType.INTEGER),
        (float("inf"), DataType.INTEGER),
        (float("nan"), DataType.INTEGER),
        (Decimal("NaN"), DataType.INTEGER),
        ("2.0", DataType.INTEGER),
        ("maybe", DataType.BOOLEAN),
        ("2", DataType.BOOLEAN),
    ],
)
def test_coerce_value_rejects_lossy_conversions(value: Any, data_type: DataType) -> None:
    with pytest.raises(ValueError):
        coerce_value(value, data_type)


def test_coerce_value_passes_datetimes_through() -> None:
    moment = datetime.datetime(2024, 6, 1, 12, 0)
    assert coerce_value(moment, DataType.DATETIME) is moment


def test_coerce_value_rejects_unconvertible() -> None:
    with pytest.raises(ValueError):
        coerce_value("abc", DataType.INTEGER)


def test_sql_type_names_cover_every_data_type() -> None:
    assert set(SQL_TYPE_NAMES) == set(DataType)
    assert SQL_TYPE_NAMES[DataType.BOOLEAN] == "BIT"


def test_enum_string_values() -> None:
    assert str(DataType.STRING) == "string"
    assert str(ValueKind.DATETIME) == "datetime"
    assert DataType("integer") is DataType.INTEGER
