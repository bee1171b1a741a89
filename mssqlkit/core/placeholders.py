"""Placeholder extraction and conversion to the driver's parameter style.

Builders always emit ``:name`` placeholders. Before execution the statement is
rewritten into the style the DB-API driver understands and the bind values are
laid out to match.
"""

import re
from collections.abc import Callable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional

from mssqlkit.core.values import coerce_value
from mssqlkit.exceptions import ExtraParameterError, MissingParameterError, ParameterError

if TYPE_CHECKING:
    from mssqlkit.core.parameters import ParameterSet

__all__ = ("ParameterInfo", "ParameterStyle", "convert_placeholders", "extract_placeholders")


class ParameterStyle(str, Enum):
    """Parameter style enumeration with string values."""

    QMARK = "qmark"
    NAMED_COLON = "named_colon"
    NAMED_PYFORMAT = "pyformat_named"

    def __str__(self) -> str:
        return self.value


_PARAMETER_REGEX: Final = re.compile(
    r"""
    # Literals, identifiers and comments are matched first and skipped
    (?P<squote>'(?:[^']|'')*') |
    (?P<dquote>"(?:[^"]|"")*") |
    (?P<bracket>\[(?:[^\]]|\]\])*\]) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    # T-SQL scope qualifier, e.g. SCHEMA::dbo
    (?P<scope>::\w*) |
    (?P<named_colon>:(?P<colon_name>[A-Za-z_]\w*))
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)


class ParameterInfo:
    """Immutable placeholder information."""

    __slots__ = ("name", "ordinal", "placeholder_text", "position")

    def __init__(self, name: str, position: int, ordinal: int, placeholder_text: str) -> None:
        self.name = name
        self.position = position
        self.ordinal = ordinal
        self.placeholder_text = placeholder_text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return False
        return self.name == other.name and self.position == other.position

    def __hash__(self) -> int:
        return hash((self.name, self.position))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, ordinal={self.ordinal!r}, position={self.position!r})"


def extract_placeholders(sql: str) -> "list[ParameterInfo]":
    """Find every ``:name`` placeholder outside literals and comments.

    Args:
        sql: SQL string to analyze

    Returns:
        Placeholders sorted by position.
    """
    placeholders: list[ParameterInfo] = []
    for match in _PARAMETER_REGEX.finditer(sql):
        if match.group("named_colon") is None:
            continue
        placeholders.append(
            ParameterInfo(
                name=match.group("colon_name"),
                position=match.start("named_colon"),
                ordinal=len(placeholders),
                placeholder_text=match.group("named_colon"),
            )
        )
    return placeholders


def _bind_value(parameter: Any, type_coercion_map: "Mapping[type, Callable[[Any], Any]]") -> Any:
    try:
        value = coerce_value(parameter.value, parameter.data_type)
    except (TypeError, ValueError) as exc:
        msg = f"Parameter {parameter.name!r} value {parameter.value!r} is not a valid {parameter.data_type}"
        raise ParameterError(msg) from exc
    converter = type_coercion_map.get(type(value))
    return value if converter is None else converter(value)


def convert_placeholders(
    sql: str,
    parameters: "Optional[ParameterSet]",
    style: ParameterStyle = ParameterStyle.QMARK,
    type_coercion_map: "Optional[Mapping[type, Callable[[Any], Any]]]" = None,
) -> "tuple[str, Any]":
    """Rewrite ``:name`` placeholders for the driver and lay out the bind values.

    Placeholder names match parameters case-insensitively. With ``QMARK`` a name used
    twice is bound twice; the named styles bind a mapping in parameter order.

    Args:
        sql: Statement using ``:name`` placeholders.
        parameters: Parameters to bind.
        style: Target parameter style.
        type_coercion_map: Driver-specific converters applied after data type coercion.

    Raises:
        MissingParameterError: If a placeholder has no parameter.
        ExtraParameterError: If a parameter is never referenced.

    Returns:
        The rewritten SQL and a sequence (``QMARK``) or mapping (named styles) of values.
    """
    coercions = type_coercion_map or {}
    placeholders = extract_placeholders(sql)
    available = {p.key: p for p in parameters or ()}

    missing = [info.name for info in placeholders if info.name.lower() not in available]
    if missing:
        msg = f"No parameter supplied for placeholder(s): {', '.join(missing)}"
        raise MissingParameterError(msg, sql)
    referenced = {info.name.lower() for info in placeholders}
    unused = [p.name for key, p in available.items() if key not in referenced]
    if unused:
        msg = f"Parameter(s) not referenced by the statement: {', '.join(unused)}"
        raise ExtraParameterError(msg, sql)

    if style is ParameterStyle.QMARK:
        values = [_bind_value(available[info.name.lower()], coercions) for info in placeholders]
        return _substitute(sql, placeholders, lambda _: "?"), values

    bound = {p.name: _bind_value(p, coercions) for p in available.values()}
    if style is ParameterStyle.NAMED_PYFORMAT:
        rendered = _substitute(
            sql, placeholders, lambda info: f"%({available[info.name.lower()].name})s", escape_percent=bool(bound)
        )
        return rendered, bound
    return _substitute(sql, placeholders, lambda info: f":{available[info.name.lower()].name}"), bound


def _substitute(
    sql: str,
    placeholders: "list[ParameterInfo]",
    render: "Callable[[ParameterInfo], str]",
    escape_percent: bool = False,
) -> str:
    def segment(text: str) -> str:
        return text.replace("%", "%%") if escape_percent else text

    if not placeholders:
        return segment(sql)
    parts: list[str] = []
    cursor = 0
    for info in placeholders:
        parts.extend((segment(sql[cursor : info.position]), render(info)))
        cursor = info.position + len(info.placeholder_text)
    parts.append(segment(sql[cursor:]))
    return "".join(parts)
