"""SQL text builders for SELECT, INSERT, UPDATE, DELETE, DDL and stored procedure calls.

Builders are pure: they return a :class:`QueryFragment` and raise before anything
reaches the database. Literal mode renders every value with
:func:`~mssqlkit.core.literals.render_literal`; parameterized mode emits ``:name``
placeholders.

Table, field and procedure identifiers are inserted as given. Callers must pass
trusted identifiers.
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, Optional, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from mssqlkit.core.literals import render_literal
from mssqlkit.core.parameters import Parameter, ParameterDirection, ParameterSet
from mssqlkit.core.values import SQL_TYPE_NAMES, DataType
from mssqlkit.exceptions import ArityMismatchError, SQLBuilderError

__all__ = (
    "Paging",
    "QueryFragment",
    "build_create_table",
    "build_delete",
    "build_drop_table",
    "build_insert",
    "build_insert_parameterized",
    "build_select",
    "build_stored_procedure_call",
    "build_update",
    "build_update_parameterized",
    "build_where_clause",
)

FieldValues = Union[Mapping[str, Any], Sequence[tuple[str, Any]], Sequence[str]]

DIALECT: Final = "tsql"
RETURN_VALUE_SQL_TYPE: Final = "INT"
_LEADING_KEYWORD: Final = re.compile(r"^\s*([A-Za-z]+)")


@dataclass(frozen=True)
class QueryFragment:
    """SQL text together with the parameters its placeholders refer to."""

    sql: str
    parameters: ParameterSet = field(default_factory=ParameterSet)

    @property
    def operation_type(self) -> str:
        """Statement kind (``SELECT``, ``INSERT``, ...) of the first statement, ``UNKNOWN`` if undetectable."""
        try:
            expressions = sqlglot.parse(self.sql, dialect=DIALECT)
        except SqlglotError:
            expressions = []
        expression = next((e for e in expressions if e is not None), None)
        if expression is None:
            match = _LEADING_KEYWORD.match(self.sql)
            return match.group(1).upper() if match else "UNKNOWN"
        if isinstance(expression, exp.Command):
            return str(expression.this).upper()
        if isinstance(expression, exp.Union):
            return "SELECT"
        return expression.key.upper()

    def __str__(self) -> str:
        return self.sql


@dataclass(frozen=True)
class Paging:
    """1-based page request."""

    page_number: int
    page_size: int

    def __post_init__(self) -> None:
        if self.page_number < 1 or self.page_size < 1:
            msg = f"Page number and page size must be positive (got {self.page_number}, {self.page_size})"
            raise SQLBuilderError(msg)

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size

    def to_parameters(self) -> ParameterSet:
        parameters = ParameterSet()
        parameters.add("Offset", self.offset, DataType.INTEGER)
        parameters.add("PageSize", self.page_size, DataType.INTEGER)
        return parameters


def _pair_up(fields: FieldValues, values: "Optional[Sequence[Any]]", label: str) -> "tuple[list[str], list[Any]]":
    """Normalize parallel sequences or ``(field, value)`` pairs into two aligned lists."""
    if values is None:
        pairs = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
        if any(not isinstance(pair, tuple) or len(pair) != 2 for pair in pairs):  # noqa: PLR2004
            msg = f"{label} are required unless fields are given as (field, value) pairs"
            raise SQLBuilderError(msg)
        field_names, field_values = [p[0] for p in pairs], [p[1] for p in pairs]
    else:
        field_names, field_values = list(fields), list(values)  # type: ignore[arg-type]
        if len(field_names) != len(field_values):
            raise ArityMismatchError(len(field_names), len(field_values), label)
    if not field_names:
        msg = "At least one field is required"
        raise SQLBuilderError(msg)
    return field_names, field_values


def _as_parameters(field_names: "list[str]", items: "list[Any]") -> "list[Parameter]":
    """Wrap plain values as ``IN`` parameters named after their field."""
    return [item if isinstance(item, Parameter) else Parameter(name, item) for name, item in zip(field_names, items)]


def _with_where(sql: str, where: str) -> str:
    where = where.strip()
    return f"{sql} WHERE {where}" if where else sql


def build_where_clause(conditions: "Sequence[str]", operator: str = "AND") -> str:
    """Join conditions as ``(c1) OP (c2) ...``; an empty sequence gives ``""``."""
    return f" {operator.strip()} ".join(f"({condition})" for condition in conditions)


def build_select(
    table: str,
    fields: "Sequence[str]" = (),
    where: str = "",
    order_by: str = "",
    paging: Optional[Paging] = None,
    parameters: Optional[ParameterSet] = None,
) -> QueryFragment:
    """Build a SELECT statement.

    An empty field list selects ``*``. With ``paging`` the statement ends with
    ``OFFSET :Offset ROWS FETCH NEXT :PageSize ROWS ONLY`` and the paging parameters
    follow ``parameters``. OFFSET requires an ORDER BY in T-SQL, so
    ``ORDER BY (SELECT NULL)`` is used when ``order_by`` is empty.

    Args:
        table: Table or view name.
        fields: Columns in result order.
        where: Predicate appended verbatim.
        order_by: ORDER BY list.
        paging: Optional page request.
        parameters: Parameters referenced by ``where``.

    Raises:
        DuplicateParameterError: If ``parameters`` already uses ``Offset`` or ``PageSize``.

    Returns:
        The statement and its parameters.
    """
    field_list = ", ".join(fields) if fields else "*"
    sql = _with_where(f"SELECT {field_list} FROM {table}", where)
    order_by = order_by.strip()
    merged = ParameterSet(parameters)
    if paging is not None:
        sql = f"{sql} ORDER BY {order_by or '(SELECT NULL)'} OFFSET :Offset ROWS FETCH NEXT :PageSize ROWS ONLY"
        merged = merged.merge(paging.to_parameters())
    elif order_by:
        sql = f"{sql} ORDER BY {order_by}"
    return QueryFragment(sql, merged)


def build_insert(table: str, fields: FieldValues, values: "Optional[Sequence[Any]]" = None) -> QueryFragment:
    """Build an INSERT with every value rendered as a SQL literal.

    ``fields`` and ``values`` are matched by position. Alternatively pass a mapping or
    a sequence of ``(field, value)`` pairs as ``fields`` and omit ``values``.

    Raises:
        ArityMismatchError: If ``fields`` and ``values`` differ in length.
    """
    field_names, field_values = _pair_up(fields, values, "Values")
    value_list = ", ".join(render_literal(value) for value in field_values)
    return QueryFragment(f"INSERT INTO {table} ({', '.join(field_names)}) VALUES ({value_list})")


def build_insert_parameterized(
    table: str,
    fields: "Union[Sequence[str], Mapping[str, Parameter], Sequence[tuple[str, Parameter]]]",
    parameters: "Optional[Iterable[Parameter]]" = None,
) -> QueryFragment:
    """Build an INSERT with one placeholder per field.

    The i-th field receives the i-th parameter's placeholder. Parameter names do not
    have to match field names. Given ``(field, value)`` pairs instead, plain values
    become parameters named after their field.

    Raises:
        ArityMismatchError: If ``fields`` and ``parameters`` differ in length.
    """
    field_names, items = _pair_up(fields, list(parameters) if parameters is not None else None, "Params")
    field_parameters = _as_parameters(field_names, items)
    parameter_set = ParameterSet(field_parameters)
    placeholders = ", ".join(p.placeholder for p in field_parameters)
    return QueryFragment(f"INSERT INTO {table} ({', '.join(field_names)}) VALUES ({placeholders})", parameter_set)


def build_update(
    table: str,
    fields: FieldValues,
    values: "Optional[Union[Sequence[Any], ParameterSet]]" = None,
    where: str = "",
    where_parameters: Optional[ParameterSet] = None,
) -> QueryFragment:
    """Build an UPDATE whose SET values are SQL literals.

    Passing a :class:`ParameterSet` as ``values`` builds the parameterized form instead
    (see :func:`build_update_parameterized`).

    Raises:
        ArityMismatchError: If ``fields`` and ``values`` differ in length.
    """
    if isinstance(values, ParameterSet):
        return build_update_parameterized(table, fields, values, where, where_parameters)  # type: ignore[arg-type]
    field_names, field_values = _pair_up(fields, values, "Values")
    set_clause = ", ".join(f"{name} = {render_literal(value)}" for name, value in zip(field_names, field_values))
    return QueryFragment(_with_where(f"UPDATE {table} SET {set_clause}", where), ParameterSet(where_parameters))


def build_update_parameterized(
    table: str,
    fields: "Union[Sequence[str], Mapping[str, Parameter], Sequence[tuple[str, Parameter]]]",
    parameters: "Optional[Iterable[Parameter]]" = None,
    where: str = "",
    where_parameters: Optional[ParameterSet] = None,
) -> QueryFragment:
    """Build an UPDATE with ``field = :param`` pairs matched by position.

    SET parameters come first, then ``where_parameters``.

    Raises:
        ArityMismatchError: If ``fields`` and ``parameters`` differ in length.
        DuplicateParameterError: If a SET parameter and a WHERE parameter share a name.
    """
    field_names, items = _pair_up(fields, list(parameters) if parameters is not None else None, "FieldParams")
    field_parameters = _as_parameters(field_names, items)
    set_clause = ", ".join(f"{name} = {p.placeholder}" for name, p in zip(field_names, field_parameters))
    merged = ParameterSet(field_parameters).merge(where_parameters)
    return QueryFragment(_with_where(f"UPDATE {table} SET {set_clause}", where), merged)


def build_delete(table: str, where: str = "", where_parameters: Optional[ParameterSet] = None) -> QueryFragment:
    """Build a DELETE. Without ``where`` every row is deleted."""
    return QueryFragment(_with_where(f"DELETE FROM {table}", where), ParameterSet(where_parameters))


def build_create_table(table: str, column_defs: "Sequence[str]") -> QueryFragment:
    if not column_defs:
        msg = f"CREATE TABLE {table} needs at least one column definition"
        raise SQLBuilderError(msg)
    return QueryFragment(f"CREATE TABLE {table} ({', '.join(column_defs)})")


def build_drop_table(table: str) -> QueryFragment:
    return QueryFragment(f"DROP TABLE {table}")


def build_stored_procedure_call(procedure: str, parameters: Optional[ParameterSet] = None) -> QueryFragment:
    """Build a T-SQL batch that executes ``procedure`` and selects its outputs.

    ``IN`` parameters are passed as ``@name = :name``. ``OUT`` and ``IN_OUT``
    parameters are declared as variables (``IN_OUT`` ones initialised from their
    placeholder) and passed with ``OUTPUT``. A ``RETURN_VALUE`` parameter receives the
    procedure's return code. When any output exists the batch ends with a single-row
    SELECT whose columns follow the output parameters' order.

    Raises:
        SQLBuilderError: If more than one ``RETURN_VALUE`` parameter is given.

    Returns:
        The batch, bound to the ``IN`` and ``IN_OUT`` parameters only.
    """
    parameters = parameters or ParameterSet()
    return_values = [p for p in parameters if p.direction is ParameterDirection.RETURN_VALUE]
    if len(return_values) > 1:
        msg = f"Only one return value parameter is allowed for {procedure}"
        raise SQLBuilderError(msg)

    statements = ["SET NOCOUNT ON"]
    arguments: list[str] = []
    bound = ParameterSet()
    for parameter in parameters:
        variable = f"@{parameter.name}"
        if parameter.direction is ParameterDirection.IN:
            arguments.append(f"{variable} = {parameter.placeholder}")
            bound.append(parameter)
            continue
        sql_type = (
            RETURN_VALUE_SQL_TYPE
            if parameter.direction is ParameterDirection.RETURN_VALUE
            else SQL_TYPE_NAMES[parameter.data_type or DataType.STRING]
        )
        if parameter.direction is ParameterDirection.IN_OUT:
            statements.append(f"DECLARE {variable} {sql_type} = {parameter.placeholder}")
            bound.append(parameter)
        else:
            statements.append(f"DECLARE {variable} {sql_type}")
        if parameter.direction is not ParameterDirection.RETURN_VALUE:
            arguments.append(f"{variable} = {variable} OUTPUT")

    call = f"EXEC @{return_values[0].name} = {procedure}" if return_values else f"EXEC {procedure}"
    statements.append(f"{call} {', '.join(arguments)}".rstrip())
    outputs = parameters.outputs()
    if outputs:
        statements.append("SELECT " + ", ".join(f"@{p.name} AS [{p.name}]" for p in outputs))
    return QueryFragment(";\n".join(statements) + ";", bound)
