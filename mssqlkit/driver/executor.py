"""Statement execution on top of a :class:`ConnectionManager`."""

import contextlib
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from mssqlkit.core.builder import QueryFragment, build_stored_procedure_call
from mssqlkit.core.parameters import Parameter, ParameterSet
from mssqlkit.core.placeholders import convert_placeholders
from mssqlkit.core.result import Result
from mssqlkit.driver.cursor import RowCursor
from mssqlkit.exceptions import ConnectionError, ExecError, MssqlKitError, wrap_exceptions
from mssqlkit.utils.logging import connection_fields, get_logger

if TYPE_CHECKING:
    from mssqlkit.config import MssqlConfig
    from mssqlkit.driver.connection import ConnectionManager, LastError

__all__ = ("ParametersLike", "StatementExecutor", "StatementLike", "to_fragment", "to_parameter_set")

logger = get_logger("driver.executor")

T = TypeVar("T")

StatementLike = Union[str, QueryFragment]
ParametersLike = Union[ParameterSet, Mapping[str, Any], Iterable[Parameter]]


def to_parameter_set(parameters: "Optional[ParametersLike]") -> ParameterSet:
    if isinstance(parameters, ParameterSet):
        return parameters
    if isinstance(parameters, Mapping):
        return ParameterSet.from_mapping(parameters)
    return ParameterSet(parameters)


def to_fragment(statement: StatementLike, parameters: "Optional[ParametersLike]" = None) -> QueryFragment:
    """Combine a statement and extra parameters into one fragment.

    Raises:
        DuplicateParameterError: If ``parameters`` repeats a name the fragment already binds.
    """
    if isinstance(statement, QueryFragment):
        if parameters is None:
            return statement
        return QueryFragment(statement.sql, statement.parameters.merge(to_parameter_set(parameters)))
    return QueryFragment(statement, to_parameter_set(parameters))


class StatementExecutor:
    """Binds parameters, runs statements and reports outcomes as :class:`Result` values.

    Every public method clears the manager's last error first and records it again on
    failure. Parameter problems are reported before the driver is touched.
    """

    __slots__ = ("manager",)

    def __init__(self, manager: "ConnectionManager") -> None:
        self.manager = manager

    @property
    def config(self) -> "MssqlConfig":
        return self.manager.config

    @property
    def last_error(self) -> "LastError":
        return self.manager.last_error

    def execute(self, statement: StatementLike, parameters: "Optional[ParametersLike]" = None) -> "Result[int]":
        """Execute a statement and return the number of affected rows.

        Drivers report ``-1`` when the count is unknown, e.g. for DDL.
        """
        return self._run(statement, parameters, self._execute)

    def execute_scalar(self, statement: StatementLike, parameters: "Optional[ParametersLike]" = None) -> "Result[Any]":
        """Return the first column of the first row, ``None`` when there is no row."""
        return self._run(statement, parameters, self._execute_scalar)

    def open_cursor(
        self, statement: StatementLike, parameters: "Optional[ParametersLike]" = None
    ) -> "Result[RowCursor]":
        """Execute a query on a new cursor and hand it to the caller.

        The cursor is positioned before the first row. Close it when done.
        """
        return self._run(statement, parameters, self._open_cursor)

    def execute_stored_procedure(
        self, procedure: str, parameters: "Optional[ParametersLike]" = None
    ) -> "Result[ParameterSet]":
        """Call a stored procedure and collect its output parameters.

        Returns:
            A set holding the ``OUT``, ``IN_OUT`` and ``RETURN_VALUE`` parameters with
            the values produced by the call, in declaration order.
        """
        self.manager.clear_last_error()
        try:
            declared = to_parameter_set(parameters)
            fragment = build_stored_procedure_call(procedure, declared)
            return Result.success(self._call_procedure(procedure, fragment, declared))
        except MssqlKitError as exc:
            return self.manager.record_error(exc)

    def get_last_insert_id(self) -> int:
        """Return the last identity value generated in this session, ``-1`` if unavailable.

        ``@@IDENTITY`` is session scoped: triggers that insert into other identity
        tables change it. Other connections do not.
        """
        value = self.execute_scalar(self.config.identity_query).unwrap_or(None)
        if value is None:
            return -1
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Identity query returned a non-integer value: %r", value)
            return -1

    def _run(
        self,
        statement: StatementLike,
        parameters: "Optional[ParametersLike]",
        action: "Callable[[QueryFragment], T]",
    ) -> "Result[T]":
        self.manager.clear_last_error()
        try:
            return Result.success(action(to_fragment(statement, parameters)))
        except MssqlKitError as exc:
            return self.manager.record_error(exc)

    def _prepare(self, fragment: QueryFragment) -> "tuple[str, Any]":
        sql, bound = convert_placeholders(
            fragment.sql, fragment.parameters, self.config.parameter_style, self.config.type_coercion_map
        )
        if logger.isEnabledFor(logging.DEBUG):
            operation = fragment.operation_type
            logger.debug(
                "Executing %s statement",
                operation,
                extra={
                    "extra_fields": {"operation": operation, "parameter_count": len(fragment.parameters)},
                    **connection_fields(self.manager.state),
                },
            )
        return sql, bound

    def _cursor(self, shared: bool = True) -> Any:
        try:
            return self.manager.shared_cursor() if shared else self.manager.new_cursor()
        except ConnectionError as exc:
            msg = f"Cannot execute statement: {exc}"
            raise ExecError(msg, code=exc.code) from exc

    @staticmethod
    def _run_on(cursor: Any, sql: str, bound: Any) -> None:
        with wrap_exceptions(ExecError, "Statement execution failed"):
            if bound:
                cursor.execute(sql, bound)
            else:
                cursor.execute(sql)

    def _execute(self, fragment: QueryFragment) -> int:
        sql, bound = self._prepare(fragment)
        cursor = self._cursor()
        self._run_on(cursor, sql, bound)
        rowcount = cursor.rowcount
        self.manager.statement_completed()
        return rowcount

    def _execute_scalar(self, fragment: QueryFragment) -> Any:
        sql, bound = self._prepare(fragment)
        cursor = self._cursor()
        self._run_on(cursor, sql, bound)
        with wrap_exceptions(ExecError, "Failed to fetch scalar"):
            row = cursor.fetchone() if cursor.description is not None else None
            _discard_pending_results(cursor)
        self.manager.statement_completed()
        return None if row is None else row[0]

    def _open_cursor(self, fragment: QueryFragment) -> RowCursor:
        sql, bound = self._prepare(fragment)
        cursor = self._cursor(shared=False)
        try:
            self._run_on(cursor, sql, bound)
            if cursor.description is None:
                self.manager.statement_completed()
        except MssqlKitError:
            with contextlib.suppress(Exception):
                cursor.close()
            raise
        return RowCursor(cursor)

    def _call_procedure(self, procedure: str, fragment: QueryFragment, declared: ParameterSet) -> ParameterSet:
        sql, bound = self._prepare(fragment)
        outputs = declared.outputs()
        cursor = self._cursor(shared=False)
        try:
            self._run_on(cursor, sql, bound)
            with wrap_exceptions(ExecError, "Failed to read stored procedure outputs"):
                row = _last_result_row(cursor)
            self.manager.statement_completed()
        finally:
            with contextlib.suppress(Exception):
                cursor.close()

        if not outputs:
            return outputs
        if row is None:
            msg = f"Stored procedure {procedure} returned no output values"
            raise ExecError(msg)
        return ParameterSet(
            Parameter(p.name, value, p.data_type, p.direction) for p, value in zip(outputs, row)
        )


def _discard_pending_results(cursor: Any) -> None:
    """Skip unread rows and result sets left on a cursor so the connection is free again."""
    nextset = getattr(cursor, "nextset", None)
    if nextset is None:
        return
    while nextset():
        pass


def _last_result_row(cursor: Any) -> Any:
    """First row of the final result set, consuming every set before it."""
    row = None
    while True:
        if cursor.description is not None:
            row = cursor.fetchone()
            cursor.fetchall()
        nextset = getattr(cursor, "nextset", None)
        if nextset is None or not nextset():
            return row
