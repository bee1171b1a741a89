"""High level access to one SQL Server database."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from mssqlkit.core.builder import (
    FieldValues,
    Paging,
    QueryFragment,
    build_create_table,
    build_delete,
    build_drop_table,
    build_insert,
    build_insert_parameterized,
    build_select,
    build_update,
    build_update_parameterized,
    build_where_clause,
)
from mssqlkit.core.parameters import ParameterSet
from mssqlkit.core.result import Result
from mssqlkit.data_dictionary import MssqlDataDictionary
from mssqlkit.driver.connection import ConnectionManager
from mssqlkit.driver.executor import StatementExecutor
from mssqlkit.exceptions import ExecError, MssqlKitError, wrap_exceptions
from mssqlkit.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from mssqlkit.config import MssqlConfig
    from mssqlkit.data_dictionary import ColumnInfo
    from mssqlkit.driver.connection import ConnectionState, LastError
    from mssqlkit.driver.cursor import RowCursor
    from mssqlkit.driver.executor import ParametersLike, StatementLike

__all__ = ("Database",)

logger = get_logger("database")

T = TypeVar("T")


class Database:
    """One SQL Server database: connection, transactions, CRUD helpers and introspection.

    Every operation returns a :class:`~mssqlkit.core.result.Result`. The most recent
    failure is also available from :attr:`last_error`.

    Example:
        >>> with Database(MssqlConfig(connection_config={"server": "db", "trusted_connection": True})) as db:
        ...     db.insert("Customers", {"Name": "O'Brien", "Email": "a@b.com"}).unwrap()
    """

    __slots__ = ("_procedure_outputs", "data_dictionary", "executor", "manager")

    def __init__(self, config: "MssqlConfig") -> None:
        self.manager = ConnectionManager(config)
        self.executor = StatementExecutor(self.manager)
        self.data_dictionary = MssqlDataDictionary()
        self._procedure_outputs = ParameterSet()

    @property
    def config(self) -> "MssqlConfig":
        return self.manager.config

    @property
    def state(self) -> "ConnectionState":
        return self.manager.state

    @property
    def connected(self) -> bool:
        return self.manager.connected

    @property
    def in_transaction(self) -> bool:
        return self.manager.in_transaction

    @property
    def last_error(self) -> "LastError":
        return self.manager.last_error

    def open(self) -> "Result[None]":
        return self.manager.open()

    def close(self) -> "Result[None]":
        return self.manager.close()

    def test_connection(self) -> "Result[None]":
        return self.manager.test_connection()

    def begin_transaction(self) -> "Result[None]":
        return self.manager.begin_transaction()

    def commit(self) -> "Result[None]":
        return self.manager.commit()

    def rollback(self) -> "Result[None]":
        return self.manager.rollback()

    def _build(self, build: "Callable[..., T]", *args: Any, **kwargs: Any) -> "Result[T]":
        self.manager.clear_last_error()
        try:
            return Result.success(build(*args, **kwargs))
        except MssqlKitError as exc:
            return self.manager.record_error(exc)

    def _execute_built(self, build: "Callable[..., QueryFragment]", *args: Any, **kwargs: Any) -> "Result[int]":
        fragment = self._build(build, *args, **kwargs)
        if not fragment:
            return fragment
        return self.executor.execute(fragment.unwrap())

    def _open_built(
        self, build: "Callable[..., QueryFragment]", *args: Any, **kwargs: Any
    ) -> "Result[RowCursor]":
        fragment = self._build(build, *args, **kwargs)
        if not fragment:
            return fragment
        return self.executor.open_cursor(fragment.unwrap())

    def _inserted(self, executed: "Result[int]") -> "Result[int]":
        if not executed:
            return executed
        return Result.success(self.executor.get_last_insert_id())

    def insert(self, table: str, fields: FieldValues, values: "Optional[Sequence[Any]]" = None) -> "Result[int]":
        """Insert one row with literal values.

        Returns:
            The identity generated for the row, ``-1`` when the table has none.
        """
        return self._inserted(self._execute_built(build_insert, table, fields, values))

    def insert_with_params(
        self, table: str, fields: Any, parameters: "Optional[ParametersLike]" = None
    ) -> "Result[int]":
        """Insert one row with bound parameters, matched to ``fields`` by position.

        Returns:
            The identity generated for the row, ``-1`` when the table has none.
        """
        return self._inserted(self._execute_built(build_insert_parameterized, table, fields, parameters))

    def update(
        self,
        table: str,
        fields: FieldValues,
        values: "Optional[Sequence[Any]]" = None,
        where: str = "",
        where_parameters: "Optional[ParameterSet]" = None,
    ) -> "Result[int]":
        """Update rows with literal SET values and return the affected row count."""
        return self._execute_built(build_update, table, fields, values, where, where_parameters)

    def update_with_params(
        self,
        table: str,
        fields: Any,
        parameters: "Optional[ParametersLike]" = None,
        where: str = "",
        where_parameters: "Optional[ParameterSet]" = None,
    ) -> "Result[int]":
        """Update rows with bound SET values and return the affected row count."""
        return self._execute_built(build_update_parameterized, table, fields, parameters, where, where_parameters)

    def delete(self, table: str, where: str = "", where_parameters: "Optional[ParameterSet]" = None) -> "Result[int]":
        return self._execute_built(build_delete, table, where, where_parameters)

    def select(
        self,
        table: str,
        fields: "Sequence[str]" = (),
        where: str = "",
        order_by: str = "",
        parameters: "Optional[ParameterSet]" = None,
    ) -> "Result[RowCursor]":
        return self._open_built(build_select, table, fields, where, order_by, None, parameters)

    def select_with_paging(
        self,
        table: str,
        fields: "Sequence[str]",
        page_number: int,
        page_size: int,
        where: str = "",
        order_by: str = "",
        parameters: "Optional[ParameterSet]" = None,
    ) -> "Result[RowCursor]":
        """Select one page of rows; pages are 1-based."""
        paging = self._build(Paging, page_number, page_size)
        if not paging:
            return paging
        return self._open_built(build_select, table, fields, where, order_by, paging.unwrap(), parameters)

    def simple_select(
        self,
        table: str,
        fields: "Sequence[str]" = (),
        conditions: "Sequence[str]" = (),
        operator: str = "AND",
    ) -> "Result[RowCursor]":
        """Select rows matching all (``AND``) or any (``OR``) of ``conditions``."""
        return self._open_built(build_select, table, fields, build_where_clause(conditions, operator))

    def select_single_row(
        self,
        table: str,
        fields: "Sequence[str]" = (),
        where: str = "",
        parameters: "Optional[ParameterSet]" = None,
    ) -> "Result[dict[str, Any]]":
        """Return the first matching row, an empty dict when nothing matches."""
        opened = self.select(table, fields, where, parameters=parameters)
        if not opened:
            return opened
        try:
            with opened.unwrap() as cursor, wrap_exceptions(ExecError, "Failed to fetch row"):
                row = cursor.fetchone()
        except MssqlKitError as exc:
            return self.manager.record_error(exc)
        return Result.success(row or {})

    def execute_query(self, sql: "StatementLike") -> "Result[int]":
        """Run a statement without parameters and return the affected row count."""
        return self.executor.execute(sql)

    def execute_with_params(self, sql: "StatementLike", parameters: "ParametersLike") -> "Result[int]":
        return self.executor.execute(sql, parameters)

    def execute_scalar(self, sql: "StatementLike", parameters: "Optional[ParametersLike]" = None) -> "Result[Any]":
        return self.executor.execute_scalar(sql, parameters)

    def open_cursor(self, sql: "StatementLike", parameters: "Optional[ParametersLike]" = None) -> "Result[RowCursor]":
        return self.executor.open_cursor(sql, parameters)

    def execute_stored_proc(
        self, procedure: str, parameters: "Optional[ParametersLike]" = None
    ) -> "Result[ParameterSet]":
        """Call a stored procedure.

        The output parameters are returned and also kept for
        :meth:`get_stored_proc_result` until the next call.
        """
        outputs = self.executor.execute_stored_procedure(procedure, parameters)
        self._procedure_outputs = outputs.unwrap_or(ParameterSet())
        return outputs

    def get_stored_proc_result(self, name: str, default: Any = None) -> Any:
        """Value of output parameter ``name`` from the last stored procedure call."""
        return self._procedure_outputs.get(name, default)

    def create_table(self, table: str, column_defs: "Sequence[str]") -> "Result[int]":
        return self._execute_built(build_create_table, table, column_defs)

    def drop_table(self, table: str) -> "Result[int]":
        return self._execute_built(build_drop_table, table)

    def table_exists(self, table: str, schema: Optional[str] = None) -> "Result[bool]":
        return self.data_dictionary.table_exists(self.executor, table, schema)

    def get_table_columns(self, table: str, schema: Optional[str] = None) -> "Result[list[ColumnInfo]]":
        return self.data_dictionary.get_table_columns(self.executor, table, schema)

    def get_last_insert_id(self) -> int:
        return self.executor.get_last_insert_id()

    def __enter__(self) -> "Database":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: Optional[BaseException],
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        if self.manager.in_transaction:
            logger.warning("Closing database with an open transaction, uncommitted work is discarded")
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"
