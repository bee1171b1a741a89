"""SQL Server metadata queries against ``INFORMATION_SCHEMA``."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from mssqlkit.core.builder import QueryFragment, build_select
from mssqlkit.core.parameters import ParameterSet
from mssqlkit.core.result import Result
from mssqlkit.exceptions import ExecError, MssqlKitError, wrap_exceptions
from mssqlkit.utils.logging import get_logger

if TYPE_CHECKING:
    from mssqlkit.driver.executor import StatementExecutor

__all__ = ("ColumnInfo", "MssqlDataDictionary")

logger = get_logger("data_dictionary")


@dataclass(frozen=True)
class ColumnInfo:
    """Name and SQL Server type name of a table column."""

    name: str
    data_type: str


def _split_table_name(table: str, schema: Optional[str]) -> "tuple[Optional[str], str]":
    if schema is None and "." in table:
        schema, table = table.rsplit(".", 1)
    return (schema.strip("[]") if schema else None), table.strip("[]")


class MssqlDataDictionary:
    """Schema introspection through parameterized ``INFORMATION_SCHEMA`` queries."""

    __slots__ = ()

    @staticmethod
    def _table_filter(table: str, schema: Optional[str]) -> "tuple[str, ParameterSet]":
        schema_name, table_name = _split_table_name(table, schema)
        parameters = ParameterSet()
        parameters.add("TableName", table_name)
        where = "TABLE_NAME = :TableName"
        if schema_name:
            parameters.add("TableSchema", schema_name)
            where = f"{where} AND TABLE_SCHEMA = :TableSchema"
        return where, parameters

    def table_exists_query(self, table: str, schema: Optional[str] = None) -> QueryFragment:
        where, parameters = self._table_filter(table, schema)
        return build_select("INFORMATION_SCHEMA.TABLES", ["COUNT(*)"], where=where, parameters=parameters)

    def columns_query(self, table: str, schema: Optional[str] = None) -> QueryFragment:
        where, parameters = self._table_filter(table, schema)
        return build_select(
            "INFORMATION_SCHEMA.COLUMNS",
            ["COLUMN_NAME", "DATA_TYPE"],
            where=where,
            order_by="ORDINAL_POSITION",
            parameters=parameters,
        )

    def table_exists(self, executor: "StatementExecutor", table: str, schema: Optional[str] = None) -> "Result[bool]":
        """Check whether a table or view exists.

        Args:
            executor: Executor bound to the target database.
            table: Table name, optionally schema qualified (``dbo.Customers``).
            schema: Schema name, overrides a qualifier in ``table``.

        Returns:
            ``True`` when a matching table exists.
        """
        count = executor.execute_scalar(self.table_exists_query(table, schema))
        if not count:
            return count
        return Result.success(bool(count.value))

    def get_table_columns(
        self, executor: "StatementExecutor", table: str, schema: Optional[str] = None
    ) -> "Result[list[ColumnInfo]]":
        """List the columns of ``table`` in ordinal order.

        An unknown table yields an empty list.
        """
        opened = executor.open_cursor(self.columns_query(table, schema))
        if not opened:
            return opened
        try:
            with opened.unwrap() as cursor, wrap_exceptions(ExecError, "Failed to read column metadata"):
                columns = [ColumnInfo(str(row["COLUMN_NAME"]), str(row["DATA_TYPE"])) for row in cursor]
        except MssqlKitError as exc:
            return executor.manager.record_error(exc)
        logger.debug("Found %d columns for table %s", len(columns), table)
        return Result.success(columns)
