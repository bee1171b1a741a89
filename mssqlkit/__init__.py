"""mssqlkit: SQL Server data access with typed parameters and safe statement building."""

from mssqlkit import core, driver, exceptions, utils
from mssqlkit.__metadata__ import __version__
from mssqlkit.config import MssqlConfig, MssqlConnectionParams, build_connection_string
from mssqlkit.core import (
    DataType,
    Paging,
    Parameter,
    ParameterDirection,
    ParameterSet,
    ParameterStyle,
    QueryFragment,
    Result,
    ValueKind,
    build_create_table,
    build_delete,
    build_drop_table,
    build_in_clause,
    build_insert,
    build_insert_parameterized,
    build_select,
    build_stored_procedure_call,
    build_update,
    build_update_parameterized,
    build_where_clause,
    classify_value,
    escape_string,
    infer_data_type,
    param,
    quote_string,
    render_literal,
)
from mssqlkit.data_dictionary import ColumnInfo, MssqlDataDictionary
from mssqlkit.database import Database
from mssqlkit.driver import ConnectionManager, ConnectionState, LastError, RowCursor, StatementExecutor
from mssqlkit.exceptions import (
    ArityMismatchError,
    ConnectionError,
    DuplicateParameterError,
    ExecError,
    InvalidStateError,
    MssqlKitError,
    ParameterError,
    SQLBuilderError,
)

__all__ = (
    "ArityMismatchError",
    "ColumnInfo",
    "ConnectionError",
    "ConnectionManager",
    "ConnectionState",
    "DataType",
    "Database",
    "DuplicateParameterError",
    "ExecError",
    "InvalidStateError",
    "LastError",
    "MssqlConfig",
    "MssqlConnectionParams",
    "MssqlDataDictionary",
    "MssqlKitError",
    "Paging",
    "Parameter",
    "ParameterDirection",
    "ParameterError",
    "ParameterSet",
    "ParameterStyle",
    "QueryFragment",
    "Result",
    "RowCursor",
    "SQLBuilderError",
    "StatementExecutor",
    "ValueKind",
    "__version__",
    "build_connection_string",
    "build_create_table",
    "build_delete",
    "build_drop_table",
    "build_in_clause",
    "build_insert",
    "build_insert_parameterized",
    "build_select",
    "build_stored_procedure_call",
    "build_update",
    "build_update_parameterized",
    "build_where_clause",
    "classify_value",
    "core",
    "driver",
    "escape_string",
    "exceptions",
    "infer_data_type",
    "param",
    "quote_string",
    "render_literal",
    "utils",
)
