"""Connection management and statement execution."""

from mssqlkit.driver.connection import NO_ERROR, ConnectionManager, ConnectionState, LastError
from mssqlkit.driver.cursor import RowCursor
from mssqlkit.driver.executor import StatementExecutor

__all__ = ("NO_ERROR", "ConnectionManager", "ConnectionState", "LastError", "RowCursor", "StatementExecutor")
