"""Connection ownership and the transaction state machine."""

import contextlib
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from mssqlkit.core.result import Result
from mssqlkit.exceptions import ConnectionError, ExecError, InvalidStateError, MssqlKitError, wrap_exceptions
from mssqlkit.utils.logging import connection_fields, get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from mssqlkit.config import MssqlConfig

__all__ = ("NO_ERROR", "ConnectionManager", "ConnectionState", "LastError")

logger = get_logger("driver.connection")


class ConnectionState(str, Enum):
    """Lifecycle state of the managed connection."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    IN_TRANSACTION = "in_transaction"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LastError:
    """Message and code of the most recent failed operation."""

    message: str = ""
    code: int = 0
    error: Optional[MssqlKitError] = None

    def __bool__(self) -> bool:
        return self.error is not None


NO_ERROR = LastError()


class ConnectionManager:
    """Owns one driver connection and tracks its transaction state.

    Not thread-safe: one caller (or an external lock) must serialize every call. A
    single shared cursor serves fire-and-forget statements; callers that need rows to
    outlive the next statement get their own cursor from :meth:`new_cursor`.

    Outside a transaction each statement is committed once it completes. Inside a
    transaction nothing is committed until :meth:`commit`. Nothing is rolled back
    automatically when a statement fails.
    """

    __slots__ = ("_connection", "_last_error", "_shared_cursor", "_state", "config")

    def __init__(self, config: "MssqlConfig") -> None:
        self.config = config
        self._connection: Any = None
        self._shared_cursor: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._last_error = NO_ERROR

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is not ConnectionState.DISCONNECTED

    @property
    def in_transaction(self) -> bool:
        return self._state is ConnectionState.IN_TRANSACTION

    @property
    def connection(self) -> Any:
        """The raw driver connection, ``None`` while disconnected."""
        return self._connection

    @property
    def last_error(self) -> LastError:
        return self._last_error

    def clear_last_error(self) -> None:
        self._last_error = NO_ERROR

    def record_error(self, error: MssqlKitError) -> "Result[Any]":
        """Store ``error`` as the last error and return it as a failed result."""
        self._last_error = LastError(message=str(error), code=error.code, error=error)
        logger.warning(
            "%s: %s",
            type(error).__name__,
            error,
            extra=connection_fields(self._state, error),
        )
        return Result.failure(error)

    def open(self) -> "Result[None]":
        """Open the connection, closing and reopening it if already open."""
        self.clear_last_error()
        try:
            self._open()
        except MssqlKitError as exc:
            return self.record_error(exc)
        return Result.success(None)

    def close(self) -> "Result[None]":
        """Close the connection. Succeeds trivially when already closed."""
        self.clear_last_error()
        try:
            self._close()
        except MssqlKitError as exc:
            return self.record_error(exc)
        return Result.success(None)

    def test_connection(self) -> "Result[None]":
        """Open and immediately close the connection."""
        opened = self.open()
        if not opened:
            return opened
        return self.close()

    def begin_transaction(self) -> "Result[None]":
        """Start a transaction, opening the connection first if needed.

        Nested transactions are not supported.
        """
        self.clear_last_error()
        try:
            if self._state is ConnectionState.IN_TRANSACTION:
                msg = "A transaction is already in progress"
                raise InvalidStateError(msg)
            self.ensure_connected()
        except MssqlKitError as exc:
            return self.record_error(exc)
        self._state = ConnectionState.IN_TRANSACTION
        logger.debug("Transaction started", extra=connection_fields(self._state))
        return Result.success(None)

    def commit(self) -> "Result[None]":
        """Commit the current transaction.

        Fails with :class:`InvalidStateError`, leaving the state untouched, when no
        transaction is in progress.
        """
        return self._end_transaction("commit")

    def rollback(self) -> "Result[None]":
        """Roll back the current transaction.

        Fails with :class:`InvalidStateError`, leaving the state untouched, when no
        transaction is in progress.
        """
        return self._end_transaction("rollback")

    def _end_transaction(self, action: str) -> "Result[None]":
        self.clear_last_error()
        try:
            if self._state is not ConnectionState.IN_TRANSACTION:
                msg = f"Cannot {action}: no transaction in progress (state: {self._state})"
                raise InvalidStateError(msg)
            with wrap_exceptions(ExecError, f"Failed to {action} transaction"):
                getattr(self._connection, action)()
        except MssqlKitError as exc:
            return self.record_error(exc)
        self._state = ConnectionState.CONNECTED
        logger.debug(
            "Transaction %s", "committed" if action == "commit" else "rolled back", extra=connection_fields(self._state)
        )
        return Result.success(None)

    def ensure_connected(self) -> Any:
        """Return the live connection, opening it when disconnected.

        Raises:
            ConnectionError: If the connection cannot be opened.
        """
        if self._connection is None:
            self._open()
        return self._connection

    def shared_cursor(self) -> Any:
        """Return the cursor reused by fire-and-forget statements."""
        connection = self.ensure_connected()
        if self._shared_cursor is None:
            with wrap_exceptions(ConnectionError, "Failed to allocate cursor"):
                self._shared_cursor = connection.cursor()
        return self._shared_cursor

    def new_cursor(self) -> Any:
        """Allocate a cursor owned by the caller."""
        connection = self.ensure_connected()
        with wrap_exceptions(ConnectionError, "Failed to allocate cursor"):
            return connection.cursor()

    def statement_completed(self) -> None:
        """Commit a finished statement unless a transaction is in progress."""
        if self._state is ConnectionState.CONNECTED:
            with wrap_exceptions(ExecError, "Failed to commit statement"):
                self._connection.commit()

    def _open(self) -> None:
        if self._connection is not None:
            self._close()
        with wrap_exceptions(ConnectionError, "Failed to open connection"):
            self._connection = self.config.create_connection()
        self._state = ConnectionState.CONNECTED
        logger.info("Connection opened", extra=connection_fields(self._state))

    def _close(self) -> None:
        if self._connection is None:
            self._state = ConnectionState.DISCONNECTED
            return
        connection, cursor = self._connection, self._shared_cursor
        self._connection = self._shared_cursor = None
        self._state = ConnectionState.DISCONNECTED
        if cursor is not None:
            with contextlib.suppress(Exception):
                cursor.close()
        with wrap_exceptions(ConnectionError, "Failed to close connection"):
            connection.close()
        logger.info("Connection closed", extra=connection_fields(self._state))

    def __enter__(self) -> "ConnectionManager":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: Optional[BaseException],
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if self._connection is not None:
            with contextlib.suppress(Exception):
                self._connection.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self._state!r}, config={self.config!r})"
