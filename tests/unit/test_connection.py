"""Unit tests for the connection manager state machine."""

import logging
from unittest.mock import Mock

import pytest

from mssqlkit.config import MssqlConfig
from mssqlkit.driver.connection import NO_ERROR, ConnectionManager, ConnectionState
from mssqlkit.exceptions import ConnectionError, ExecError, InvalidStateError


def test_initial_state(manager: ConnectionManager) -> None:
    assert manager.state is ConnectionState.DISCONNECTED
    assert not manager.connected
    assert manager.connection is None
    assert manager.last_error is NO_ERROR
    assert not manager.last_error


def test_open_connects(manager: ConnectionManager, connection_factory: Mock, mock_connection: Mock) -> None:
    result = manager.open()
    assert result.ok
    assert manager.state is ConnectionState.CONNECTED
    assert manager.connection is mock_connection
    connection_factory.assert_called_once_with("DRIVER={Test};SERVER=test;")


def test_open_twice_reopens(manager: ConnectionManager, connection_factory: Mock, mock_connection: Mock) -> None:
    manager.open()
    assert manager.open()
    assert connection_factory.call_count == 2
    mock_connection.close.assert_called_once()
    assert manager.state is ConnectionState.CONNECTED


def test_open_failure_records_connection_error() -> None:
    factory = Mock(side_effect=RuntimeError("Login failed for user 'app'"))
    manager = ConnectionManager(MssqlConfig(connection_string="DSN=x;", connection_factory=factory))
    result = manager.open()
    assert not result
    assert isinstance(result.error, ConnectionError)
    assert manager.state is ConnectionState.DISCONNECTED
    assert manager.last_error
    assert "Login failed" in manager.last_error.message
    assert manager.last_error.code == -1
    assert manager.last_error.error is result.error


def test_success_clears_last_error(connection_factory: Mock, mock_connection: Mock) -> None:
    connection_factory.side_effect = [RuntimeError("network"), mock_connection]
    manager = ConnectionManager(MssqlConfig(connection_string="DSN=x;", connection_factory=connection_factory))
    assert not manager.open()
    assert manager.last_error
    assert manager.open()
    assert manager.last_error is NO_ERROR


def test_close_is_idempotent(manager: ConnectionManager, mock_connection: Mock) -> None:
    assert manager.close()
    manager.open()
    assert manager.close()
    assert manager.close()
    mock_connection.close.assert_called_once()
    assert manager.state is ConnectionState.DISCONNECTED


def test_close_releases_shared_cursor(manager: ConnectionManager, mock_cursor: Mock) -> None:
    cursor = manager.shared_cursor()
    assert cursor is mock_cursor
    manager.close()
    mock_cursor.close.assert_called_once()


def test_close_failure_still_disconnects(manager: ConnectionManager, mock_connection: Mock) -> None:
    manager.open()
    mock_connection.close.side_effect = RuntimeError("socket closed")
    result = manager.close()
    assert not result
    assert isinstance(result.error, ConnectionError)
    assert manager.state is ConnectionState.DISCONNECTED


def test_test_connection_opens_and_closes(manager: ConnectionManager, mock_connection: Mock) -> None:
    assert manager.test_connection()
    mock_connection.close.assert_called_once()
    assert manager.state is ConnectionState.DISCONNECTED


def test_begin_auto_connects(manager: ConnectionManager, connection_factory: Mock) -> None:
    assert manager.begin_transaction()
    assert manager.state is ConnectionState.IN_TRANSACTION
    assert manager.in_transaction
    connection_factory.assert_called_once()


def test_begin_propagates_open_failure(connection_factory: Mock) -> None:
    connection_factory.side_effect = RuntimeError("server unreachable")
    manager = ConnectionManager(MssqlConfig(connection_string="DSN=x;", connection_factory=connection_factory))
    result = manager.begin_transaction()
    assert isinstance(result.error, ConnectionError)
    assert manager.state is ConnectionState.DISCONNECTED


def test_nested_begin_is_rejected(manager: ConnectionManager) -> None:
    manager.begin_transaction()
    result = manager.begin_transaction()
    assert isinstance(result.error, InvalidStateError)
    assert manager.state is ConnectionState.IN_TRANSACTION


@pytest.mark.parametrize("action", ["commit", "rollback"])
def test_end_transaction_outside_transaction_fails(manager: ConnectionManager, action: str) -> None:
    result = getattr(manager, action)()
    assert isinstance(result.error, InvalidStateError)
    assert manager.state is ConnectionState.DISCONNECTED

    manager.open()
    result = getattr(manager, action)()
    assert isinstance(result.error, InvalidStateError)
    assert manager.state is ConnectionState.CONNECTED
    assert "no transaction in progress" in manager.last_error.message


@pytest.mark.parametrize("action", ["commit", "rollback"])
def test_end_transaction(manager: ConnectionManager, mock_connection: Mock, action: str) -> None:
    manager.begin_transaction()
    assert getattr(manager, action)()
    getattr(mock_connection, action).assert_called_once()
    assert manager.state is ConnectionState.CONNECTED


def test_commit_failure_keeps_transaction_open(manager: ConnectionManager, mock_connection: Mock) -> None:
    manager.begin_transaction()
    mock_connection.commit.side_effect = RuntimeError("log full")
    result = manager.commit()
    assert isinstance(result.error, ExecError)
    assert manager.state is ConnectionState.IN_TRANSACTION
    assert manager.rollback()
    assert manager.state is ConnectionState.CONNECTED


def test_statement_completed_commits_only_outside_transaction(
    manager: ConnectionManager, mock_connection: Mock
) -> None:
    manager.open()
    manager.statement_completed()
    assert mock_connection.commit.call_count == 1

    manager.begin_transaction()
    manager.statement_completed()
    assert mock_connection.commit.call_count == 1


def test_shared_cursor_is_reused_and_new_cursor_is_fresh(manager: ConnectionManager, mock_connection: Mock) -> None:
    first, second, third = Mock(), Mock(), Mock()
    mock_connection.cursor.side_effect = [first, second, third]
    assert manager.shared_cursor() is first
    assert manager.shared_cursor() is first
    assert manager.new_cursor() is second
    assert manager.new_cursor() is third


def test_context_manager_closes(manager: ConnectionManager, mock_connection: Mock) -> None:
    with manager as entered:
        entered.open()
        assert entered.connected
    assert manager.state is ConnectionState.DISCONNECTED
    mock_connection.close.assert_called_once()


def test_recorded_errors_log_state_and_code(
    manager: ConnectionManager, mock_connection: Mock, caplog: pytest.LogCaptureFixture
) -> None:
    manager.begin_transaction()
    with caplog.at_level(logging.WARNING, logger="mssqlkit"):
        manager.record_error(ExecError("Deadlock victim", code=1205))
    record = next(r for r in caplog.records if r.name == "mssqlkit.driver.connection")
    assert record.levelno == logging.WARNING
    assert record.connection_state == "in_transaction"  # type: ignore[attr-defined]
    assert record.error_code == 1205  # type: ignore[attr-defined]
    assert record.error_type == "ExecError"  # type: ignore[attr-defined]
    assert manager.last_error.code == 1205
