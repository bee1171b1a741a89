"""Tests for the mssqlkit command line interface."""

from collections.abc import Iterator
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from mssqlkit._serialization import decode_json
from mssqlkit.cli import get_mssqlkit_group

CONNECTION_STRING = "DRIVER={Test};SERVER=test;"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def pyodbc_connect(mock_connection: Mock) -> Iterator[Mock]:
    with patch("mssqlkit.config._pyodbc_connect", return_value=mock_connection) as connect:
        yield connect


def test_missing_connection_settings(runner: CliRunner) -> None:
    result = runner.invoke(get_mssqlkit_group(), ["test-connection"], env={"MSSQLKIT_SERVER": None})
    assert result.exit_code == 1
    assert "Invalid connection settings" in result.output


def test_test_connection_builds_connection_string(
    runner: CliRunner, pyodbc_connect: Mock, mock_connection: Mock
) -> None:
    result = runner.invoke(get_mssqlkit_group(), ["--server", "db1", "--trusted", "--timeout", "5", "test-connection"])
    assert result.exit_code == 0, result.output
    assert "Connection successful" in result.output
    pyodbc_connect.assert_called_once_with(
        "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db1;Trusted_Connection=yes;MARS_Connection=yes;"
    )
    assert mock_connection.timeout == 5
    mock_connection.close.assert_called_once()


def test_server_from_environment(runner: CliRunner, pyodbc_connect: Mock) -> None:
    env = {"MSSQLKIT_SERVER": "envhost", "MSSQLKIT_USERNAME": "app", "MSSQLKIT_PASSWORD": "secret"}
    result = runner.invoke(get_mssqlkit_group(), ["test-connection"], env=env)
    assert result.exit_code == 0, result.output
    connection_string = pyodbc_connect.call_args.args[0]
    assert "SERVER=envhost" in connection_string
    assert "UID=app;PWD=secret" in connection_string


def test_test_connection_failure(runner: CliRunner, pyodbc_connect: Mock) -> None:
    pyodbc_connect.side_effect = RuntimeError("Login failed for user 'app'")
    result = runner.invoke(get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "test-connection"])
    assert result.exit_code == 1
    assert "Login failed" in result.output


@pytest.mark.parametrize(("count", "expected"), [(1, "Table Customers exists"), (0, "does not exist")])
def test_exists(runner: CliRunner, pyodbc_connect: Mock, mock_cursor: Mock, count: int, expected: str) -> None:
    mock_cursor.description = [("",)]
    mock_cursor.fetchone.return_value = (count,)
    result = runner.invoke(get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "exists", "Customers"])
    assert result.exit_code == 0, result.output
    assert expected in result.output


def test_columns_as_json(runner: CliRunner, pyodbc_connect: Mock, mock_cursor: Mock) -> None:
    mock_cursor.description = [("COLUMN_NAME",), ("DATA_TYPE",)]
    mock_cursor.fetchone.side_effect = [("Id", "int"), ("Name", "nvarchar"), None]
    result = runner.invoke(
        get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "columns", "Customers", "--json"]
    )
    assert result.exit_code == 0, result.output
    assert decode_json(result.output) == [
        {"name": "Id", "data_type": "int"},
        {"name": "Name", "data_type": "nvarchar"},
    ]


def test_columns_table(runner: CliRunner, pyodbc_connect: Mock, mock_cursor: Mock) -> None:
    mock_cursor.description = [("COLUMN_NAME",), ("DATA_TYPE",)]
    mock_cursor.fetchone.side_effect = [("Id", "int"), None]
    result = runner.invoke(get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "columns", "Customers"])
    assert result.exit_code == 0, result.output
    assert "Id" in result.output
    assert "int" in result.output


def test_columns_for_unknown_table(runner: CliRunner, pyodbc_connect: Mock, mock_cursor: Mock) -> None:
    mock_cursor.description = [("COLUMN_NAME",), ("DATA_TYPE",)]
    mock_cursor.fetchone.return_value = None
    result = runner.invoke(get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "columns", "Nope"])
    assert result.exit_code == 0
    assert "No columns found for Nope" in result.output


@pytest.mark.parametrize(("row", "expected"), [((42,), "42"), ((None,), "NULL")])
def test_scalar(
    runner: CliRunner, pyodbc_connect: Mock, mock_cursor: Mock, row: "tuple[object, ...]", expected: str
) -> None:
    mock_cursor.description = [("",)]
    mock_cursor.fetchone.return_value = row
    result = runner.invoke(get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "scalar", "SELECT 42"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == expected


def test_scalar_failure(runner: CliRunner, pyodbc_connect: Mock, mock_cursor: Mock) -> None:
    mock_cursor.execute.side_effect = RuntimeError("Incorrect syntax near 'FORM'")
    result = runner.invoke(
        get_mssqlkit_group(), ["--connection-string", CONNECTION_STRING, "scalar", "SELECT * FORM T"]
    )
    assert result.exit_code == 1
    assert "Incorrect syntax" in result.output
