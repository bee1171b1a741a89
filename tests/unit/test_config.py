"""Unit tests for SQL Server configuration."""

import sys
from unittest.mock import Mock, patch

import pytest

from mssqlkit.config import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_ODBC_DRIVER,
    MssqlConfig,
    MssqlConnectionParams,
    build_connection_string,
)
from mssqlkit.core.placeholders import ParameterStyle
from mssqlkit.exceptions import ImproperConfigurationError, MissingDependencyError


def test_connection_string_with_sql_authentication() -> None:
    params: MssqlConnectionParams = {"server": "db01", "database": "Sales", "username": "app", "password": "s3cret"}
    assert build_connection_string(params) == (
        f"DRIVER={{{DEFAULT_ODBC_DRIVER}}};SERVER=db01;DATABASE=Sales;UID=app;PWD=s3cret;MARS_Connection=yes;"
    )


def test_connection_string_with_trusted_connection_ignores_credentials() -> None:
    params: MssqlConnectionParams = {
        "server": "db01",
        "database": "Sales",
        "trusted_connection": True,
        "username": "ignored",
        "password": "ignored",
    }
    connection_string = build_connection_string(params)
    assert "Trusted_Connection=yes" in connection_string
    assert "UID=" not in connection_string
    assert "PWD=" not in connection_string


def test_connection_string_optional_settings() -> None:
    params: MssqlConnectionParams = {
        "server": "db01",
        "port": 1433,
        "trusted_connection": True,
        "driver": "ODBC Driver 17 for SQL Server",
        "encrypt": True,
        "trust_server_certificate": False,
        "application_name": "reports",
        "extra": {"MultiSubnetFailover": "yes"},
    }
    assert build_connection_string(params) == (
        "DRIVER={ODBC Driver 17 for SQL Server};SERVER=db01,1433;Trusted_Connection=yes;"
        "Encrypt=yes;TrustServerCertificate=no;APP=reports;MARS_Connection=yes;MultiSubnetFailover=yes;"
    )


def test_connection_string_enables_multiple_active_result_sets() -> None:
    params: MssqlConnectionParams = {"server": "db01", "trusted_connection": True}
    assert build_connection_string(params).endswith(";MARS_Connection=yes;")


@pytest.mark.parametrize("key", ["MARS_Connection", "mars_connection"])
def test_connection_string_mars_can_be_overridden(key: str) -> None:
    params: MssqlConnectionParams = {"server": "db01", "trusted_connection": True, "extra": {key: False}}
    connection_string = build_connection_string(params)
    assert connection_string.endswith(f";{key}=no;")
    assert connection_string.lower().count("mars_connection") == 1


def test_connection_string_quotes_special_characters() -> None:
    params: MssqlConnectionParams = {"server": "db01", "username": "app", "password": "p;w}d"}
    assert "PWD={p;w}}d};" in build_connection_string(params)


@pytest.mark.parametrize(
    "params",
    [{}, {"database": "Sales", "trusted_connection": True}, {"server": "db01", "password": "x"}],
    ids=["empty", "no_server", "no_username"],
)
def test_connection_string_rejects_incomplete_settings(params: MssqlConnectionParams) -> None:
    with pytest.raises(ImproperConfigurationError):
        build_connection_string(params)


def test_config_defaults() -> None:
    config = MssqlConfig(connection_config={"server": "db01", "trusted_connection": True})
    assert config.command_timeout == DEFAULT_COMMAND_TIMEOUT
    assert config.parameter_style is ParameterStyle.QMARK
    assert config.identity_query == "SELECT @@IDENTITY"
    assert config.type_coercion_map == {}
    assert config.connection_string.startswith("DRIVER={")


def test_config_requires_connection_settings() -> None:
    with pytest.raises(ImproperConfigurationError):
        MssqlConfig()


def test_explicit_connection_string_wins() -> None:
    config = MssqlConfig(connection_config={"server": "ignored"}, connection_string="DSN=Sales;")
    assert config.connection_string == "DSN=Sales;"


def test_command_timeout_is_settable() -> None:
    config = MssqlConfig(connection_string="DSN=Sales;")
    config.command_timeout = 90
    assert config.command_timeout == 90
    with pytest.raises(ImproperConfigurationError):
        config.command_timeout = -1
    with pytest.raises(ImproperConfigurationError):
        MssqlConfig(connection_string="DSN=Sales;", command_timeout=-5)


def test_create_connection_uses_factory_and_applies_timeout() -> None:
    connection = Mock()
    factory = Mock(return_value=connection)
    config = MssqlConfig(connection_string="DSN=Sales;", command_timeout=15, connection_factory=factory)
    assert config.create_connection() is connection
    factory.assert_called_once_with("DSN=Sales;")
    assert connection.timeout == 15


def test_create_connection_skips_timeout_for_drivers_without_it() -> None:
    class Connection:
        pass

    connection = Connection()
    config = MssqlConfig(connection_string=":memory:", connection_factory=lambda _: connection)
    assert config.create_connection() is connection
    assert not hasattr(connection, "timeout")


def test_create_connection_uses_pyodbc_by_default() -> None:
    pyodbc = Mock()
    with patch.dict(sys.modules, {"pyodbc": pyodbc}):
        MssqlConfig(connection_string="DSN=Sales;").create_connection()
    pyodbc.connect.assert_called_once_with("DSN=Sales;", autocommit=False)


def test_create_connection_without_pyodbc() -> None:
    with patch.dict(sys.modules, {"pyodbc": None}):
        with pytest.raises(MissingDependencyError, match="pyodbc"):
            MssqlConfig(connection_string="DSN=Sales;").create_connection()


def test_repr_hides_credentials() -> None:
    config = MssqlConfig(connection_config={"server": "db01", "username": "app", "password": "s3cret"})
    assert "s3cret" not in repr(config)
    assert "db01" in repr(config)
