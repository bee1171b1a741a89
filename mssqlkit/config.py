"""SQL Server connection configuration."""

from collections.abc import Callable, Mapping
from typing import Any, Final, Optional, TypedDict

from typing_extensions import NotRequired

from mssqlkit.core.placeholders import ParameterStyle
from mssqlkit.exceptions import ImproperConfigurationError, MissingDependencyError
from mssqlkit.utils.logging import get_logger

__all__ = (
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_IDENTITY_QUERY",
    "DEFAULT_ODBC_DRIVER",
    "MARS_KEYWORD",
    "MssqlConfig",
    "MssqlConnectionParams",
    "build_connection_string",
)

logger = get_logger("config")

DEFAULT_ODBC_DRIVER: Final = "ODBC Driver 18 for SQL Server"
DEFAULT_COMMAND_TIMEOUT: Final = 30
DEFAULT_IDENTITY_QUERY: Final = "SELECT @@IDENTITY"
MARS_KEYWORD: Final = "MARS_Connection"

ConnectionFactory = Callable[[str], Any]


class MssqlConnectionParams(TypedDict, total=False):
    """SQL Server connection parameters."""

    server: NotRequired[str]
    database: NotRequired[str]
    username: NotRequired[str]
    password: NotRequired[str]
    trusted_connection: NotRequired[bool]
    driver: NotRequired[str]
    port: NotRequired[int]
    encrypt: NotRequired[bool]
    trust_server_certificate: NotRequired[bool]
    application_name: NotRequired[str]
    extra: NotRequired["dict[str, Any]"]


def _odbc_value(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    text = str(value)
    if any(char in text for char in ";{}") or text != text.strip():
        return "{" + text.replace("}", "}}") + "}"
    return text


def build_connection_string(params: "MssqlConnectionParams") -> str:
    """Build an ODBC connection string.

    ``trusted_connection`` selects integrated authentication; otherwise ``username``
    and ``password`` are used. The two modes never appear together.
    Multiple active result sets are enabled unless ``extra`` sets ``MARS_Connection``.

    Raises:
        ImproperConfigurationError: If ``server`` is missing, or SQL authentication is
            selected without a ``username``.
    """
    server = params.get("server")
    if not server:
        msg = "A server is required to build a SQL Server connection string"
        raise ImproperConfigurationError(msg)
    if "port" in params:
        server = f"{server},{params['port']}"

    parts = [f"DRIVER={{{params.get('driver') or DEFAULT_ODBC_DRIVER}}}", f"SERVER={_odbc_value(server)}"]
    if params.get("database"):
        parts.append(f"DATABASE={_odbc_value(params['database'])}")

    if params.get("trusted_connection"):
        parts.append("Trusted_Connection=yes")
    else:
        if not params.get("username"):
            msg = "A username is required unless trusted_connection is enabled"
            raise ImproperConfigurationError(msg)
        parts.extend((f"UID={_odbc_value(params['username'])}", f"PWD={_odbc_value(params.get('password', ''))}"))

    if "encrypt" in params:
        parts.append(f"Encrypt={_odbc_value(params['encrypt'])}")
    if "trust_server_certificate" in params:
        parts.append(f"TrustServerCertificate={_odbc_value(params['trust_server_certificate'])}")
    if params.get("application_name"):
        parts.append(f"APP={_odbc_value(params['application_name'])}")
    extra = params.get("extra") or {}
    # Result cursors stay open while other statements run on the same connection.
    if not any(key.lower() == MARS_KEYWORD.lower() for key in extra):
        parts.append(f"{MARS_KEYWORD}=yes")
    parts.extend(f"{key}={_odbc_value(value)}" for key, value in extra.items())
    return ";".join(parts) + ";"


def _pyodbc_connect(connection_string: str) -> Any:
    try:
        import pyodbc
    except ImportError as e:
        raise MissingDependencyError(package="pyodbc") from e
    return pyodbc.connect(connection_string, autocommit=False)


class MssqlConfig:
    """Connection settings and driver behaviour for one SQL Server database.

    Either pass ``connection_config`` (rendered with :func:`build_connection_string`)
    or a ready ``connection_string``. ``connection_factory`` replaces ``pyodbc.connect``
    and receives the connection string; any DB-API 2.0 driver works as long as
    ``parameter_style`` matches it.
    """

    __slots__ = (
        "_command_timeout",
        "_connection_string",
        "connection_config",
        "connection_factory",
        "identity_query",
        "parameter_style",
        "type_coercion_map",
    )

    def __init__(
        self,
        *,
        connection_config: "Optional[MssqlConnectionParams]" = None,
        connection_string: Optional[str] = None,
        command_timeout: int = DEFAULT_COMMAND_TIMEOUT,
        parameter_style: ParameterStyle = ParameterStyle.QMARK,
        identity_query: str = DEFAULT_IDENTITY_QUERY,
        type_coercion_map: "Optional[Mapping[type, Callable[[Any], Any]]]" = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ) -> None:
        """Initialize SQL Server configuration.

        Args:
            connection_config: Connection parameters.
            connection_string: Complete connection string, takes precedence over ``connection_config``.
            command_timeout: Seconds before the driver cancels a statement, ``0`` disables it.
            parameter_style: Placeholder style of the driver.
            identity_query: Query returning the last identity value of the session.
            type_coercion_map: Per-type converters applied to bound values.
            connection_factory: Callable that opens a DB-API connection from a connection string.
        """
        if connection_config is None and connection_string is None:
            msg = "Either connection_config or connection_string is required"
            raise ImproperConfigurationError(msg)
        self.connection_config: MssqlConnectionParams = connection_config or {}
        self._connection_string = connection_string
        self.command_timeout = command_timeout
        self.parameter_style = parameter_style
        self.identity_query = identity_query
        self.type_coercion_map: dict[type, Callable[[Any], Any]] = dict(type_coercion_map or {})
        self.connection_factory = connection_factory

    @property
    def connection_string(self) -> str:
        if self._connection_string is not None:
            return self._connection_string
        return build_connection_string(self.connection_config)

    @property
    def command_timeout(self) -> int:
        return self._command_timeout

    @command_timeout.setter
    def command_timeout(self, value: int) -> None:
        if value < 0:
            msg = f"command_timeout must not be negative, got {value}"
            raise ImproperConfigurationError(msg)
        self._command_timeout = value

    def create_connection(self) -> Any:
        """Open a new driver connection with the command timeout applied.

        Raises:
            MissingDependencyError: If no factory is configured and pyodbc is not installed.
        """
        factory = self.connection_factory or _pyodbc_connect
        connection = factory(self.connection_string)
        # pyodbc exposes the per-statement timeout as ``Connection.timeout``.
        if hasattr(connection, "timeout"):
            connection.timeout = self.command_timeout
        logger.debug("Created connection", extra={"extra_fields": {"command_timeout": self.command_timeout}})
        return connection

    def __repr__(self) -> str:
        parts = ", ".join(
            [
                f"server={self.connection_config.get('server')!r}",
                f"database={self.connection_config.get('database')!r}",
                f"command_timeout={self.command_timeout!r}",
                f"parameter_style={self.parameter_style!r}",
            ]
        )
        return f"{type(self).__name__}({parts})"

