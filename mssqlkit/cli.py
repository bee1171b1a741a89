import uuid
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from click import Context, Group

    from mssqlkit.core.result import Result

__all__ = ("get_mssqlkit_group",)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_mssqlkit_group() -> "Group":
    """Get the mssqlkit CLI group.

    Every connection option can also be set through an ``MSSQLKIT_*`` environment
    variable, e.g. ``MSSQLKIT_SERVER``.

    Raises:
        MissingDependencyError: If the `click` package is not installed.

    Returns:
        The mssqlkit CLI group.
    """
    from mssqlkit.exceptions import MissingDependencyError

    try:
        import rich_click as click
    except ImportError:
        try:
            import click  # type: ignore[no-redef]
        except ImportError as e:
            raise MissingDependencyError(package="click", install_package="cli") from e
    from rich import get_console
    from rich.markup import escape
    from rich.table import Table

    from mssqlkit._serialization import encode_json
    from mssqlkit.config import DEFAULT_COMMAND_TIMEOUT, MssqlConfig, MssqlConnectionParams
    from mssqlkit.database import Database
    from mssqlkit.exceptions import ImproperConfigurationError
    from mssqlkit.utils.logging import configure_logging, set_correlation_id

    console = get_console()

    def fail(ctx: "Context", result: "Result[Any]") -> None:
        console.print(f"[red]{escape(str(result.error))}[/]", soft_wrap=True)
        ctx.exit(1)

    @click.group(name="mssqlkit")
    @click.option("--server", envvar="MSSQLKIT_SERVER", help="Server host, optionally 'host\\instance'", type=str)
    @click.option("--database", envvar="MSSQLKIT_DATABASE", help="Database name", type=str)
    @click.option("--username", envvar="MSSQLKIT_USERNAME", help="SQL authentication login", type=str)
    @click.option("--password", envvar="MSSQLKIT_PASSWORD", help="SQL authentication password", type=str)
    @click.option(
        "--trusted",
        envvar="MSSQLKIT_TRUSTED",
        help="Use integrated Windows authentication instead of a login",
        is_flag=True,
        default=False,
    )
    @click.option("--driver", envvar="MSSQLKIT_DRIVER", help="ODBC driver name", type=str)
    @click.option(
        "--timeout",
        envvar="MSSQLKIT_TIMEOUT",
        help="Command timeout in seconds",
        type=int,
        default=DEFAULT_COMMAND_TIMEOUT,
        show_default=True,
    )
    @click.option(
        "--connection-string",
        envvar="MSSQLKIT_CONNECTION_STRING",
        help="Complete ODBC connection string, overrides the other connection options",
        type=str,
    )
    @click.option(
        "--log-level",
        envvar="MSSQLKIT_LOG_LEVEL",
        help="Library log level",
        type=click.Choice(LOG_LEVELS, case_sensitive=False),
        default="WARNING",
        show_default=True,
    )
    @click.pass_context
    def mssqlkit_group(
        ctx: "Context",
        server: Optional[str],
        database: Optional[str],
        username: Optional[str],
        password: Optional[str],
        trusted: bool,
        driver: Optional[str],
        timeout: int,
        connection_string: Optional[str],
        log_level: str,
    ) -> None:
        """SQL Server data access commands."""
        configure_logging(level=log_level, format_style="simple")
        set_correlation_id(uuid.uuid4().hex)
        ctx.ensure_object(dict)

        params: MssqlConnectionParams = {}
        if server:
            params["server"] = server
        if database:
            params["database"] = database
        if username:
            params["username"] = username
        if password is not None:
            params["password"] = password
        if trusted:
            params["trusted_connection"] = True
        if driver:
            params["driver"] = driver
        try:
            ctx.obj["config"] = MssqlConfig(
                connection_config=params or None, connection_string=connection_string, command_timeout=timeout
            )
        except ImproperConfigurationError as e:
            console.print(f"[red]Invalid connection settings: {escape(str(e))}[/]", soft_wrap=True)
            ctx.exit(1)

    @mssqlkit_group.command(name="test-connection", help="Open and close a connection to the server.")
    @click.pass_context
    def test_connection(ctx: "Context") -> None:  # pyright: ignore[reportUnusedFunction]
        with Database(ctx.obj["config"]) as db:
            result = db.test_connection()
        if not result:
            fail(ctx, result)
        console.print("[green]Connection successful[/]")

    @mssqlkit_group.command(name="exists", help="Check whether a table exists.")
    @click.argument("table", type=str)
    @click.pass_context
    def table_exists(ctx: "Context", table: str) -> None:  # pyright: ignore[reportUnusedFunction]
        with Database(ctx.obj["config"]) as db:
            result = db.table_exists(table)
        if not result:
            fail(ctx, result)
        if result.value:
            console.print(f"Table [bold]{escape(table)}[/] exists")
        else:
            console.print(f"Table [bold]{escape(table)}[/] does not exist")

    @mssqlkit_group.command(name="columns", help="List the columns of a table.")
    @click.argument("table", type=str)
    @click.option("--json", "as_json", help="Print the columns as JSON.", is_flag=True, default=False)
    @click.pass_context
    def table_columns(ctx: "Context", table: str, as_json: bool) -> None:  # pyright: ignore[reportUnusedFunction]
        with Database(ctx.obj["config"]) as db:
            result = db.get_table_columns(table)
        if not result:
            fail(ctx, result)
        columns = result.unwrap()
        if as_json:
            click.echo(encode_json(columns))
            return
        if not columns:
            console.print(f"[yellow]No columns found for {escape(table)}[/]")
            return
        output = Table(title=escape(table))
        output.add_column("Column")
        output.add_column("Type")
        for column in columns:
            output.add_row(column.name, column.data_type)
        console.print(output)

    @mssqlkit_group.command(name="scalar", help="Run a query and print the first column of the first row.")
    @click.argument("sql", type=str)
    @click.pass_context
    def scalar(ctx: "Context", sql: str) -> None:  # pyright: ignore[reportUnusedFunction]
        with Database(ctx.obj["config"]) as db:
            result = db.execute_scalar(sql)
        if not result:
            fail(ctx, result)
        click.echo("NULL" if result.value is None else str(result.value))

    return mssqlkit_group
