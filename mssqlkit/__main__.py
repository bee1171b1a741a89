import sys

from mssqlkit.exceptions import MissingDependencyError


def run_cli() -> None:  # pragma: no cover
    """mssqlkit command line entry point."""
    try:
        from mssqlkit.cli import get_mssqlkit_group

        get_mssqlkit_group()(prog_name="mssqlkit")
    except MissingDependencyError as exc:
        print(exc, file=sys.stderr)  # noqa: T201
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    run_cli()
