from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "ArityMismatchError",
    "ConnectionError",
    "DuplicateParameterError",
    "ExecError",
    "ExtraParameterError",
    "ImproperConfigurationError",
    "InvalidStateError",
    "MissingDependencyError",
    "MissingParameterError",
    "MssqlKitError",
    "ParameterError",
    "SQLBuilderError",
    "wrap_exceptions",
)

DEFAULT_ERROR_CODE = -1


class MssqlKitError(Exception):
    """Base exception class from which all mssqlkit exceptions inherit."""

    detail: str
    code: int = DEFAULT_ERROR_CODE

    def __init__(self, *args: Any, detail: str = "", code: Optional[int] = None) -> None:
        """Initialize ``MssqlKitError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
            code: numeric error code recorded alongside the message.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(MssqlKitError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install mssqlkit[{install_package or package}]' to install mssqlkit with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(MssqlKitError):
    """Improper Configuration error."""


class SQLBuilderError(MssqlKitError):
    """Issues Building or Generating SQL statements."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL statement."
        super().__init__(message)


class ArityMismatchError(SQLBuilderError):
    """Raised when a field list and its value or parameter list differ in length."""

    def __init__(self, fields_count: int, values_count: int, values_label: str = "Values") -> None:
        super().__init__(
            f"Fields and {values_label} arrays must have the same length ({fields_count} != {values_count})"
        )
        self.fields_count = fields_count
        self.values_count = values_count


class ParameterError(MssqlKitError):
    """Base class for parameter-related errors."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class DuplicateParameterError(ParameterError):
    """Raised when two parameters in one statement share a name (case-insensitive)."""

    def __init__(self, names: "list[str]") -> None:
        super().__init__(f"Duplicate parameter name(s): {', '.join(names)}")
        self.names = names


class MissingParameterError(ParameterError):
    """Raised when a placeholder has no matching parameter."""


class ExtraParameterError(ParameterError):
    """Raised when a parameter is not referenced by any placeholder."""


class ConnectionError(MssqlKitError):  # noqa: A001
    """Opening or closing the database connection failed."""


class InvalidStateError(MssqlKitError):
    """Raised when a transaction operation is not valid in the current connection state."""


class ExecError(MssqlKitError):
    """Statement execution or driver failure."""


@contextmanager
def wrap_exceptions(error_type: "type[MssqlKitError]", message: str) -> Generator[None, None, None]:
    """Re-raise driver exceptions as ``error_type``.

    Exceptions that already belong to the mssqlkit hierarchy pass through untouched.

    Args:
        error_type: The mssqlkit exception to raise.
        message: Prefix for the wrapped error message.

    Raises:
        MssqlKitError: ``error_type`` chained to the original driver exception.
    """
    try:
        yield
    except MssqlKitError:
        raise
    except Exception as exc:
        msg = f"{message}: {exc}"
        raise error_type(msg) from exc
