"""Explicit success/failure values returned by every database operation."""

from typing import Any, Generic, Optional, TypeVar, Union, overload

from mssqlkit.exceptions import MssqlKitError

__all__ = ("Result",)

T = TypeVar("T")
DefaultT = TypeVar("DefaultT")


class Result(Generic[T]):
    """Outcome of an operation: a value on success or the error that stopped it.

    A result is truthy only on success, so ``if not db.execute(...)`` reads naturally.
    """

    __slots__ = ("_error", "_value")

    def __init__(self, value: Optional[T] = None, error: Optional[MssqlKitError] = None) -> None:
        self._value = value
        self._error = error

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: MssqlKitError) -> "Result[Any]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self._error is None

    @property
    def value(self) -> Optional[T]:
        return self._value

    @property
    def error(self) -> Optional[MssqlKitError]:
        return self._error

    def unwrap(self) -> T:
        """Return the value or raise the captured error.

        Raises:
            MssqlKitError: The error of a failed result.
        """
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    @overload
    def unwrap_or(self, default: T) -> T: ...
    @overload
    def unwrap_or(self, default: DefaultT) -> Union[T, DefaultT]: ...
    def unwrap_or(self, default: Any) -> Any:
        """Return the value, or ``default`` (the sentinel) when the operation failed."""
        return default if self._error is not None else self._value

    def __bool__(self) -> bool:
        return self.ok

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._value == other._value and self._error is other._error

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.failure({self._error!r})"
        return f"Result.success({self._value!r})"
