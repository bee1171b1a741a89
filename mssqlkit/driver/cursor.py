"""Forward-only row cursor returning rows as dictionaries."""

import contextlib
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from types import TracebackType

__all__ = ("RowCursor",)


class RowCursor:
    """Wraps an executed DB-API cursor and maps each row to ``{column: value}``.

    The caller owns the cursor and must close it, preferably with ``with``.
    """

    __slots__ = ("_closed", "_columns", "_cursor")

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._columns: list[str] = [column[0] for column in cursor.description or ()]
        self._closed = False

    @property
    def columns(self) -> "list[str]":
        return list(self._columns)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    def _to_dict(self, row: Any) -> "dict[str, Any]":
        return dict(zip(self._columns, row))

    def fetchone(self) -> "Optional[dict[str, Any]]":
        row = self._cursor.fetchone()
        return None if row is None else self._to_dict(row)

    def fetchmany(self, size: Optional[int] = None) -> "list[dict[str, Any]]":
        rows = self._cursor.fetchmany() if size is None else self._cursor.fetchmany(size)
        return [self._to_dict(row) for row in rows]

    def fetchall(self) -> "list[dict[str, Any]]":
        return [self._to_dict(row) for row in self._cursor.fetchall()]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(Exception):
            self._cursor.close()

    def __iter__(self) -> "Iterator[dict[str, Any]]":
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def __enter__(self) -> "RowCursor":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: Optional[BaseException],
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(columns={self._columns!r}, closed={self._closed!r})"
