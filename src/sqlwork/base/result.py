from __future__ import annotations

from typing import Optional, Tuple


class Result:
    """Outcome of a mutating statement

    Mirrors the DB-API `rowcount` and `lastrowid` of the cursor that ran the
    statement. A native result never carries an error.
    """

    __slots__ = ("rowcount", "lastrowid")

    def __init__(self, rowcount: int, lastrowid: Optional[int] = None):
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} rowcount={self.rowcount} "
            f"lastrowid={self.lastrowid} error={self.error!r}>"
        )

    @property
    def error(self) -> Optional[Exception]:
        return None

    @property
    def ok(self) -> bool:
        return self.error is None

    def rows_affected(self) -> Tuple[int, Optional[Exception]]:
        """Number of rows changed by the statement and its error, if any"""
        return self.rowcount, self.error

    def last_insert_id(self) -> Tuple[Optional[int], Optional[Exception]]:
        """Identifier generated by the statement and its error, if any"""
        return self.lastrowid, self.error

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class FailedResult(Result):
    """A `Result` standing in for a statement that failed before producing
    one. It always reports zero affected rows and the wrapped error."""

    __slots__ = ("_error",)

    def __init__(self, error: Exception):
        super().__init__(0, None)
        self._error = error

    @property
    def error(self) -> Exception:
        return self._error
