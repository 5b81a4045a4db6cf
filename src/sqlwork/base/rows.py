from __future__ import annotations

from inspect import isawaitable
from typing import Any, Awaitable, Callable, Dict, List, Optional

Row = Dict[str, Any]


class Rows:
    """Forward-only cursor over the rows produced by a query

    Rows are fetched lazily from the driver cursor, one at a time, either
    by async iteration or through `fetchone` and `fetchall`. When the cursor
    borrowed a pooled connection, closing it hands the connection back.

    Example:

    ```python
    async with await uow.query("SELECT * FROM city") as rows:
        async for row in rows:
            ...
    ```
    """

    def __init__(
        self,
        cursor: Any,
        release: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> None:
        self._cursor = cursor
        self._release = release
        self._closed = False

    @property
    def rowcount(self) -> int:
        return getattr(self._cursor, "rowcount", -1)

    @property
    def lastrowid(self) -> Optional[int]:
        return getattr(self._cursor, "lastrowid", None)

    @property
    def closed(self) -> bool:
        return self._closed

    async def fetchone(self) -> Optional[Row]:
        if self._closed:
            return None
        row = await self._cursor.fetchone()
        if row is None:
            await self.close()
            return None
        return dict(row)

    async def fetchall(self) -> List[Row]:
        rows = []
        async for row in self:
            rows.append(row)
        return rows

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            closing = self._cursor.close()
            if isawaitable(closing):
                await closing
        finally:
            if self._release is not None:
                await self._release()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Row:
        row = await self.fetchone()
        if row is None:
            raise StopAsyncIteration
        return row

    async def __aenter__(self) -> Rows:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
