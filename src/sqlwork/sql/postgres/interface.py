from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any, Optional

from sqlwork.base.interface import BaseInterface, BaseTransaction
from sqlwork.base.rows import Rows
from sqlwork.base.session import Values
from sqlwork.exception import SqlworkError
from sqlwork.transaction.interfaces import IsolationLevel

try:
    from psycopg.rows import dict_row
    from psycopg_pool import AsyncConnectionPool

    POSTGRES_ENABLED = True
except ModuleNotFoundError:
    POSTGRES_ENABLED = False

if TYPE_CHECKING:
    from psycopg import AsyncConnection


class PostgresInterface(BaseInterface):
    """Interface for connecting to a Postgres database"""

    scheme = "postgres"
    aliases = ("postgresql",)

    def _setup_pool(self):
        if not POSTGRES_ENABLED:
            raise SqlworkError(
                "Postgres driver not found. Try reinstalling sqlwork: "
                "pip install sqlwork[postgres]"
            )
        self._pool = AsyncConnectionPool(
            self.full_dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False,
        )

    def _defaults(self):
        return {"hostname": "localhost", "port": 5432}

    async def open(self):
        """Open connections to the pool"""
        await self._pool.open()

    async def close(self):
        """Close connections to the pool"""
        await self._pool.close()

    async def _open(self, query: str, values: Values) -> Rows:
        # The pooled connection stays checked out until the rows are closed
        context = self._pool.connection()
        conn = await context.__aenter__()
        try:
            cursor = await _execute(conn, query, values)
        except BaseException as e:
            await context.__aexit__(type(e), e, e.__traceback__)
            raise
        release = partial(context.__aexit__, None, None, None)
        return Rows(cursor, release=release)

    async def _begin(
        self, isolation_level: Optional[IsolationLevel]
    ) -> PostgresTransaction:
        context = self._pool.connection()
        conn = await context.__aenter__()
        try:
            if isolation_level is not None:
                await conn.execute(
                    "SET TRANSACTION ISOLATION LEVEL "
                    f"{isolation_level.value}"
                )
        except BaseException as e:
            await context.__aexit__(type(e), e, e.__traceback__)
            raise
        return PostgresTransaction(self, conn, context)


class PostgresTransaction(BaseTransaction):
    def __init__(
        self, interface: PostgresInterface, conn: AsyncConnection, context
    ) -> None:
        super().__init__(interface)
        self._conn = conn
        self._context = context

    async def _open(self, query: str, values: Values) -> Rows:
        cursor = await _execute(self._conn, query, values)
        return Rows(cursor)

    async def _commit(self) -> None:
        await self._conn.commit()

    async def _rollback(self) -> None:
        await self._conn.rollback()

    async def _release(self) -> None:
        await self._context.__aexit__(None, None, None)


async def _execute(conn: AsyncConnection, query: str, values: Values) -> Any:
    cursor = conn.cursor(row_factory=dict_row)
    await cursor.execute(query, values)
    return cursor
