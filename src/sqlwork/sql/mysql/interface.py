from __future__ import annotations

from functools import partial
from typing import Any, Optional

from sqlwork.base.interface import BaseInterface, BaseTransaction
from sqlwork.base.rows import Rows
from sqlwork.base.session import Values
from sqlwork.exception import SqlworkError
from sqlwork.transaction.interfaces import IsolationLevel

try:
    from asyncmy import create_pool
    from asyncmy.cursors import DictCursor

    MYSQL_ENABLED = True
except ModuleNotFoundError:
    MYSQL_ENABLED = False


class MysqlInterface(BaseInterface):
    """Interface for connecting to a MySQL database"""

    scheme = "mysql"

    def _setup_pool(self):
        if not MYSQL_ENABLED:
            raise SqlworkError(
                "MySQL driver not found. Try reinstalling sqlwork: "
                "pip install sqlwork[mysql]"
            )
        self._pool = None

    def _defaults(self):
        return {"hostname": "localhost", "port": 3306}

    async def open(self):
        """Open connections to the pool"""
        if self._pool is not None:
            return
        self._pool = await create_pool(
            user=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            db=self.db,
            minsize=self.min_size,
            maxsize=self.max_size or 10,
            autocommit=True,
        )

    async def close(self):
        """Close connections to the pool"""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        pool.close()
        await pool.wait_closed()

    async def _acquire(self):
        if self._pool is None:
            await self.open()
        context = self._pool.acquire()
        conn = await context.__aenter__()
        return context, conn

    async def _open(self, query: str, values: Values) -> Rows:
        context, conn = await self._acquire()
        try:
            cursor = await _execute(conn, query, values)
        except BaseException as e:
            await context.__aexit__(type(e), e, e.__traceback__)
            raise
        release = partial(context.__aexit__, None, None, None)
        return Rows(cursor, release=release)

    async def _begin(
        self, isolation_level: Optional[IsolationLevel]
    ) -> MysqlTransaction:
        context, conn = await self._acquire()
        try:
            if isolation_level is not None:
                # Applies to the next transaction on this connection only
                cursor = await _execute(
                    conn,
                    "SET TRANSACTION ISOLATION LEVEL "
                    f"{isolation_level.value}",
                    None,
                )
                await cursor.close()
            await conn.begin()
        except BaseException as e:
            await context.__aexit__(type(e), e, e.__traceback__)
            raise
        return MysqlTransaction(self, conn, context)


class MysqlTransaction(BaseTransaction):
    def __init__(self, interface: MysqlInterface, conn, context) -> None:
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


async def _execute(conn, query: str, values: Values) -> Any:
    cursor = conn.cursor(DictCursor)
    await cursor.execute(query, values)
    return cursor
