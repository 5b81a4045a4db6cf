from __future__ import annotations

import asyncio
from sqlite3 import Cursor
from typing import Any, Dict, Optional, Tuple

from sqlwork.base.hydrator import Hydrator
from sqlwork.base.interface import BaseInterface, BaseTransaction
from sqlwork.base.rows import Rows
from sqlwork.base.session import Values
from sqlwork.exception import SqlworkError, TransactionBeginError
from sqlwork.transaction.interfaces import IsolationLevel

try:
    import aiosqlite

    AIOSQLITE_ENABLED = True
except ModuleNotFoundError:
    AIOSQLITE_ENABLED = False


class SQLiteInterface(BaseInterface):
    """Interface for connecting to a SQLite database

    SQLite is served by a single shared connection running in autocommit
    mode. A transaction issues an explicit `BEGIN` on that same connection
    and holds the interface lock until it is settled. Statements issued
    directly on the interface, and any other `begin`, wait for that lock,
    so they never run inside somebody else's transaction.
    """

    scheme = "sqlite"
    POSITIONAL_SUB = r"?"
    KEYWORD_SUB = r":\2"

    def __init__(self, db_path: str, hydrator: Optional[Hydrator] = None):
        self._db_path = db_path
        self._conn = None
        self._lock = asyncio.Lock()
        super().__init__(hydrator=hydrator)

    def _setup_pool(self):
        if not AIOSQLITE_ENABLED:
            raise SqlworkError(
                "SQLite driver not found. Try reinstalling sqlwork: "
                "pip install sqlwork[sqlite]"
            )

    def _populate_connection_args(self): ...

    def _populate_dsn(self):
        self._dsn = f"{self.scheme}://{self._db_path}"
        self._full_dsn = self._dsn

    @property
    def db_path(self) -> str:
        return self._db_path

    async def open(self):
        """Open the shared connection"""
        if self._conn is not None:
            return
        # isolation_level=None leaves transaction control to BEGIN/COMMIT
        self._conn = await aiosqlite.connect(
            self._db_path, isolation_level=None
        )
        self._conn.row_factory = self._dict_factory

    async def close(self):
        """Close the shared connection"""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()

    async def connection(self):
        """Obtain the shared connection, opening it on first use"""
        if self._conn is None:
            await self.open()
        return self._conn

    async def _open(self, query: str, values: Values) -> Rows:
        conn = await self.connection()
        async with self._lock:
            cursor = await conn.execute(query, values)
        return Rows(cursor)

    async def _begin(
        self, isolation_level: Optional[IsolationLevel]
    ) -> SQLiteTransaction:
        if isolation_level not in (None, IsolationLevel.SERIALIZABLE):
            raise TransactionBeginError(
                f"SQLite does not support {isolation_level.value} isolation"
            )
        conn = await self.connection()
        await self._lock.acquire()
        try:
            await conn.execute("BEGIN")
        except BaseException:
            self._lock.release()
            raise
        return SQLiteTransaction(self, conn)

    @staticmethod
    def _dict_factory(cursor: Cursor, row: Tuple[Any, ...]) -> Dict[str, Any]:
        return {val[0]: row[idx] for idx, val in enumerate(cursor.description)}


class SQLiteTransaction(BaseTransaction):
    POSITIONAL_SUB = SQLiteInterface.POSITIONAL_SUB
    KEYWORD_SUB = SQLiteInterface.KEYWORD_SUB

    def __init__(self, interface: SQLiteInterface, conn) -> None:
        super().__init__(interface)
        self._conn = conn

    async def _open(self, query: str, values: Values) -> Rows:
        cursor = await self._conn.execute(query, values)
        return Rows(cursor)

    async def _commit(self) -> None:
        await self._conn.execute("COMMIT")

    async def _rollback(self) -> None:
        await self._conn.execute("ROLLBACK")

    async def _release(self) -> None:
        self.interface._lock.release()
