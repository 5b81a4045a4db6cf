from contextlib import asynccontextmanager
from dataclasses import dataclass
from unittest.mock import AsyncMock, MagicMock

import pytest

from sqlwork import Result, SQLiteInterface, UnitOfWork
from sqlwork.base.rows import Rows
from sqlwork.sql.postgres import interface as postgres_interface


def make_session(name: str):
    session = MagicMock(name=name)
    session.execute_named = AsyncMock(return_value=Result(1, 1))
    session.execute = AsyncMock(return_value=Result(1, 1))
    session.query = AsyncMock(return_value=MagicMock(spec=Rows))
    session.query_named = AsyncMock(return_value=MagicMock(spec=Rows))
    session.select = AsyncMock(return_value=[])
    session.get = AsyncMock(return_value={"item_id": 1})
    return session


@pytest.fixture
def Item():
    @dataclass
    class Item:
        item_id: int
        name: str

    return Item


@pytest.fixture
def transaction():
    transaction = make_session("transaction")
    transaction.transaction_id = "txn_test"
    transaction.commit = AsyncMock()
    transaction.rollback = AsyncMock()
    return transaction


@pytest.fixture
def connection(transaction):
    connection = make_session("connection")
    connection.begin = AsyncMock(return_value=transaction)
    return connection


@pytest.fixture
def uow(connection):
    return UnitOfWork(connection)


@pytest.fixture
async def sqlite(tmp_path):
    interface = SQLiteInterface(str(tmp_path / "test.db"))
    await interface.open()
    await interface.execute(
        "CREATE TABLE items "
        "(item_id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
    )
    yield interface
    await interface.close()


class PostgresCursorMock:
    def __init__(self, rows):
        self._rows = list(rows)
        self.rowcount = len(self._rows) or 1
        self.execute = AsyncMock()
        self.close = AsyncMock()

    async def fetchone(self):
        if self._rows:
            return self._rows.pop(0)
        return None


@pytest.fixture
def postgres_rows():
    return []


@pytest.fixture
def postgres_connection(postgres_rows):
    connection = MagicMock()
    connection.cursors = []

    def cursor(**kwargs):
        new_cursor = PostgresCursorMock(postgres_rows)
        connection.cursors.append(new_cursor)
        return new_cursor

    connection.cursor = MagicMock(side_effect=cursor)
    connection.execute = AsyncMock()
    connection.commit = AsyncMock()
    connection.rollback = AsyncMock()
    return connection


@pytest.fixture
def postgres_pool(postgres_connection):
    pool = MagicMock()
    pool.exits = []

    @asynccontextmanager
    async def connection(*args, **kwargs):
        try:
            yield postgres_connection
        except BaseException as e:
            pool.exits.append(e)
            raise
        else:
            pool.exits.append(None)

    pool.connection = MagicMock(side_effect=connection)
    pool.open = AsyncMock()
    pool.close = AsyncMock()
    return pool


@pytest.fixture(autouse=True)
def mock_postgres_pool(monkeypatch, postgres_pool):
    mock = MagicMock(return_value=postgres_pool)
    monkeypatch.setattr(postgres_interface, "AsyncConnectionPool", mock)
    return mock
