from unittest.mock import AsyncMock, MagicMock

import pytest

from sqlwork import DriverError, FailedResult, Hydrator, Result, Rows


def test_native_result():
    result = Result(3, 7)

    assert result.ok
    assert result.error is None
    assert result.rows_affected() == (3, None)
    assert result.last_insert_id() == (7, None)
    result.raise_for_error()


def test_failed_result_is_stable():
    error = DriverError("duplicate key")
    result = FailedResult(error)

    for _ in range(3):
        assert result.rows_affected() == (0, error)
        assert result.last_insert_id() == (None, error)
    assert not result.ok
    assert "duplicate key" in repr(result)
    with pytest.raises(DriverError):
        result.raise_for_error()


class CursorMock:
    def __init__(self, rows):
        self.rows = list(rows)
        self.rowcount = len(self.rows)
        self.closed = False

    async def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def close(self):
        self.closed = True


async def test_rows_iterate_lazily():
    cursor = CursorMock([{"a": 1}, {"a": 2}, {"a": 3}])
    release = AsyncMock()
    rows = Rows(cursor, release=release)

    assert rows.rowcount == 3
    assert rows.lastrowid is None
    assert await rows.fetchone() == {"a": 1}
    assert cursor.rows == [{"a": 2}, {"a": 3}]
    assert [row async for row in rows] == [{"a": 2}, {"a": 3}]
    assert rows.closed
    assert cursor.closed
    release.assert_awaited_once()
    assert await rows.fetchone() is None


async def test_rows_close_releases_once():
    release = AsyncMock()
    rows = Rows(CursorMock([{"a": 1}]), release=release)

    async with rows:
        pass
    await rows.close()

    release.assert_awaited_once()


async def test_rows_release_even_if_close_fails():
    cursor = MagicMock()
    cursor.close = MagicMock(side_effect=RuntimeError("already closed"))
    release = AsyncMock()
    rows = Rows(cursor, release=release)

    with pytest.raises(RuntimeError):
        await rows.close()

    release.assert_awaited_once()


def test_hydrator_models():
    hydrator = Hydrator()

    assert hydrator.hydrate({"count": 4}, int) == 4
    assert hydrator.hydrate({"a": 1}) == {"a": 1}
    assert hydrator.hydrate({"a": 1}, None) == {"a": 1}
    assert hydrator.hydrate_many([{"a": 1}, {"a": 2}], dict) == [
        {"a": 1},
        {"a": 2},
    ]


def test_custom_hydrator(Item):
    class UpperHydrator(Hydrator):
        def hydrate(self, data, model=None):
            data = {**data, "name": data["name"].upper()}
            return super().hydrate(data, model)

    item = UpperHydrator().hydrate({"item_id": 1, "name": "foo"}, Item)

    assert item == Item(1, "FOO")
