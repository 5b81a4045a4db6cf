from unittest.mock import AsyncMock, MagicMock

import pytest

from sqlwork import NestedTransactionError, TransactionState, UnitOfWork
from sqlwork.transaction import Outcome, Settlement


class WorkFailed(Exception): ...


class Abort(BaseException): ...


async def test_commits_on_success(uow, transaction):
    async def work(inner):
        assert inner is uow
        assert inner.state is TransactionState.ACTIVE
        await inner.execute_named("INSERT INTO items VALUES ($name)", {})
        return "value"

    result = await uow.in_transaction(work)

    assert result == "value"
    transaction.commit.assert_awaited_once()
    transaction.rollback.assert_not_called()
    assert uow.state is TransactionState.IDLE


async def test_accepts_plain_function(uow, transaction):
    result = await uow.in_transaction(lambda inner: 42)

    assert result == 42
    transaction.commit.assert_awaited_once()


async def test_rolls_back_on_error(uow, transaction):
    error = WorkFailed("insufficient funds")

    async def work(inner):
        await inner.execute("UPDATE accounts SET balance = 0")
        raise error

    with pytest.raises(WorkFailed) as exc_info:
        await uow.in_transaction(work)

    assert exc_info.value is error
    transaction.rollback.assert_awaited_once()
    transaction.commit.assert_not_called()
    assert uow.state is TransactionState.IDLE


async def test_rolls_back_on_abort(uow, transaction):
    abort = Abort()

    async def work(inner):
        raise abort

    with pytest.raises(Abort) as exc_info:
        await uow.in_transaction(work)

    assert exc_info.value is abort
    transaction.rollback.assert_awaited_once()
    transaction.commit.assert_not_called()


async def test_failed_rollback_does_not_mask_error(uow, transaction):
    transaction.rollback.side_effect = RuntimeError("connection lost")
    error = WorkFailed("boom")

    async def work(inner):
        raise error

    with pytest.raises(WorkFailed) as exc_info:
        await uow.in_transaction(work)

    assert exc_info.value is error
    transaction.rollback.assert_awaited_once()
    assert uow.last_settlement.outcome is Outcome.ROLLED_BACK
    assert isinstance(uow.last_settlement.error, RuntimeError)
    assert uow.state is TransactionState.IDLE


async def test_failed_commit_is_reported_not_raised(connection, transaction):
    transaction.commit.side_effect = RuntimeError("serialization failure")
    settlements = []
    uow = UnitOfWork(connection, observer=settlements.append)

    result = await uow.in_transaction(lambda inner: "value")

    assert result == "value"
    assert len(settlements) == 1
    settlement = settlements[0]
    assert settlement.transaction_id == "txn_test"
    assert settlement.outcome is Outcome.COMMITTED
    assert not settlement.ok
    assert uow.last_settlement is settlement


async def test_async_observer(connection):
    observer = AsyncMock()
    uow = UnitOfWork(connection, observer=observer)

    await uow.in_transaction(lambda inner: None)

    observer.assert_awaited_once_with(
        Settlement("txn_test", Outcome.COMMITTED)
    )


async def test_broken_observer_is_logged(connection, transaction, caplog):
    observer = MagicMock(side_effect=ValueError("observer bug"))
    uow = UnitOfWork(connection, observer=observer)

    assert await uow.in_transaction(lambda inner: 1) == 1

    transaction.commit.assert_awaited_once()
    assert "Settlement observer failed" in caplog.text


async def test_settlement_is_logged(uow, caplog):
    caplog.set_level("INFO", logger="sqlwork")

    await uow.in_transaction(lambda inner: None)

    assert "Transaction txn_test commit succeeded" in caplog.text


async def test_work_may_settle_itself(uow, transaction):
    async def work(inner):
        await inner.rollback()
        return "done"

    assert await uow.in_transaction(work) == "done"

    transaction.rollback.assert_awaited_once()
    transaction.commit.assert_not_called()


async def test_nested_in_transaction_is_rejected(uow, transaction):
    async def inner_work(inner):
        return "never"

    async def work(inner):
        return await inner.in_transaction(inner_work)

    with pytest.raises(NestedTransactionError):
        await uow.in_transaction(work)

    transaction.rollback.assert_awaited_once()
    transaction.commit.assert_not_called()


async def test_reuse_begins_fresh_transaction(connection):
    first, second = MagicMock(), MagicMock()
    for index, txn in enumerate((first, second)):
        txn.transaction_id = f"txn_{index}"
        txn.commit = AsyncMock()
        txn.rollback = AsyncMock()
        txn.execute = AsyncMock()
    connection.begin = AsyncMock(side_effect=[first, second])
    uow = UnitOfWork(connection)

    await uow.in_transaction(lambda inner: None)
    await uow.in_transaction(lambda inner: inner.execute("DELETE FROM items"))

    first.commit.assert_awaited_once()
    first.execute.assert_not_called()
    second.execute.assert_awaited_once_with("DELETE FROM items")
    second.commit.assert_awaited_once()
    assert connection.begin.await_count == 2


async def test_transaction_scope(uow, transaction):
    async with uow.transaction_scope() as scoped:
        assert scoped is uow
        await scoped.execute("DELETE FROM items")

    transaction.execute.assert_awaited_once_with("DELETE FROM items")
    transaction.commit.assert_awaited_once()


async def test_transaction_scope_settles_restarted_transaction(
    uow, connection, transaction
):
    second = MagicMock(transaction_id="txn_second")
    second.commit = AsyncMock()
    second.rollback = AsyncMock()
    connection.begin.side_effect = [transaction, second]

    async with uow.transaction_scope():
        await uow.commit()
        await uow.begin()

    transaction.commit.assert_awaited_once()
    second.commit.assert_awaited_once()
    second.rollback.assert_not_called()
    assert uow.state is TransactionState.IDLE


async def test_transaction_scope_rolls_back_restarted_transaction(
    uow, connection, transaction
):
    second = MagicMock(transaction_id="txn_second")
    second.commit = AsyncMock()
    second.rollback = AsyncMock()
    connection.begin.side_effect = [transaction, second]

    with pytest.raises(WorkFailed):
        async with uow.transaction_scope():
            await uow.rollback()
            await uow.begin()
            raise WorkFailed("after restart")

    transaction.rollback.assert_awaited_once()
    second.rollback.assert_awaited_once()
    second.commit.assert_not_called()
    assert uow.state is TransactionState.IDLE
