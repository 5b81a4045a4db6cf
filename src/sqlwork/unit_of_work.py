from __future__ import annotations

import logging
from contextlib import asynccontextmanager, suppress
from inspect import isawaitable
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
)

from sqlwork.base.interface import BaseInterface, BaseTransaction
from sqlwork.base.result import FailedResult, Result
from sqlwork.base.rows import Rows
from sqlwork.base.session import Session
from sqlwork.exception import (
    NestedTransactionError,
    NoActiveTransaction,
    SettlementError,
    TransactionBeginError,
    TransactionError,
)
from sqlwork.transaction.interfaces import (
    IsolationLevel,
    Outcome,
    Settlement,
    TransactionState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Work = Callable[["UnitOfWork"], Union[T, Awaitable[T]]]
SettlementObserver = Callable[[Settlement], Any]


class UnitOfWork:
    """Run queries and mutations against a connection or a transaction

    A unit of work always holds the shared connection and, while a
    transaction is active, the transaction as well. Every data operation is
    sent to the transaction when there is one, and to the connection
    otherwise, so the same code can run inside or outside of a transaction.

    Example:

    ```python
    uow = UnitOfWork(SQLiteInterface("app.db"))

    async def transfer(uow: UnitOfWork) -> int:
        await uow.execute_named(
            "UPDATE accounts SET balance = balance - $amount WHERE id = $id",
            {"amount": 10, "id": 1},
        )
        ...
        return 1

    await uow.in_transaction(transfer)
    ```
    """

    def __init__(
        self,
        connection: BaseInterface,
        transaction: Optional[BaseTransaction] = None,
        observer: Optional[SettlementObserver] = None,
    ) -> None:
        """
        Args:
            connection (BaseInterface): The shared connection
            transaction (BaseTransaction, optional): An already open
                transaction to bind to. Defaults to `None`.
            observer (Callable[[Settlement], Any], optional): Called with
                every commit or rollback outcome, including failed ones.
                May be a coroutine function. Defaults to `None`.
        """
        self._connection = connection
        self._transaction = transaction
        self._observer = observer
        self.last_settlement: Optional[Settlement] = None

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} state={self.state.name} "
            f"connection={self._connection}>"
        )

    @property
    def connection(self) -> BaseInterface:
        return self._connection

    @property
    def transaction(self) -> Optional[BaseTransaction]:
        return self._transaction

    @property
    def state(self) -> TransactionState:
        if self._transaction is None:
            return TransactionState.IDLE
        return TransactionState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self._transaction is not None

    def _target(self) -> Session:
        if self._transaction is not None:
            return self._transaction
        return self._connection

    async def execute_named(
        self, query: str, params: Mapping[str, Any]
    ) -> Result:
        """Execute a mutating statement with keyword parameters

        Failures are not raised. They are returned as a `FailedResult`
        whose `error` holds the exception, so the caller must inspect the
        result.

        Args:
            query (str): The statement, using `$name` placeholders
            params (Mapping[str, Any]): Values for the placeholders

        Returns:
            Result: The outcome of the statement
        """
        try:
            return await self._target().execute_named(query, params)
        except Exception as e:
            logger.debug("Named execution failed: %s", e)
            return FailedResult(e)

    async def execute(self, query: str, *args: Any) -> Result:
        """Execute a mutating statement, raising on any failure

        Raises:
            DriverError: When the statement fails
        """
        return await self._target().execute(query, *args)

    async def query(self, query: str, *args: Any) -> Rows:
        return await self._target().query(query, *args)

    async def query_named(
        self, query: str, params: Mapping[str, Any]
    ) -> Rows:
        return await self._target().query_named(query, params)

    async def select(
        self, model: Optional[Type[T]], query: str, *args: Any
    ) -> List[T]:
        return await self._target().select(model, query, *args)

    async def get(
        self, model: Optional[Type[T]], query: str, *args: Any
    ) -> T:
        """Fetch exactly one row

        Raises:
            RecordNotFound: When the query matched no row
            DriverError: When the statement fails
        """
        return await self._target().get(model, query, *args)

    async def begin(
        self, isolation_level: Optional[IsolationLevel] = None
    ) -> None:
        """Start a transaction on the connection

        Args:
            isolation_level (IsolationLevel, optional): Isolation level of
                the transaction. Defaults to `None`.

        Raises:
            NestedTransactionError: If a transaction is already active
            TransactionBeginError: If the store refuses to begin
        """
        if self._transaction is not None:
            raise NestedTransactionError(
                "Cannot begin a transaction while transaction "
                f"{self._transaction.transaction_id} is active"
            )
        try:
            transaction = await self._connection.begin(isolation_level)
        except TransactionError:
            raise
        except Exception as e:
            raise TransactionBeginError(
                f"Failed to begin transaction: {e}"
            ) from e
        if transaction is None:
            raise TransactionBeginError("No transaction was started")
        self._transaction = transaction
        logger.debug("Transaction %s started", transaction.transaction_id)

    async def commit(self) -> None:
        """Commit the active transaction

        The unit of work is idle afterwards, whether or not the commit
        succeeded.

        Raises:
            NoActiveTransaction: If there is no active transaction
            SettlementError: If the store failed to commit
        """
        await self._settle(Outcome.COMMITTED)

    async def rollback(self) -> None:
        """Rollback the active transaction

        The unit of work is idle afterwards, whether or not the rollback
        succeeded.

        Raises:
            NoActiveTransaction: If there is no active transaction
            SettlementError: If the store failed to rollback
        """
        await self._settle(Outcome.ROLLED_BACK)

    @asynccontextmanager
    async def transaction_scope(
        self, isolation_level: Optional[IsolationLevel] = None
    ) -> AsyncIterator[UnitOfWork]:
        """Hold a transaction for the duration of a block

        The transaction is committed when the block exits normally and
        rolled back when anything is raised out of it; the raised exception
        then propagates unchanged. A block may settle the transaction
        itself; whatever transaction is still active on exit, including
        one the block began after settling, is settled the same way. Settlement
        failures on exit are logged and reported to the observer, never
        raised.

        Example:

        ```python
        async with uow.transaction_scope():
            await uow.execute_named(...)
        ```
        """
        await self.begin(isolation_level)
        try:
            yield self
        except BaseException:
            if self._transaction is not None:
                await self._settle_quietly(Outcome.ROLLED_BACK)
            raise
        if self._transaction is not None:
            await self._settle_quietly(Outcome.COMMITTED)

    async def in_transaction(
        self,
        work: Work[T],
        isolation_level: Optional[IsolationLevel] = None,
    ) -> T:
        """Run `work` atomically and return its result

        `work` is called with this unit of work, which routes every
        operation to the new transaction. When `work` returns, the
        transaction is committed; when it raises, the transaction is rolled
        back and the exception re-raised as is.

        Args:
            work (Callable[[UnitOfWork], Any]): A function or coroutine
                function taking the unit of work
            isolation_level (IsolationLevel, optional): Isolation level of
                the transaction. Defaults to `None`.

        Raises:
            NestedTransactionError: If a transaction is already active
            TransactionBeginError: If the store refuses to begin

        Returns:
            Any: Whatever `work` returned
        """
        async with self.transaction_scope(isolation_level):
            result = work(self)
            if isawaitable(result):
                result = await result
        return result

    async def _settle(self, outcome: Outcome) -> None:
        transaction = self._transaction
        if transaction is None:
            raise NoActiveTransaction(
                f"Cannot {outcome.value}: no transaction was started"
            )
        self._transaction = None
        transaction_id = getattr(transaction, "transaction_id", None)

        try:
            if outcome is Outcome.COMMITTED:
                await transaction.commit()
            else:
                await transaction.rollback()
        except SettlementError as e:
            await self._report(Settlement(transaction_id, outcome, e))
            raise
        except Exception as e:
            await self._report(Settlement(transaction_id, outcome, e))
            raise SettlementError(
                f"Failed to {outcome.value} transaction {transaction_id}: {e}"
            ) from e
        await self._report(Settlement(transaction_id, outcome))

    async def _settle_quietly(self, outcome: Outcome) -> None:
        # Failures already reached the log, last_settlement and the observer
        with suppress(SettlementError):
            await self._settle(outcome)

    async def _report(self, settlement: Settlement) -> None:
        self.last_settlement = settlement
        if settlement.ok:
            logger.info(
                "Transaction %s %s succeeded",
                settlement.transaction_id,
                settlement.outcome.value,
            )
        else:
            logger.error(
                "Transaction %s %s failed: %s",
                settlement.transaction_id,
                settlement.outcome.value,
                settlement.error,
            )

        if self._observer is None:
            return
        try:
            notified = self._observer(settlement)
            if isawaitable(notified):
                await notified
        except Exception:
            logger.exception(
                "Settlement observer failed for transaction %s",
                settlement.transaction_id,
            )


def new_unit_of_work(
    connection: BaseInterface,
    transaction: Optional[BaseTransaction] = None,
    observer: Optional[SettlementObserver] = None,
) -> UnitOfWork:
    """Create a unit of work bound to `connection`

    Args:
        connection (BaseInterface): The shared connection
        transaction (BaseTransaction, optional): An already open transaction.
            Application code normally leaves this out and gets an idle unit
            of work. Defaults to `None`.
        observer (Callable[[Settlement], Any], optional): Settlement
            observer. Defaults to `None`.

    Returns:
        UnitOfWork: The unit of work
    """
    return UnitOfWork(connection, transaction, observer)
