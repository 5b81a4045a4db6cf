from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import namedtuple
from typing import Optional, Set, Tuple, Type
from urllib.parse import urlparse
from uuid import uuid4

from sqlwork.base.hydrator import Hydrator
from sqlwork.base.session import Session
from sqlwork.exception import (
    SettlementError,
    SqlworkError,
    TransactionBeginError,
    TransactionError,
)
from sqlwork.transaction.interfaces import IsolationLevel

logger = logging.getLogger(__name__)

UrlMapping = namedtuple("UrlMapping", ("key", "cast"))


URLPARSE_MAPPING = {
    "hostname": UrlMapping("_host", str),
    "username": UrlMapping("_user", str),
    "password": UrlMapping("_password", str),
    "port": UrlMapping("_port", int),
    "path": UrlMapping("_db", lambda value: value.replace("/", "")),
    "query": UrlMapping("_query", str),
}


class BaseInterface(Session):
    """The shared, long-lived connection to a data store

    Statements issued directly on an interface run outside of any explicit
    transaction and are committed by the store as they complete. Use
    `begin` to obtain a `BaseTransaction` bound to a dedicated connection.
    """

    scheme = "dummy"
    aliases: Tuple[str, ...] = ()
    registered_interfaces: Set[Type[BaseInterface]] = set()

    def __init_subclass__(cls) -> None:
        BaseInterface.registered_interfaces.add(cls)

    @abstractmethod
    def _setup_pool(self): ...

    @abstractmethod
    async def open(self): ...

    @abstractmethod
    async def close(self): ...

    @abstractmethod
    async def _begin(
        self, isolation_level: Optional[IsolationLevel]
    ) -> BaseTransaction: ...

    def __init__(
        self,
        dsn: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        db: Optional[str] = None,
        query: Optional[str] = None,
        min_size: int = 1,
        max_size: Optional[int] = None,
        hydrator: Optional[Hydrator] = None,
    ) -> None:
        """DB class initialization.

        Args:
            dsn (str, optional): DB data source name
            host (str, optional): DB address URL or IP
            port (int, optional): DB port
            user (str, optional): DB user
            password (str, optional): DB password
            db (str, optional): DB name
            query (str, optional): DB query parameters. Defaults to None
            min_size (int, optional): Minimum number of connections in pool.
                Defaults to 1
            max_size (int, optional): Maximum number of connections in pool.
                Defaults to None
            hydrator (Hydrator, optional): Hydrator used by `select` and
                `get`. Defaults to a generic `Hydrator`
        """
        super().__init__(hydrator=hydrator)

        if dsn and host:
            raise SqlworkError("Cannot connect to DB using host and dsn")

        if not dsn:
            if port and (
                not isinstance(port, int) or port not in range(0, 65536)
            ):
                raise SqlworkError(
                    "port: must be an integer between 0 and 65535"
                )

            if host and (not isinstance(host, str) or not len(host) > 0):
                raise SqlworkError(
                    "host: must be a string at least 1 character long"
                )

        if password is not None and (
            not isinstance(password, str) or not len(password) > 0
        ):
            raise SqlworkError(
                "password: must be a string at least 1 character long"
            )

        if min_size < 0 or (max_size is not None and max_size < min_size):
            raise SqlworkError(
                "min_size and max_size must satisfy 0 <= min_size <= max_size"
            )

        self._dsn = dsn
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._db = db
        self._query = query
        self._min_size = min_size
        self._max_size = max_size
        self._full_dsn: Optional[str] = None

        self._populate_connection_args()
        self._populate_dsn()
        self._setup_pool()

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.dsn}>"

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @classmethod
    def accepts(cls, scheme: str) -> bool:
        return scheme == cls.scheme or scheme in cls.aliases

    async def begin(
        self, isolation_level: Optional[IsolationLevel] = None
    ) -> BaseTransaction:
        """Begin a transaction on a dedicated connection

        Args:
            isolation_level (IsolationLevel, optional): Isolation level for
                the new transaction. Defaults to the store's own default.

        Raises:
            TransactionBeginError: If the store refuses to begin

        Returns:
            BaseTransaction: The active transaction
        """
        try:
            transaction = await self._begin(isolation_level)
        except TransactionError:
            raise
        except Exception as e:
            raise TransactionBeginError(
                f"Failed to begin transaction on {self}: {e}"
            ) from e
        logger.debug(
            "Transaction %s begun on %s", transaction.transaction_id, self
        )
        return transaction

    def _populate_connection_args(self):
        dsn = self.dsn or ""
        if dsn:
            parts = urlparse(dsn)
            for key, mapping in URLPARSE_MAPPING.items():
                if not getattr(self, mapping.key):
                    value = getattr(parts, key, None)
                    if value is None:
                        value = self._defaults().get(key)
                    if value:
                        setattr(self, mapping.key, mapping.cast(value))

    def _defaults(self):
        return {"hostname": "localhost"}

    def _populate_dsn(self):
        self._dsn = (
            (
                f"{self.scheme}://{self.user}:...@"
                f"{self.host}:{self.port}/{self.db}"
            )
            if self.password
            else (
                f"{self.scheme}://{self.user}@"
                f"{self.host}:{self.port}/{self.db}"
            )
        )
        self._full_dsn = (
            (
                f"{self.scheme}://{self.user}:{self.password}@"
                f"{self.host}:{self.port}/{self.db}"
            )
            if self.password
            else self.dsn
        )
        self._full_dsn += f"?{self._query}" if self._query else ""

    @property
    def dsn(self):
        return self._dsn

    @property
    def host(self):
        return self._host

    @property
    def port(self):
        return self._port

    @property
    def user(self):
        return self._user

    @property
    def password(self):
        return self._password

    @property
    def db(self):
        return self._db

    @property
    def full_dsn(self):
        return self._full_dsn

    @property
    def min_size(self):
        return self._min_size

    @property
    def max_size(self):
        return self._max_size


class BaseTransaction(Session, ABC):
    """An in-progress transaction bound to one driver connection

    A transaction is settled exactly once, by `commit` or `rollback`. Its
    connection is released whatever the outcome of the settlement.
    """

    def __init__(
        self, interface: BaseInterface, hydrator: Optional[Hydrator] = None
    ) -> None:
        super().__init__(hydrator=hydrator or interface.hydrator)
        self.transaction_id = f"txn_{uuid4().hex[:8]}"
        self.interface = interface
        self._settled = False
        self._start_time = time.time()

    def __str__(self) -> str:
        status = "settled" if self._settled else "active"
        return f"<{self.__class__.__name__} {self.transaction_id} ({status})>"

    # Dialect specific settlement, run on the transaction's own connection
    @abstractmethod
    async def _commit(self) -> None: ...

    @abstractmethod
    async def _rollback(self) -> None: ...

    async def _release(self) -> None:
        """Hand the dedicated connection back, if there is one"""

    @property
    def is_active(self) -> bool:
        return not self._settled

    @property
    def duration(self) -> float:
        return time.time() - self._start_time

    async def commit(self) -> None:
        """Commit the transaction

        Raises:
            TransactionError: If the transaction was already settled
            SettlementError: If the store failed to commit
        """
        await self._settle(self._commit, "commit")

    async def rollback(self) -> None:
        """Rollback the transaction

        Raises:
            TransactionError: If the transaction was already settled
            SettlementError: If the store failed to rollback
        """
        await self._settle(self._rollback, "rollback")

    async def _settle(self, settle, verb: str) -> None:
        if self._settled:
            raise TransactionError(
                f"Transaction {self.transaction_id} already finalized"
            )
        # Settling twice is never allowed, even after a failed attempt
        self._settled = True
        try:
            await settle()
        except Exception as e:
            raise SettlementError(
                f"Failed to {verb} transaction {self.transaction_id}: {e}"
            ) from e
        else:
            logger.debug(
                "Transaction %s %s after %.3fs",
                self.transaction_id,
                verb,
                self.duration,
            )
        finally:
            try:
                await self._release()
            except Exception as e:
                logger.warning(
                    "Error releasing connection of %s: %s",
                    self.transaction_id,
                    e,
                )
