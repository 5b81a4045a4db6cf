from importlib.metadata import version

from .base.hydrator import Hydrator
from .base.interface import BaseInterface, BaseTransaction
from .base.result import FailedResult, Result
from .base.rows import Rows
from .exception import (
    DataError,
    DriverError,
    NestedTransactionError,
    NoActiveTransaction,
    RecordNotFound,
    SettlementError,
    SqlworkError,
    TransactionBeginError,
    TransactionError,
)
from .factory import create_interface
from .sql.mysql.interface import MysqlInterface
from .sql.postgres.interface import PostgresInterface
from .sql.sqlite.interface import SQLiteInterface
from .transaction.interfaces import (
    IsolationLevel,
    Outcome,
    Settlement,
    TransactionState,
)
from .unit_of_work import UnitOfWork, new_unit_of_work

__version__ = version("sqlwork")

__all__ = (
    "create_interface",
    "new_unit_of_work",
    "BaseInterface",
    "BaseTransaction",
    "DataError",
    "DriverError",
    "FailedResult",
    "Hydrator",
    "IsolationLevel",
    "MysqlInterface",
    "NestedTransactionError",
    "NoActiveTransaction",
    "Outcome",
    "PostgresInterface",
    "RecordNotFound",
    "Result",
    "Rows",
    "Settlement",
    "SettlementError",
    "SQLiteInterface",
    "SqlworkError",
    "TransactionBeginError",
    "TransactionError",
    "TransactionState",
    "UnitOfWork",
)
