class SqlworkError(Exception):
    """Base exception for everything raised by sqlwork"""


class DataError(SqlworkError):
    """An ordinary data error that a caller may handle"""


class DriverError(DataError):
    """The underlying driver failed to execute a statement"""


class RecordNotFound(DataError):
    """A single row was expected but none matched"""


class TransactionError(SqlworkError):
    """Base exception for transaction misuse and failures"""


class NoActiveTransaction(TransactionError):
    """Settlement was requested while no transaction is active"""


class NestedTransactionError(TransactionError):
    """A transaction was started while another one is still active"""


class TransactionBeginError(TransactionError):
    """The store refused to begin a transaction"""


class SettlementError(TransactionError):
    """A commit or rollback failed at the store"""
