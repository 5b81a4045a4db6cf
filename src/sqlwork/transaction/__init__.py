"""
Transaction vocabulary shared by interfaces and units of work.
"""

from sqlwork.exception import (
    NestedTransactionError,
    NoActiveTransaction,
    SettlementError,
    TransactionBeginError,
    TransactionError,
)

from .interfaces import IsolationLevel, Outcome, Settlement, TransactionState

__all__ = [
    "IsolationLevel",
    "NestedTransactionError",
    "NoActiveTransaction",
    "Outcome",
    "Settlement",
    "SettlementError",
    "TransactionBeginError",
    "TransactionError",
    "TransactionState",
]
