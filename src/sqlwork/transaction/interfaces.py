from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class IsolationLevel(Enum):
    """SQL transaction isolation levels"""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


class TransactionState(Enum):
    """Whether a unit of work currently holds a transaction"""

    IDLE = auto()
    ACTIVE = auto()


class Outcome(Enum):
    COMMITTED = "commit"
    ROLLED_BACK = "rollback"


@dataclass(frozen=True)
class Settlement:
    """Record of a single commit or rollback attempt

    Handed to the settlement observer of a unit of work so that a failed
    commit can be noticed even when the surrounding call returned normally.
    """

    transaction_id: Optional[str]
    outcome: Outcome
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None
