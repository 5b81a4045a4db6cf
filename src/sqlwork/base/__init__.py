from .hydrator import Hydrator
from .interface import BaseInterface, BaseTransaction
from .result import FailedResult, Result
from .rows import Rows
from .session import Session

__all__ = (
    "BaseInterface",
    "BaseTransaction",
    "FailedResult",
    "Hydrator",
    "Result",
    "Rows",
    "Session",
)
