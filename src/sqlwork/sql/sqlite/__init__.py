from .interface import SQLiteInterface, SQLiteTransaction

__all__ = ("SQLiteInterface", "SQLiteTransaction")
