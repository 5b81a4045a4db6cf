from .interface import PostgresInterface, PostgresTransaction

__all__ = ("PostgresInterface", "PostgresTransaction")
