from .interface import MysqlInterface, MysqlTransaction

__all__ = ("MysqlInterface", "MysqlTransaction")
