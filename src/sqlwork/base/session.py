from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, Union

from sqlwork.base.hydrator import Hydrator
from sqlwork.base.result import Result
from sqlwork.base.rows import Rows
from sqlwork.convert import convert_sql_params
from sqlwork.exception import (
    DataError,
    DriverError,
    RecordNotFound,
    SqlworkError,
)

logger = logging.getLogger(__name__)

Values = Optional[Union[Sequence[Any], Dict[str, Any]]]


class Session(ABC):
    """
    The data capabilities shared by a connection and a transaction. Driver
    subclasses only need to know how to run a statement and hand back a
    cursor; binding, hydration and error wrapping live here.
    """

    POSITIONAL_SUB: str = r"%s"
    KEYWORD_SUB: str = r"%(\2)s"

    def __init__(self, hydrator: Optional[Hydrator] = None) -> None:
        self._hydrator = hydrator or Hydrator()

    @property
    def hydrator(self) -> Hydrator:
        return self._hydrator

    @abstractmethod
    async def _open(self, query: str, values: Values) -> Rows: ...

    def prepare(self, query: str) -> str:
        """Convert `$name` and `$1` placeholders to the driver paramstyle"""
        return convert_sql_params(
            query, self.POSITIONAL_SUB, self.KEYWORD_SUB
        )

    async def execute_named(
        self, query: str, params: Mapping[str, Any]
    ) -> Result:
        return await self._mutate(query, dict(params))

    async def execute(self, query: str, *args: Any) -> Result:
        return await self._mutate(query, list(args) or None)

    async def query(self, query: str, *args: Any) -> Rows:
        return await self._run(query, list(args) or None)

    async def query_named(
        self, query: str, params: Mapping[str, Any]
    ) -> Rows:
        return await self._run(query, dict(params))

    async def select(
        self, model: Optional[Type[object]], query: str, *args: Any
    ) -> List[Any]:
        """Run a query and hydrate every row into `model`

        Args:
            model (Type[object], optional): The destination type for each
                row. Rows are returned as dicts when it is `None`.
            query (str): The query to be executed
            *args (Any): Positional parameters

        Raises:
            DriverError: When the statement fails
            DataError: When a row does not fit `model`

        Returns:
            List[Any]: The hydrated rows, possibly empty
        """
        values = list(args) or None
        rows = await self._run(query, values)
        try:
            raw = await rows.fetchall()
        except Exception as e:
            raise DriverError(f"Failed to fetch rows: {e}") from e
        finally:
            await self._close(rows)
        return self._hydrate(self.hydrator.hydrate_many, raw, model)

    async def get(
        self, model: Optional[Type[object]], query: str, *args: Any
    ) -> Any:
        """Run a query and hydrate exactly one row into `model`

        Args:
            model (Type[object], optional): The destination type. The row is
                returned as a dict when it is `None`.
            query (str): The query to be executed
            *args (Any): Positional parameters

        Raises:
            RecordNotFound: When no row matched
            DriverError: When the statement fails
            DataError: When the row does not fit `model`

        Returns:
            Any: The hydrated row
        """
        values = list(args) or None
        rows = await self._run(query, values)
        try:
            raw = await rows.fetchone()
        except Exception as e:
            raise DriverError(f"Failed to fetch row: {e}") from e
        finally:
            await self._close(rows)
        if raw is None:
            raise RecordNotFound(
                f"Query did not find any record using {args or ()}"
            )
        return self._hydrate(self.hydrator.hydrate, raw, model)

    async def _mutate(self, query: str, values: Values) -> Result:
        rows = await self._run(query, values)
        result = Result(rows.rowcount, rows.lastrowid)
        await self._close(rows)
        return result

    async def _run(self, query: str, values: Values) -> Rows:
        query = self.prepare(query)
        logger.debug("Executing %s with %s", query, values)
        try:
            return await self._open(query, values)
        except SqlworkError:
            raise
        except Exception as e:
            raise DriverError(f"Failed to execute {query!r}: {e}") from e

    @staticmethod
    def _hydrate(hydrate, raw, model):
        try:
            return hydrate(raw, model)
        except Exception as e:
            name = getattr(model, "__name__", model)
            raise DataError(f"Failed to hydrate rows into {name}: {e}") from e

    @staticmethod
    async def _close(rows: Rows) -> None:
        try:
            await rows.close()
        except Exception as e:
            raise DriverError(f"Failed to close cursor: {e}") from e
