"""
DB-API cursor wrapper with SQL logging, timing and parameter binding.
"""
import logging
import time
from collections.abc import Sequence
from functools import wraps
from typing import Any, Self

from recorddao.values import bind_params

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL queries and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


def dumpsql_many(func):
    """Decorator for logging executemany operations."""
    @wraps(func)
    def wrapper(self, operation: str, seq_of_parameters: Sequence, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nparams: {len(seq_of_parameters)} rows')
        try:
            return func(self, operation, seq_of_parameters, *args, **kwargs)
        except Exception:
            logger.error(f'Error with executemany:\nSQL:\n{operation}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Executemany time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Cursor wrapper binding entity-aware parameters.

    Statements reach the cursor already in the driver's marker style.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any) -> None:
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    @property
    def description(self) -> Sequence[tuple] | None:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def labels(self) -> list[str]:
        """Result column labels for last query."""
        return [desc[0] for desc in (self.description or [])]

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> Any:
        """Row id of the last inserted row, where the driver reports one."""
        return getattr(self.dbapi_cursor, 'lastrowid', None)

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()

    def fetchone(self) -> Sequence | None:
        """Fetch next row."""
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list[Sequence]:
        """Fetch all remaining rows."""
        return self.dbapi_cursor.fetchall()

    @dumpsql
    def execute(self, operation: str, params: Sequence[Any] = ()) -> int:
        """Execute a database operation."""
        self.dbapi_cursor.execute(operation, bind_params(params))
        return self.dbapi_cursor.rowcount

    @dumpsql_many
    def executemany(self, operation: str, seq_of_parameters: Sequence[Sequence[Any]]) -> int:
        """Execute against all parameter sequences in one driver call."""
        if not seq_of_parameters:
            logger.warning('executemany called with no parameter sequences')
            return 0
        self.dbapi_cursor.executemany(operation, [bind_params(p) for p in seq_of_parameters])
        return self.dbapi_cursor.rowcount
