"""
Batched statement execution.

Records are flushed in chunks of `batch_size`. Outside a transaction scope
each chunk is committed once flushed, so chunks flushed before a failure
stay committed.
"""
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from more_itertools import chunked
from recorddao.exceptions import OperationError

__all__ = ['execute_batches', 'execute_in_batches']

logger = logging.getLogger(__name__)

Binder = Callable[[Any, Any], Sequence[Any]]


def _flush_chunks(cn: Any, records: Iterable[Any], batch_size: int, operation: str,
                  flush: Callable[[list], int]) -> int:
    total = 0
    flushed = 0
    try:
        for chunk in chunked(records, batch_size):
            count = flush(chunk)
            if not cn.in_transaction:
                cn.commit()
            total += max(count, 0)
            flushed += 1
            logger.debug(f'{operation}: flushed batch {flushed} ({len(chunk)} records)')
    except Exception as exc:
        logger.error(f'{operation} failed after {flushed} flushed batches: {exc}')
        if not cn.in_transaction:
            cn.rollback()
        raise OperationError(operation, exc) from exc
    return total


def execute_batches(cn: Any, sql: str, records: Iterable[Any], bind: Binder,
                    batch_size: int, operation: str) -> int:
    """Execute one statement for every record, one executemany per chunk.

    Args:
        cn: ConnectionWrapper the statements run on
        sql: Statement in the connection's marker style
        records: Records to bind, one parameter row each
        bind: Callable(connection, record) returning the parameter row
        batch_size: Records per executemany call
        operation: Tag used for OperationError

    Returns
        Affected row count summed over all chunks
    """
    def flush(chunk: list) -> int:
        rows = [bind(cn, record) for record in chunk]
        with cn.cursor() as cursor:
            return cursor.executemany(sql, rows)

    return _flush_chunks(cn, records, batch_size, operation, flush)


def execute_in_batches(cn: Any, build_sql: Callable[[int], str], records: Iterable[Any],
                       bind: Binder, batch_size: int, operation: str) -> int:
    """Execute one statement per chunk with the parameters of all its records.

    `build_sql(n)` returns a statement sized for `n` records, an `IN (...)`
    list for instance. Parameter rows are concatenated in record order.
    """
    def flush(chunk: list) -> int:
        params = [value for record in chunk for value in bind(cn, record)]
        with cn.cursor() as cursor:
            return cursor.execute(build_sql(len(chunk)), params)

    return _flush_chunks(cn, records, batch_size, operation, flush)
