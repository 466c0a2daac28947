"""
Transaction scope binding one connection across several DAO operations.
"""
import enum
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Self

from recorddao.dao import CrudOperations, E
from recorddao.exceptions import OperationError, TransactionCloseError
from recorddao.exceptions import TransactionClosedError

if TYPE_CHECKING:
    from recorddao.connection import ConnectionSource, ConnectionWrapper
    from recorddao.dao import Dao

__all__ = ['Transaction', 'TransactionState']

logger = logging.getLogger(__name__)


class TransactionState(enum.Enum):
    OPEN = 'open'
    COMMITTED = 'committed'
    ROLLED_BACK = 'rolled back'
    CLOSED = 'closed'


class Transaction(CrudOperations[E]):
    """Context manager running DAO operations on one connection.

    Auto-commit is disabled on entry and restored on exit. Exit rolls back
    when an operation failed or an exception left the block, and commits
    otherwise, unless nothing was written since the last explicit commit.

    Examples
        with dao.transaction() as tx:
            tx.insert(user)
            tx.update(other)
            tx.commit()
            tx.delete(stale)
    """

    def __init__(self, dao: 'Dao[E]') -> None:
        self.dao = dao
        self.entity = dao.entity
        self.mapping = dao.mapping
        self.cn: 'ConnectionWrapper | None' = None
        self.state: TransactionState | None = None
        self.rollback_only = False
        self._mode: Any = None

    def __repr__(self) -> str:
        state = self.state.name if self.state else 'NEW'
        return f'Transaction({self.entity.__name__}, {state})'

    @property
    def source(self) -> 'ConnectionSource':
        return self.dao.source

    @property
    def batch_size(self) -> int:
        return self.dao.batch_size

    @property
    def update_query(self) -> str:
        return self.dao.update_query

    @property
    def closed(self) -> bool:
        return self.state is TransactionState.CLOSED

    def __enter__(self) -> Self:
        if self.state is not None:
            raise TransactionClosedError('transaction - begin')
        cn = self.source.acquire()
        try:
            raw_conn = cn.driver_connection
            self._mode = cn.strategy.get_transaction_mode(raw_conn)
            cn.strategy.disable_autocommit(raw_conn)
        except Exception:
            cn.close()
            raise
        cn.in_transaction = True
        self.cn = cn
        self.state = TransactionState.OPEN
        logger.debug(f'Started transaction for connection {id(cn)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None,
                 traceback: Any | None) -> None:
        if self.cn is None or self.cn.closed:
            self.cn = None
            self.state = TransactionState.CLOSED
            return
        if exc_type is not None:
            self.rollback_only = True
        try:
            try:
                self._finish()
            finally:
                self._release()
        except Exception as exc:
            logger.error(f'Failed to close transaction: {exc}')
            raise TransactionCloseError(exc) from exc

    def _finish(self) -> None:
        cn = self.cn
        if self.rollback_only:
            logger.warning('Rolling back the current transaction')
            cn.rollback()
            self.state = TransactionState.ROLLED_BACK
        elif self.state is TransactionState.OPEN:
            cn.commit()
            self.state = TransactionState.COMMITTED
            logger.debug(f'Committed transaction for connection {id(cn)}')
        cn.strategy.set_transaction_mode(cn.driver_connection, self._mode)

    def _release(self) -> None:
        cn, self.cn = self.cn, None
        self.state = TransactionState.CLOSED
        cn.in_transaction = False
        cn.close()
        logger.debug(f'Transaction cleanup complete for connection {id(cn)}')

    def _require_open(self, operation: str) -> 'ConnectionWrapper':
        if self.cn is None or self.state is TransactionState.CLOSED:
            raise TransactionClosedError(operation)
        return self.cn

    @contextmanager
    def _connection(self, operation: str) -> Iterator['ConnectionWrapper']:
        yield self._require_open(operation)

    def _on_success(self, cn: 'ConnectionWrapper', write: bool) -> None:
        if write:
            self.state = TransactionState.OPEN

    def _on_failure(self, cn: 'ConnectionWrapper') -> None:
        self.rollback_only = True

    def commit(self) -> None:
        """Commit the work done so far. The scope stays usable.
        """
        cn = self._require_open('transaction - commit')
        try:
            cn.commit()
        except Exception as exc:
            self.rollback_only = True
            logger.error(f'Transaction commit failed: {exc}')
            raise OperationError('transaction - commit', exc) from exc
        self.state = TransactionState.COMMITTED
        logger.debug(f'Committed transaction for connection {id(cn)}')

    def rollback(self) -> None:
        """Discard the work done since the last commit. The scope stays usable.
        """
        cn = self._require_open('transaction - rollback')
        logger.warning('Rolling back the current transaction')
        cn.rollback()
        self.state = TransactionState.ROLLED_BACK
