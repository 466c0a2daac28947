"""
Connection source handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating a connection source from options
2. The `ConnectionSource` class handing out one pooled DB-API connection per request
3. The `ConnectionWrapper` class tracking calls and transaction state of one connection
4. Engine creation and management through a thread-safe registry

DAOs never hold connections: every operation takes one from its source with
`source.connect()` and releases it on exit, whatever the outcome.
"""
import atexit
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import fields
from typing import Any, Self

import sqlalchemy as sa
from recorddao.cursor import Cursor
from recorddao.options import DaoOptions
from recorddao.strategy import DatabaseStrategy, get_strategy
from recorddao.utils import get_dialect_name, get_raw_connection
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool, StaticPool

from libb import load_options

__all__ = [
    'ConnectionSource',
    'ConnectionWrapper',
    'connect',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DaoOptions,
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert DaoOptions to SQLAlchemy URL.
    """
    if options.drivername == 'sqlite':
        return url_creator(
            drivername='sqlite',
            database=options.database
        )

    elif options.drivername == 'postgresql':
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)

        return url_creator(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query
        )

    raise ValueError(f'Unsupported database type: {options.drivername}')


def _is_memory_database(options: DaoOptions) -> bool:
    return options.drivername == 'sqlite' and options.database in {':memory:', ''}


def get_engine_for_options(options: DaoOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    In-memory SQLite databases use a StaticPool so every checkout sees the
    same database.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)

        engine_kwargs: dict[str, Any] = {'echo': False}
        engine_kwargs.update(get_strategy(options.drivername).get_engine_kwargs(options))

        if _is_memory_database(options):
            engine_kwargs['poolclass'] = StaticPool
        elif not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['max_overflow'] = 10
            engine_kwargs['pool_pre_ping'] = True
            engine_kwargs['pool_reset_on_return'] = 'rollback'

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Wraps one pooled DB-API connection to track calls and execution time

    `in_transaction` is set while a transaction scope owns the connection;
    non-scoped operations commit their own work only when it is False.
    """

    def __init__(self, dbapi_connection: Any, dialect: str) -> None:
        self.dbapi_connection = dbapi_connection
        self._dialect = dialect
        self.calls = 0
        self.time = 0
        self.in_transaction = False
        self._closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self._dialect

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self._dialect)

    @property
    def paramstyle(self) -> str:
        return self.strategy.paramstyle

    @property
    def driver_connection(self) -> Any:
        """The driver's own connection object (sqlite3 or psycopg)."""
        return get_raw_connection(self.dbapi_connection)

    @property
    def closed(self) -> bool:
        """True once released, or when the driver reports the link closed."""
        if self._closed:
            return True
        return bool(getattr(self.driver_connection, 'closed', False))

    def cursor(self) -> Cursor:
        """Get a wrapped cursor for this connection
        """
        return Cursor(self.dbapi_connection.cursor(), self)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def commit(self) -> None:
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Release the connection back to its pool
        """
        if self._closed:
            return
        self._closed = True
        self.dbapi_connection.close()
        logger.debug(f'Connection released: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')


class ConnectionSource:
    """Supplies one live connection per request from a SQLAlchemy engine.
    """

    def __init__(self, engine: Engine, options: DaoOptions | None = None) -> None:
        self.engine = engine
        self.options = options
        self.dialect = get_dialect_name(engine)
        self.strategy = get_strategy(self.dialect)

    def __repr__(self) -> str:
        return f'ConnectionSource({self.engine.url!r})'

    def acquire(self) -> ConnectionWrapper:
        """Check out a configured connection. The caller must close it.
        """
        dbapi_connection = self.engine.raw_connection()
        try:
            self.strategy.configure_connection(get_raw_connection(dbapi_connection))
        except Exception:
            dbapi_connection.close()
            raise
        return ConnectionWrapper(dbapi_connection, self.dialect)

    @contextmanager
    def connect(self) -> Iterator[ConnectionWrapper]:
        """Context manager yielding a connection released on every exit path.
        """
        cn = self.acquire()
        try:
            yield cn
        finally:
            cn.close()

    def dispose(self) -> None:
        self.engine.dispose()


@load_options(cls=DaoOptions)
def connect(options: DaoOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionSource:
    """Create a connection source using SQLAlchemy for connection management

    Args:
        options: Can be:
                - DaoOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        ConnectionSource handing out one connection per operation
    """
    if isinstance(options, DaoOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DaoOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    engine = get_engine_for_options(options)
    return ConnectionSource(engine, options)
