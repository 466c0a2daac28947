"""
Unit tests for engine creation and the connection source.
"""
import sqlite3
from unittest.mock import MagicMock

import pytest
import recorddao
from recorddao.connection import ConnectionWrapper, create_url_from_options
from recorddao.connection import dispose_all_engines, get_engine_for_options
from recorddao.cursor import Cursor
from recorddao.options import DaoOptions
from recorddao.utils import get_raw_connection
from sqlalchemy.pool import NullPool, StaticPool


@pytest.fixture
def pg_options():
    return DaoOptions(drivername='postgresql', hostname='localhost', username='u',
                      password='p', database='db', port=5432, timeout=10)


class TestUrl:

    def test_postgres_url(self, pg_options):
        url = create_url_from_options(pg_options)
        assert url.drivername == 'postgresql+psycopg'
        assert url.host == 'localhost'
        assert url.port == 5432
        assert url.query['connect_timeout'] == '10'

    def test_sqlite_url(self):
        url = create_url_from_options(DaoOptions(drivername='sqlite', database='a.db'))
        assert url.drivername == 'sqlite'
        assert url.database == 'a.db'


class TestEngineRegistry:

    def test_engine_reused_for_same_options(self, pg_options):
        factory = MagicMock()
        first = get_engine_for_options(pg_options, engine_factory=factory)
        second = get_engine_for_options(pg_options, engine_factory=factory)
        assert first is second
        factory.assert_called_once()

    def test_null_pool_without_pooling(self, pg_options):
        factory = MagicMock()
        get_engine_for_options(pg_options, engine_factory=factory)
        assert factory.call_args.kwargs['poolclass'] is NullPool

    def test_pool_settings(self):
        options = DaoOptions(drivername='postgresql', hostname='h', username='u', password='p',
                             database='db', port=5432, use_pool=True, pool_max_connections=7)
        factory = MagicMock()
        get_engine_for_options(options, engine_factory=factory)
        kwargs = factory.call_args.kwargs
        assert 'poolclass' not in kwargs
        assert kwargs['pool_size'] == 7

    def test_memory_sqlite_uses_static_pool(self):
        factory = MagicMock()
        get_engine_for_options(DaoOptions(drivername='sqlite', database=':memory:'),
                               engine_factory=factory)
        kwargs = factory.call_args.kwargs
        assert kwargs['poolclass'] is StaticPool
        assert kwargs['connect_args']['check_same_thread'] is False

    def test_dispose_all_engines(self, pg_options):
        engine = MagicMock()
        get_engine_for_options(pg_options, engine_factory=lambda url, **kw: engine)
        dispose_all_engines()
        engine.dispose.assert_called_once()


class TestConnectionSource:

    def test_memory_database_shared_across_checkouts(self):
        source = recorddao.connect({'drivername': 'sqlite', 'database': ':memory:'})
        with source.connect() as cn:
            with cn.cursor() as cursor:
                cursor.execute('CREATE TABLE t (id INTEGER PRIMARY KEY)')
                cursor.execute('INSERT INTO t (id) VALUES (?)', (1,))
            cn.commit()
        with source.connect() as cn:
            with cn.cursor() as cursor:
                cursor.execute('SELECT id FROM t')
                assert cursor.fetchall() == [(1,)]

    def test_connection_released_on_error(self, sqlite_source):
        with pytest.raises(RuntimeError):
            with sqlite_source.connect() as cn:
                raise RuntimeError('boom')
        assert cn.closed

    def test_wrapper_properties(self, sqlite_source):
        with sqlite_source.connect() as cn:
            assert isinstance(cn, ConnectionWrapper)
            assert cn.dialect == 'sqlite'
            assert cn.paramstyle == 'qmark'
            assert cn.in_transaction is False
            with cn.cursor() as cursor:
                assert isinstance(cursor, Cursor)
                cursor.execute('SELECT 1 AS one')
                assert cursor.labels == ['one']
            assert cn.calls == 1

    def test_foreign_keys_enabled(self, sqlite_source):
        with sqlite_source.connect() as cn:
            with cn.cursor() as cursor:
                cursor.execute('PRAGMA foreign_keys')
                assert cursor.fetchone() == (1,)

    def test_driver_connection_unwrapped(self, sqlite_source):
        with sqlite_source.connect() as cn:
            assert isinstance(cn.driver_connection, sqlite3.Connection)


class TestRawConnection:

    def test_pool_proxy_unwrapped(self):
        proxy = MagicMock()
        assert get_raw_connection(proxy) is proxy.driver_connection

    def test_driver_connection_returned_as_is(self):
        raw = sqlite3.connect(':memory:')
        try:
            assert get_raw_connection(raw) is raw
        finally:
            raw.close()
