"""
SQLite-specific strategy implementation.

Handles the sqlite3 driver's particulars:
- `qmark` parameter markers
- Transaction control through `isolation_level` (None means auto-commit)
- Generated keys through `cursor.lastrowid`
- ISO 8601 text storage for date, datetime and time values
"""
import datetime
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import dateutil.parser
from recorddao.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from recorddao.options import DaoOptions

logger = logging.getLogger(__name__)


def adapt_datetime(val: datetime.datetime) -> str:
    """Adapt datetime to an ISO 8601 timestamp string."""
    return val.isoformat(' ')


def adapt_date(val: datetime.date) -> str:
    """Adapt date to an ISO 8601 date string."""
    return val.isoformat()


def adapt_time(val: datetime.time) -> str:
    """Adapt time to an ISO 8601 time string."""
    return val.isoformat()


def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def convert_time(val: bytes) -> datetime.time:
    """Convert ISO 8601 time string to time object."""
    return datetime.time.fromisoformat(val.decode())


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    @property
    def paramstyle(self) -> str:
        return 'qmark'

    def get_engine_kwargs(self, options: 'DaoOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
                'check_same_thread': False,
            }
        }

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for SQLite.

        Adapters map Python date/time values to ISO strings; converters
        parse columns declared DATE, DATETIME, TIMESTAMP or TIME back.
        """
        sqlite3.register_adapter(datetime.datetime, adapt_datetime)
        sqlite3.register_adapter(datetime.date, adapt_date)
        sqlite3.register_adapter(datetime.time, adapt_time)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)
        sqlite3.register_converter('time', convert_time)

        raw_conn.execute('PRAGMA foreign_keys = ON')

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    def get_transaction_mode(self, raw_conn: Any) -> str | None:
        return raw_conn.isolation_level

    def set_transaction_mode(self, raw_conn: Any, mode: str | None) -> None:
        raw_conn.isolation_level = mode

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
