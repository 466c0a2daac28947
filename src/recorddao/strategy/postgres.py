"""
PostgreSQL-specific strategy implementation.

Handles the psycopg driver's particulars:
- `format` (%s) parameter markers
- Transaction control through the connection's `autocommit` attribute
- Generated keys through `INSERT ... RETURNING`
"""
import logging
from typing import Any

from recorddao.strategy.base import DatabaseStrategy, register_strategy

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    @property
    def paramstyle(self) -> str:
        return 'format'

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    def get_transaction_mode(self, raw_conn: Any) -> bool:
        return raw_conn.autocommit

    def set_transaction_mode(self, raw_conn: Any, mode: bool) -> None:
        raw_conn.autocommit = mode

    def insert_returning_sql(self, sql: str, pk_column: str) -> str:
        return f'{sql} RETURNING {pk_column}'

    def fetch_generated_key(self, cursor: Any, pk_column: str) -> Any:
        row = cursor.fetchone()
        if row is None:
            return None
        return row[0]

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']
