"""
Base strategy interface for dialect-specific behavior.

The engine itself speaks standard parameterized SQL. A strategy only
supplies what the DB-API leaves to each driver: the parameter marker
style, connection setup, auto-commit switching and how a generated
primary key is read back after an INSERT.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from recorddao.options import DaoOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier."""

    @property
    @abstractmethod
    def paramstyle(self) -> str:
        """Return the DB-API paramstyle of the driver ('qmark' or 'format')."""

    def get_engine_kwargs(self, options: 'DaoOptions') -> dict[str, Any]:
        """Return extra SQLAlchemy create_engine kwargs."""
        return {}

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure a freshly checked-out driver connection.
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode.
        """

    @abstractmethod
    def get_transaction_mode(self, raw_conn: Any) -> Any:
        """Return the driver's raw transaction-mode setting, for restoring later.
        """

    @abstractmethod
    def set_transaction_mode(self, raw_conn: Any, mode: Any) -> None:
        """Restore a setting returned by `get_transaction_mode`.
        """

    def insert_returning_sql(self, sql: str, pk_column: str) -> str:
        """Adapt a single-row INSERT so the generated key can be read back.

        The default relies on `cursor.lastrowid` and leaves the SQL as is.
        """
        return sql

    def fetch_generated_key(self, cursor: Any, pk_column: str) -> Any:
        """Read the generated primary key after an INSERT.
        """
        return cursor.lastrowid

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DaoOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')
