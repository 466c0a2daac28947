"""
Data access objects for mapped entities.

`CrudOperations` implements the CRUD surface once; `Dao` runs every call on
a fresh connection from its source and commits it, `Transaction` runs every
call on the one connection it owns.

Examples
    @entity(table='users')
    class User:
        id: int | None = column(primary_key=True, default=None)
        name: str = ''

    class UserDao(Dao[User]):
        pass

    dao = UserDao(source=recorddao.connect(options))
    key = dao.insert(User(name='ann'))
    users = dao.select('SELECT * FROM users WHERE id IN (?)', [key, 7])

    with dao.transaction() as tx:
        tx.update(user)
        tx.delete_by_pk(7)
"""
import logging
import typing
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from functools import cached_property, partial
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from recorddao.batch import execute_batches, execute_in_batches
from recorddao.exceptions import MappingError, OperationError
from recorddao.exceptions import PrimaryKeyTypeError
from recorddao.mapping import Mapping, get_mapping
from recorddao.settings import get_batch_size, get_connection_source
from recorddao.sql import check_bound_count, expand_placeholders
from recorddao.sql import standardize_placeholders
from recorddao.utils.sql_generation import build_delete_in_sql, build_delete_sql
from recorddao.utils.sql_generation import build_insert_sql, build_select_all_sql
from recorddao.utils.sql_generation import build_select_by_pk_sql, build_update_sql
from recorddao.utils.sql_generation import insert_fields
from recorddao.values import from_storage, hydrate, to_storage

if TYPE_CHECKING:
    from recorddao.connection import ConnectionSource, ConnectionWrapper
    from recorddao.transaction import Transaction

__all__ = ['CrudOperations', 'Dao']

logger = logging.getLogger(__name__)

E = TypeVar('E')


def _bind_insert(mapping: Mapping, cn: Any, record: Any, include_pk: bool = False) -> list:
    """Parameter row of an INSERT, in column order."""
    return [to_storage(mapping, f, record, cn) for f in insert_fields(mapping, include_pk)]


def _bind_key(mapping: Mapping, cn: Any, record: Any) -> list:
    """Primary key parameter of a record."""
    if mapping.pk_field is None:
        raise MappingError(f'{mapping.entity.__qualname__} has no primary key field')
    return [to_storage(mapping, mapping.pk_field, record, cn)]


def _bind_update(mapping: Mapping, cn: Any, record: Any) -> list:
    """Parameter row of an UPDATE: non-key columns, then the key."""
    params = [to_storage(mapping, f, record, cn) for f in mapping.non_key_fields]
    return params + _bind_key(mapping, cn, record)


class CrudOperations(ABC, Generic[E]):
    """CRUD operations over one mapped entity type.

    Subclasses decide where connections come from and what happens to the
    connection after a call succeeds or fails.
    """

    mapping: Mapping

    @property
    @abstractmethod
    def source(self) -> 'ConnectionSource':
        ...

    @property
    @abstractmethod
    def batch_size(self) -> int:
        ...

    @property
    @abstractmethod
    def update_query(self) -> str:
        ...

    @abstractmethod
    @contextmanager
    def _connection(self, operation: str) -> Iterator['ConnectionWrapper']:
        """Yield the connection an operation runs on."""

    @abstractmethod
    def _on_success(self, cn: 'ConnectionWrapper', write: bool) -> None:
        ...

    @abstractmethod
    def _on_failure(self, cn: 'ConnectionWrapper') -> None:
        ...

    def _execute(self, operation: str, work: Callable[['ConnectionWrapper'], Any],
                 write: bool = True) -> Any:
        with self._connection(operation) as cn:
            try:
                result = work(cn)
                self._on_success(cn, write)
            except Exception as exc:
                self._on_failure(cn)
                if isinstance(exc, OperationError):
                    raise
                logger.error(f'{operation} failed on {self.mapping.table_name}: {exc}')
                raise OperationError(operation, exc) from exc
            return result

    @property
    def paramstyle(self) -> str:
        return self.source.strategy.paramstyle

    def _fetch(self, cn: 'ConnectionWrapper', sql: str, params: Iterable[Any]) -> list[E]:
        with cn.cursor() as cursor:
            cursor.execute(sql, params)
            rows = cursor.fetchall()
            labels = cursor.labels
        return [hydrate(self.mapping, labels, row) for row in rows]

    def select(self, sql: str, *args: Any) -> list[E]:
        """Run a query template and hydrate every returned row.

        `?` binds the next argument; a list or tuple argument expands into
        one marker per element; `\\?` is a literal question mark.
        Raises ArgumentMismatchError before execution when placeholders and
        arguments disagree.
        """
        sql, params = expand_placeholders(sql, args, self.paramstyle)
        check_bound_count(sql, params, self.paramstyle)
        return self._execute('select', lambda cn: self._fetch(cn, sql, params), write=False)

    def get_all(self) -> list[E]:
        """Every row of the mapped table."""
        return self._execute('select', lambda cn: self._fetch(
            cn, build_select_all_sql(self.mapping), ()), write=False)

    def get_by_pk(self, pk: Any) -> E | None:
        """The record with the given key, or None unless exactly one row matches."""
        def work(cn):
            sql = standardize_placeholders(build_select_by_pk_sql(self.mapping), cn.paramstyle)
            return self._fetch(cn, sql, (pk,))

        rows = self._execute('select', work, write=False)
        if len(rows) != 1:
            return None
        return rows[0]

    def insert(self, record: E) -> Any:
        """Insert one record and return its key.

        A pre-populated key is bound as an ordinary column. Otherwise the
        database generates the key, which is stored into the record. Entities
        without a key field insert every field as a plain column and return None.
        """
        mapping = self.mapping
        pk_value = getattr(record, mapping.pk_field) if mapping.pk_field else None
        include_pk = pk_value is not None

        def work(cn):
            sql = standardize_placeholders(build_insert_sql(mapping, include_pk), cn.paramstyle)
            params = _bind_insert(mapping, cn, record, include_pk)
            if include_pk or mapping.pk_field is None:
                with cn.cursor() as cursor:
                    cursor.execute(sql, params)
                return pk_value
            sql = cn.strategy.insert_returning_sql(sql, mapping.pk_column)
            with cn.cursor() as cursor:
                cursor.execute(sql, params)
                key = cn.strategy.fetch_generated_key(cursor, mapping.pk_column)
            return from_storage(mapping, mapping.pk_field, record, key)

        return self._execute('insert - single', work)

    def insert_many(self, records: Iterable[E]) -> int:
        """Insert records in batches. Keys are left to the database."""
        records = list(records)
        if not records:
            return 0

        def work(cn):
            sql = standardize_placeholders(build_insert_sql(self.mapping), cn.paramstyle)
            return execute_batches(cn, sql, records, partial(_bind_insert, self.mapping),
                                   self.batch_size, 'insert - batch')

        return self._execute('insert - batch', work)

    def update(self, record: E) -> int:
        """Update every non-key column of one record by its key."""
        def work(cn):
            sql = standardize_placeholders(self.update_query, cn.paramstyle)
            params = _bind_update(self.mapping, cn, record)
            with cn.cursor() as cursor:
                return cursor.execute(sql, params)

        return self._execute('update - single', work)

    def update_many(self, records: Iterable[E]) -> int:
        """Update records in batches."""
        records = list(records)
        if not records:
            return 0

        def work(cn):
            sql = standardize_placeholders(self.update_query, cn.paramstyle)
            return execute_batches(cn, sql, records, partial(_bind_update, self.mapping),
                                   self.batch_size, 'update - batch')

        return self._execute('update - batch', work)

    def delete(self, record: E | None) -> int:
        """Delete one record by its key. None deletes nothing."""
        if record is None:
            return 0

        def work(cn):
            sql = standardize_placeholders(build_delete_sql(self.mapping), cn.paramstyle)
            params = _bind_key(self.mapping, cn, record)
            with cn.cursor() as cursor:
                return cursor.execute(sql, params)

        return self._execute('delete - single', work)

    def delete_many(self, records: Iterable[E]) -> int:
        """Delete records by key with one `IN (...)` statement per batch."""
        records = list(records)
        if not records:
            return 0

        def work(cn):
            def build_sql(count):
                return standardize_placeholders(build_delete_in_sql(self.mapping, count),
                                                cn.paramstyle)
            return execute_in_batches(cn, build_sql, records, partial(_bind_key, self.mapping),
                                      self.batch_size, 'delete - list')

        return self._execute('delete - list', work)

    def delete_by_pk(self, pk: Any) -> int:
        """Delete the row with the given key.

        Raises PrimaryKeyTypeError, before any statement, when the key is
        None or not an instance of the declared key type.
        """
        expected = self.mapping.pk_type
        if pk is None or (expected is not None and not isinstance(pk, expected)):
            expected_name = expected.__name__ if expected is not None else 'a primary key value'
            raise PrimaryKeyTypeError(f'Unexpected primary key type. Expected: {expected_name} '
                                      f'but passed is: {type(pk).__name__}')

        def work(cn):
            sql = standardize_placeholders(build_delete_sql(self.mapping), cn.paramstyle)
            with cn.cursor() as cursor:
                return cursor.execute(sql, (pk,))

        return self._execute('delete - single', work)


def _generic_entity(cls: type) -> type | None:
    """Entity type bound through a `Dao[Entity]` base class."""
    for klass in cls.__mro__:
        for base in getattr(klass, '__orig_bases__', ()):
            origin = typing.get_origin(base)
            if isinstance(origin, type) and issubclass(origin, CrudOperations):
                args = typing.get_args(base)
                if args and isinstance(args[0], type):
                    return args[0]
    return None


class Dao(CrudOperations[E]):
    """Data access object for one entity type.

    Each call takes its own connection from the source, commits on success
    and rolls back on failure.

    Args:
        entity: Entity dataclass; defaults to the `entity` class attribute
            or the type parameter of a `Dao[Entity]` subclass
        source: ConnectionSource; defaults to the process-wide one
    """

    entity: type[E] | None = None

    def __init__(self, entity: type[E] | None = None,
                 source: 'ConnectionSource | None' = None) -> None:
        entity = entity or type(self).entity or _generic_entity(type(self))
        if entity is None:
            raise MappingError(f'{type(self).__name__} has no entity type')
        self.entity = entity
        self.mapping = get_mapping(entity)
        self._source = source

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.entity.__name__})'

    @property
    def source(self) -> 'ConnectionSource':
        if self._source is not None:
            return self._source
        return get_connection_source()

    @property
    def batch_size(self) -> int:
        return get_batch_size()

    @cached_property
    def update_query(self) -> str:
        """UPDATE statement for the entity, built on first use."""
        return build_update_sql(self.mapping)

    @contextmanager
    def _connection(self, operation: str) -> Iterator['ConnectionWrapper']:
        with self.source.connect() as cn:
            yield cn

    def _on_success(self, cn: 'ConnectionWrapper', write: bool) -> None:
        if not cn.in_transaction:
            cn.commit()

    def _on_failure(self, cn: 'ConnectionWrapper') -> None:
        if not cn.in_transaction:
            cn.rollback()

    def transaction(self) -> 'Transaction[E]':
        """Scope binding one connection across several operations.
        """
        from recorddao.transaction import Transaction
        return Transaction(self)
