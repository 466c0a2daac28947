"""
Statement generation from entity mappings.

Statements are built with `?` markers in mapping field order;
`standardize_placeholders` converts them to the driver's marker style
before execution.
"""
import logging

from recorddao.exceptions import MappingError
from recorddao.mapping import Mapping
from recorddao.sql import make_placeholders

logger = logging.getLogger(__name__)


def insert_fields(mapping: Mapping, include_pk: bool = False) -> tuple[str, ...]:
    """Fields bound by an INSERT, in declaration order.
    """
    if include_pk:
        return mapping.fields
    return mapping.non_key_fields


def build_insert_sql(mapping: Mapping, include_pk: bool = False) -> str:
    """Generate an INSERT statement.

    Args:
        mapping: Entity mapping
        include_pk: Bind the primary key column as an ordinary value instead
            of leaving it to the database to generate

    Returns
        SQL query string with placeholders
    """
    fields = insert_fields(mapping, include_pk)
    columns = ','.join(mapping.column(f) for f in fields)
    placeholders = make_placeholders(len(fields))
    return f'INSERT INTO {mapping.table_name} ({columns}) VALUES ({placeholders})'


def build_update_sql(mapping: Mapping) -> str:
    """Generate an UPDATE statement setting every non-key column.

    The key is bound last, in the WHERE clause.
    """
    if mapping.pk_field is None:
        raise MappingError(f'{mapping.entity.__qualname__} has no primary key field to update by')
    if not mapping.non_key_fields:
        raise MappingError(f'{mapping.entity.__qualname__} has no columns to update besides its key')
    datacols = ','.join(f'{mapping.column(f)}=?' for f in mapping.non_key_fields)
    return f'UPDATE {mapping.table_name} SET {datacols} WHERE {mapping.pk_column}=?'


def build_delete_sql(mapping: Mapping) -> str:
    """Generate a DELETE statement matching one primary key value.
    """
    return f'DELETE FROM {mapping.table_name} WHERE {mapping.pk_column}=?'


def build_delete_in_sql(mapping: Mapping, count: int) -> str:
    """Generate a DELETE statement matching `count` primary key values.
    """
    return f'DELETE FROM {mapping.table_name} WHERE {mapping.pk_column} IN ({make_placeholders(count)})'


def build_select_all_sql(mapping: Mapping) -> str:
    """Generate a SELECT of every row of the table.
    """
    return f'SELECT * FROM {mapping.table_name}'


def build_select_by_pk_sql(mapping: Mapping) -> str:
    """Generate a SELECT of the row matching one primary key value.
    """
    return f'SELECT * FROM {mapping.table_name} WHERE {mapping.pk_column}=?'
