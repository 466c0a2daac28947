"""
Record-to-table mapping derivation.

Entities are plain mutable dataclasses. Column metadata is declared per field
with `column()` and the table name with the `entity()` class decorator (or a
`__tablename__` class attribute):

    @entity(table='users')
    class User:
        id: int | None = column(primary_key=True, default=None)
        name: str = column('user_name', default='')
        avatar: bytes | None = column(lob=LobType.BLOB, default=None)

The derived `Mapping` is computed once per entity type, kept in a
process-wide registry and never mutated afterwards.
"""
import dataclasses
import logging
import threading
import types
import typing
from dataclasses import dataclass
from functools import cached_property
from types import MappingProxyType
from typing import Any

from recorddao.converters import Converter, ConverterBinding, LobType
from recorddao.converters import RetrieveFunc, StoreFunc
from recorddao.exceptions import MappingError

__all__ = [
    'ColumnSpec',
    'Mapping',
    'column',
    'entity',
    'get_mapping',
    'is_entity',
]

logger = logging.getLogger(__name__)

COLUMN_METADATA_KEY = 'recorddao'

_registry: dict[type, 'Mapping'] = {}
_registry_lock = threading.RLock()


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """Declarative metadata attached to one entity field."""
    name: str | None = None
    primary_key: bool = False
    lob: LobType | None = None
    binding: ConverterBinding | None = None


def column(name: str | None = None, *, primary_key: bool = False,
           lob: LobType | str | None = None,
           converter: Converter | None = None,
           store: Converter | StoreFunc | None = None,
           retrieve: Converter | RetrieveFunc | None = None,
           **kwargs: Any) -> Any:
    """Declare a mapped dataclass field.

    Args:
        name: Column name override (defaults to the field name)
        primary_key: Marks the primary key field
        lob: Large-object classification (`LobType` or 'blob'/'clob')
        converter: Converter used for both directions
        store: Store-direction converter or callable(connection, value)
        retrieve: Retrieve-direction converter or callable(value)
        **kwargs: Passed through to `dataclasses.field`
    """
    if lob is not None and not isinstance(lob, LobType):
        lob = LobType(str(lob).lower())
    spec = ColumnSpec(
        name=name,
        primary_key=primary_key,
        lob=lob,
        binding=ConverterBinding.from_spec(converter, store, retrieve),
    )
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[COLUMN_METADATA_KEY] = spec
    return dataclasses.field(metadata=metadata, **kwargs)


def entity(cls: type | None = None, *, table: str | None = None):
    """Class decorator registering an entity type.

    Applies `@dataclass` when the class is not one already, records the
    table name override and derives the mapping immediately.

    Supports both @entity and @entity(table='name') syntax.
    """
    def decorator(klass: type) -> type:
        if not dataclasses.is_dataclass(klass):
            klass = dataclass(klass)
        if table is not None:
            klass.__tablename__ = table
        get_mapping(klass)
        return klass

    if cls is None:
        return decorator
    return decorator(cls)


def _unwrap_optional(hint: Any) -> Any:
    """Strip `None` from `X | None` and `Optional[X]` annotations."""
    if typing.get_origin(hint) in {typing.Union, types.UnionType}:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _resolve_type(hint: Any) -> type | None:
    """Return a class usable with isinstance, or None."""
    hint = _unwrap_optional(hint)
    if isinstance(hint, type):
        return hint
    origin = typing.get_origin(hint)
    if isinstance(origin, type):
        return origin
    return None


@dataclass(frozen=True, eq=False)
class Mapping:
    """Derived table mapping of an entity type.

    `field_to_column` preserves declaration order, which fixes the order of
    positional placeholders in every generated statement.
    """
    entity: type
    table_name: str
    pk_column: str
    pk_field: str | None
    field_to_column: MappingProxyType
    column_to_field: MappingProxyType
    converters: MappingProxyType
    field_types: MappingProxyType
    lob_types: MappingProxyType

    @property
    def fields(self) -> tuple[str, ...]:
        """Mapped field names in declaration order."""
        return tuple(self.field_to_column)

    @property
    def non_key_fields(self) -> tuple[str, ...]:
        """Mapped fields excluding the primary key field."""
        return tuple(f for f in self.field_to_column if f != self.pk_field)

    @property
    def pk_type(self) -> type | None:
        """Declared type of the primary key field, when known."""
        if self.pk_field is None:
            return None
        return self.field_types.get(self.pk_field)

    def column(self, field: str) -> str:
        """Column name of a mapped field."""
        return self.field_to_column[field]

    @cached_property
    def _folded_columns(self) -> dict[str, str]:
        return {col.lower(): f for col, f in self.column_to_field.items()}

    def field_for(self, column: str) -> str | None:
        """Field mapped to a result column label.

        Falls back to a case-insensitive match since servers may fold
        unquoted identifiers.
        """
        field = self.column_to_field.get(column)
        if field is not None:
            return field
        return self._folded_columns.get(column.lower())

    def __repr__(self) -> str:
        return f'Mapping({self.entity.__name__} -> {self.table_name}, pk={self.pk_column})'


def _derive_mapping(cls: type) -> Mapping:
    """Inspect an entity dataclass and build its mapping."""
    if not isinstance(cls, type) or not dataclasses.is_dataclass(cls):
        raise MappingError(f'{cls!r} is not a dataclass entity type')

    if cls.__dataclass_params__.frozen:
        raise MappingError(f'{cls.__qualname__} is frozen; hydration needs assignable fields')

    try:
        hints = typing.get_type_hints(cls)
    except Exception as exc:
        raise MappingError(f'Cannot resolve type hints of {cls.__qualname__}: {exc}') from exc

    table_name = cls.__dict__.get('__tablename__') or cls.__name__

    field_to_column: dict[str, str] = {}
    column_to_field: dict[str, str] = {}
    converters: dict[str, ConverterBinding] = {}
    field_types: dict[str, type] = {}
    lob_types: dict[str, LobType] = {}
    pk_field = None
    pk_column = None

    for f in dataclasses.fields(cls):
        spec = f.metadata.get(COLUMN_METADATA_KEY) or ColumnSpec()
        column_name = spec.name or f.name

        if column_name in column_to_field:
            raise MappingError(
                f'{cls.__qualname__}: fields {column_to_field[column_name]!r} and '
                f'{f.name!r} both map to column {column_name!r}')

        field_to_column[f.name] = column_name
        column_to_field[column_name] = f.name

        resolved = _resolve_type(hints.get(f.name, f.type))
        if resolved is not None:
            field_types[f.name] = resolved
        if spec.binding is not None:
            converters[f.name] = spec.binding
        if spec.lob is not None:
            lob_types[f.name] = spec.lob

        if spec.primary_key:
            if pk_field is not None:
                raise MappingError(
                    f'{cls.__qualname__}: more than one primary key field ({pk_field!r}, {f.name!r})')
            pk_field = f.name
            pk_column = column_name

    if pk_field is None:
        pk_column = f'{table_name}_id'
        logger.debug(f'No primary key field on {cls.__qualname__}, using default column {pk_column}')

    return Mapping(
        entity=cls,
        table_name=table_name,
        pk_column=pk_column,
        pk_field=pk_field,
        field_to_column=MappingProxyType(field_to_column),
        column_to_field=MappingProxyType(column_to_field),
        converters=MappingProxyType(converters),
        field_types=MappingProxyType(field_types),
        lob_types=MappingProxyType(lob_types),
    )


def get_mapping(cls: type) -> Mapping:
    """Return the mapping of an entity type, deriving it on first use.
    """
    mapping = _registry.get(cls)
    if mapping is not None:
        return mapping

    with _registry_lock:
        mapping = _registry.get(cls)
        if mapping is None:
            mapping = _derive_mapping(cls)
            _registry[cls] = mapping
            logger.debug(f'Derived {mapping!r}')
        return mapping


def is_entity(value: Any) -> bool:
    """Check if a value is an instance of a mapped entity type.

    Registered types qualify, as do dataclasses declaring a primary key
    field with `column(primary_key=True)`.
    """
    cls = type(value)
    if cls in _registry:
        return True
    if not dataclasses.is_dataclass(cls):
        return False
    return any(getattr(f.metadata.get(COLUMN_METADATA_KEY), 'primary_key', False)
               for f in dataclasses.fields(cls))
