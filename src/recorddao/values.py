"""
Value marshalling between entity fields and statement parameters.
"""
import dataclasses
import datetime
import enum
import io
import logging
from collections.abc import Sequence
from typing import Any

import dateutil.parser
from recorddao.converters import LobType
from recorddao.exceptions import MappingError
from recorddao.mapping import Mapping, get_mapping, is_entity

__all__ = [
    'bind_value',
    'to_storage',
    'from_storage',
    'new_record',
    'hydrate',
]

logger = logging.getLogger(__name__)


def bind_value(value: Any) -> Any:
    """Represent a value as a bound statement parameter.

    Checks are ordered and the first match wins: entity references bind as
    their primary key, date/time values keep their own precision, enums bind
    by name and streams are read to the end.
    """
    if is_entity(value):
        mapping = get_mapping(type(value))
        if mapping.pk_field is None:
            raise MappingError(f'{type(value).__qualname__} has no primary key field to reference')
        return bind_value(getattr(value, mapping.pk_field))

    # timestamp, date and time stay distinct; the dialect adapters bind each
    # at its own precision
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value

    if isinstance(value, enum.Enum):
        return value.name

    if isinstance(value, io.TextIOBase):
        return value.read()

    if isinstance(value, (io.BufferedIOBase, io.RawIOBase)):
        return value.read()

    return value


def bind_params(values: Sequence[Any]) -> tuple:
    """Bind every value of a parameter row."""
    return tuple(bind_value(v) for v in values)


def to_storage(mapping: Mapping, field: str, record: Any, connection: Any) -> Any:
    """Read a field value and apply its store converter.
    """
    value = getattr(record, field)
    binding = mapping.converters.get(field)
    if binding is not None:
        return binding.store(connection, value)
    return value


def _is_enum_type(ftype: type | None) -> bool:
    return ftype is not None and issubclass(ftype, enum.Enum)


def _enum_member(ftype: type[enum.Enum], value: Any) -> enum.Enum:
    """Look up an enum member by its stored symbolic name."""
    if isinstance(value, ftype):
        return value
    return ftype[value]


def _normalize(mapping: Mapping, field: str, value: Any) -> Any:
    """Coerce a raw column value toward the declared field type."""
    if value is None:
        return None

    ftype = mapping.field_types.get(field)

    if _is_enum_type(ftype):
        return _enum_member(ftype, value)

    if isinstance(value, str) and ftype is not None:
        if ftype is datetime.datetime:
            return dateutil.parser.isoparse(value)
        if ftype is datetime.date:
            return dateutil.parser.isoparse(value).date()
        if ftype is datetime.time:
            return datetime.time.fromisoformat(value)

    lob = mapping.lob_types.get(field)
    if lob is LobType.BLOB and isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    if lob is LobType.CLOB and isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode('utf-8')

    return value


def from_storage(mapping: Mapping, field: str, record: Any, raw: Any) -> Any:
    """Convert a raw column value, assign it into the record and return it.
    """
    binding = mapping.converters.get(field)
    if binding is not None:
        value = binding.retrieve(raw)
    else:
        value = _normalize(mapping, field, raw)
    setattr(record, field, value)
    return value


def new_record(mapping: Mapping) -> Any:
    """Create a blank record with dataclass defaults applied.

    `__init__` is bypassed so entities with required fields can be built
    from a partial column list.
    """
    record = object.__new__(mapping.entity)
    for f in dataclasses.fields(mapping.entity):
        if f.default is not dataclasses.MISSING:
            value = f.default
        elif f.default_factory is not dataclasses.MISSING:
            value = f.default_factory()
        else:
            value = None
        object.__setattr__(record, f.name, value)
    return record


def hydrate(mapping: Mapping, labels: Sequence[str], row: Sequence[Any]) -> Any:
    """Build one record from a result row.

    Columns without a mapped field are skipped. Enum fields are set from
    the stored member name directly, without their converter.
    """
    record = new_record(mapping)
    for label, raw in zip(labels, row):
        field = mapping.field_for(label)
        if field is None:
            logger.debug(f'Ignoring unmapped column {label} for {mapping.table_name}')
            continue
        ftype = mapping.field_types.get(field)
        if _is_enum_type(ftype):
            setattr(record, field, None if raw is None else _enum_member(ftype, raw))
            continue
        from_storage(mapping, field, record, raw)
    return record
