"""
Converter contract for field values travelling to and from storage.

A converter is a pair of transforms bound to a single entity field:

- `store(connection, value)` runs before the value is bound as a statement
  parameter. It receives the live connection of the running operation, so
  it can build driver-specific large objects if it needs to.
- `retrieve(value)` runs on the raw column value before it is assigned
  back into the record.

Converters can be given as `Converter` instances or as plain callables.
"""
import enum
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

__all__ = [
    'Converter',
    'NullConverter',
    'ConverterBinding',
    'LobType',
    'StoreFunc',
    'RetrieveFunc',
]

StoreFunc = Callable[[Any, Any], Any]
RetrieveFunc = Callable[[Any], Any]


class LobType(enum.Enum):
    """Large-object classification of a field."""
    BLOB = 'blob'
    CLOB = 'clob'


class Converter(ABC):
    """Bidirectional value transform for one field.
    """

    @abstractmethod
    def store(self, connection: Any, value: Any) -> Any:
        """Convert a field value into its storage representation.
        """

    @abstractmethod
    def retrieve(self, value: Any) -> Any:
        """Convert a raw column value into the field value.
        """


class NullConverter(Converter):
    """Identity converter."""

    def store(self, connection: Any, value: Any) -> Any:
        return value

    def retrieve(self, value: Any) -> Any:
        return value


_NULL = NullConverter()


def _store_func(spec: Converter | StoreFunc | None) -> StoreFunc:
    if spec is None:
        return _NULL.store
    if isinstance(spec, Converter):
        return spec.store
    if callable(spec):
        return spec
    raise TypeError(f'store converter must be a Converter or callable, not {type(spec).__name__}')


def _retrieve_func(spec: Converter | RetrieveFunc | None) -> RetrieveFunc:
    if spec is None:
        return _NULL.retrieve
    if isinstance(spec, Converter):
        return spec.retrieve
    if callable(spec):
        return spec
    raise TypeError(f'retrieve converter must be a Converter or callable, not {type(spec).__name__}')


@dataclass(frozen=True, slots=True)
class ConverterBinding:
    """Store/retrieve pair bound to a field of a mapping."""
    store: StoreFunc
    retrieve: RetrieveFunc

    @classmethod
    def from_spec(cls, converter: Converter | None = None,
                  store: Converter | StoreFunc | None = None,
                  retrieve: Converter | RetrieveFunc | None = None) -> 'ConverterBinding | None':
        """Normalize column converter arguments into a binding.

        `converter` supplies both directions; `store` and `retrieve` override
        one direction each. Returns None when nothing is bound.
        """
        if converter is None and store is None and retrieve is None:
            return None
        if converter is not None and not isinstance(converter, Converter):
            raise TypeError(f'converter must be a Converter instance, not {type(converter).__name__}')
        return cls(
            store=_store_func(store if store is not None else converter),
            retrieve=_retrieve_func(retrieve if retrieve is not None else converter),
        )
