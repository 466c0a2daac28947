"""
Lightweight record-to-table mapping for dataclasses.
"""
from recorddao.connection import ConnectionSource, ConnectionWrapper, connect
from recorddao.connection import dispose_all_engines
from recorddao.converters import Converter, ConverterBinding, LobType
from recorddao.converters import NullConverter
from recorddao.dao import Dao
from recorddao.exceptions import ArgumentMismatchError, ConfigurationError
from recorddao.exceptions import DatabaseError, IntegrityError, MappingError
from recorddao.exceptions import OperationalError, OperationError
from recorddao.exceptions import PrimaryKeyTypeError, ProgrammingError
from recorddao.exceptions import TransactionCloseError, TransactionClosedError
from recorddao.exceptions import ValidationError
from recorddao.mapping import Mapping, column, entity, get_mapping
from recorddao.options import DaoOptions
from recorddao.settings import configure, set_batch_size, set_connection_source
from recorddao.sql import expand_placeholders
from recorddao.transaction import Transaction, TransactionState

__version__ = '0.1.0'

__all__ = [
    # Connection
    'connect',
    'ConnectionSource',
    'ConnectionWrapper',
    'dispose_all_engines',
    'DaoOptions',
    # Configuration
    'configure',
    'set_batch_size',
    'set_connection_source',
    # Mapping
    'entity',
    'column',
    'get_mapping',
    'Mapping',
    'Converter',
    'ConverterBinding',
    'NullConverter',
    'LobType',
    # Access
    'Dao',
    'Transaction',
    'TransactionState',
    'expand_placeholders',
    # Exceptions
    'DatabaseError',
    'ConfigurationError',
    'MappingError',
    'ValidationError',
    'ArgumentMismatchError',
    'PrimaryKeyTypeError',
    'OperationError',
    'TransactionCloseError',
    'TransactionClosedError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
]
