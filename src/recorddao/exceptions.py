"""
Record DAO exception classes.
"""
import sqlite3

import psycopg


class DatabaseError(Exception):
    """Base class for all recorddao errors.
    """


class ConfigurationError(DatabaseError):
    """Missing or invalid process-wide configuration.
    """


class MappingError(DatabaseError):
    """Entity type cannot be mapped to a table.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class ArgumentMismatchError(ValidationError):
    """Placeholder count and supplied argument count disagree.
    """


class PrimaryKeyTypeError(ValidationError):
    """Primary key value does not match the declared key field type.
    """


class OperationError(DatabaseError):
    """Storage operation failure tagged with the operation name.

    The original exception is kept as `cause` and chained as `__cause__`.
    """

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        message = operation if cause is None else f'{operation}: {cause}'
        super().__init__(message)


class TransactionCloseError(OperationError):
    """Commit, rollback or auto-commit restoration failed on scope exit.
    """

    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__('transaction - close', cause)


class TransactionClosedError(OperationError):
    """Operation issued through a transaction scope that is already closed.
    """


IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    )
