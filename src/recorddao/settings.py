"""
Process-wide settings: default batch size and connection source.

Configure once at startup:

    import recorddao
    recorddao.configure(source=recorddao.connect(options), batch_size=1000)

DAOs created without an explicit source fall back to the configured one.
"""
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from recorddao.exceptions import ConfigurationError
from recorddao.options import DEFAULT_BATCH_SIZE, DaoOptions

if TYPE_CHECKING:
    from recorddao.connection import ConnectionSource

__all__ = [
    'settings',
    'configure',
    'set_batch_size',
    'set_connection_source',
    'get_batch_size',
    'get_connection_source',
    'reset',
]

logger = logging.getLogger(__name__)

_settings_lock = threading.RLock()


@dataclass
class Settings:
    batch_size: int = DEFAULT_BATCH_SIZE
    source: 'ConnectionSource | None' = None


settings = Settings()


def _validate_batch_size(batch_size: Any) -> int:
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        raise ConfigurationError(f'batch_size must be a positive integer, got {batch_size!r}')
    return batch_size


def set_batch_size(batch_size: int) -> None:
    """Set the number of records flushed per batch statement.
    """
    with _settings_lock:
        settings.batch_size = _validate_batch_size(batch_size)
    logger.debug(f'Batch size set to {batch_size}')


def set_connection_source(source: 'ConnectionSource | None') -> None:
    """Set the default connection source used by DAOs.
    """
    with _settings_lock:
        settings.source = source
    logger.debug(f'Connection source set to {source!r}')


def configure(source: 'ConnectionSource | DaoOptions | dict | None' = None,
              batch_size: int | None = None) -> None:
    """Configure process-wide defaults.

    `source` may be a ConnectionSource or anything `connect()` accepts;
    in the latter case the options' `batch_size` applies unless one is
    passed explicitly.
    """
    if source is not None and not hasattr(source, 'connect'):
        from recorddao.connection import connect
        source = connect(source)
        if batch_size is None:
            batch_size = source.options.batch_size
    with _settings_lock:
        if batch_size is not None:
            settings.batch_size = _validate_batch_size(batch_size)
        if source is not None:
            settings.source = source
    logger.debug(f'Configured recorddao: source={settings.source!r} batch_size={settings.batch_size}')


def get_batch_size() -> int:
    return settings.batch_size


def get_connection_source() -> 'ConnectionSource':
    """Return the configured connection source.

    Raises ConfigurationError when none has been set.
    """
    source = settings.source
    if source is None:
        raise ConfigurationError('No connection source configured. '
                                 'Pass source= to the DAO or call recorddao.configure(source=...)')
    return source


def reset() -> None:
    """Restore default settings."""
    with _settings_lock:
        settings.batch_size = DEFAULT_BATCH_SIZE
        settings.source = None
