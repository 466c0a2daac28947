from dataclasses import dataclass

from recorddao.strategy import get_available_dialects, get_strategy_class
from recorddao.strategy import is_supported_dialect

from libb import ConfigOptions

__all__ = ['DaoOptions', 'DEFAULT_BATCH_SIZE']

DEFAULT_BATCH_SIZE = 500


@dataclass
class DaoOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    Batch options:
    - batch_size: Records flushed per executemany call (default: 500)
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if not isinstance(self.batch_size, int) or self.batch_size <= 0:
            raise ValueError(f'batch_size must be a positive integer, got {self.batch_size!r}')
