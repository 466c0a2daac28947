import pytest
from recorddao import ConfigurationError, DaoOptions, configure, set_batch_size
from recorddao import set_connection_source
from recorddao.options import DEFAULT_BATCH_SIZE
from recorddao.settings import get_batch_size, get_connection_source, settings


def test_init_defaults():
    """Test default initialization"""
    options = DaoOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.drivername == 'postgresql'
    assert options.batch_size == DEFAULT_BATCH_SIZE == 500

    assert options.use_pool is False
    assert options.pool_max_connections == 5
    assert options.pool_max_idle_time == 300
    assert options.pool_wait_timeout == 30


def test_pooling_options():
    """Test connection pooling options"""
    options = DaoOptions(
        drivername='postgresql',
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        use_pool=True,
        pool_max_connections=10,
        pool_max_idle_time=600,
        pool_wait_timeout=60
    )

    assert options.use_pool is True
    assert options.pool_max_connections == 10
    assert options.pool_max_idle_time == 600
    assert options.pool_wait_timeout == 60


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DaoOptions(
            drivername='invalid',
            hostname='testhost',
            username='testuser',
            password='testpass',
            database='testdb',
            port=1234,
        )

    with pytest.raises(ValueError):
        DaoOptions(drivername='postgresql', hostname='testhost')

    with pytest.raises(ValueError, match='batch_size'):
        DaoOptions(drivername='sqlite', database='test.db', batch_size=0)


def test_sqlite_options():
    """Test SQLite options validation"""
    options = DaoOptions(
        drivername='sqlite',
        database='test.db'
    )
    assert options.drivername == 'sqlite'
    assert options.database == 'test.db'

    with pytest.raises(ValueError):
        DaoOptions(drivername='sqlite')


class TestSettings:

    def test_defaults(self):
        assert get_batch_size() == 500
        assert settings.source is None

    def test_set_batch_size(self):
        set_batch_size(25)
        assert get_batch_size() == 25

    @pytest.mark.parametrize('value', [0, -1, 2.5, '10', True])
    def test_invalid_batch_size(self, value):
        with pytest.raises(ConfigurationError):
            set_batch_size(value)
        assert get_batch_size() == 500

    def test_unset_source(self):
        with pytest.raises(ConfigurationError, match='No connection source'):
            get_connection_source()

    def test_set_connection_source(self, mock_source):
        source, _ = mock_source()
        set_connection_source(source)
        assert get_connection_source() is source

    def test_configure_from_options(self, tmp_path):
        configure(DaoOptions(drivername='sqlite', database=str(tmp_path / 'x.db'), batch_size=50))
        assert get_batch_size() == 50
        assert get_connection_source().dialect == 'sqlite'

    def test_configure_explicit_batch_size_wins(self, tmp_path):
        configure({'drivername': 'sqlite', 'database': str(tmp_path / 'x.db'), 'batch_size': 50},
                  batch_size=10)
        assert get_batch_size() == 10


if __name__ == '__main__':
    __import__('pytest').main([__file__])
