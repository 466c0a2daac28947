import logging
import pathlib
import sys

import pytest
import recorddao
from testcontainers.postgres import PostgresContainer

from libb import Setting

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
sys.path.insert(0, str(HERE.parent))
import config

logger = logging.getLogger(__name__)

SCHEMA = [
    'drop table if exists posts',
    'drop table if exists tags',
    'drop table if exists users',
    """
    create table users (
        id serial primary key,
        user_name varchar(255) not null,
        email varchar(255) unique,
        status varchar(32),
        joined date,
        last_seen timestamp,
        avatar bytea,
        bio text
    )
    """,
    """
    create table tags (
        id serial primary key,
        label varchar(255)
    )
    """,
    """
    create table posts (
        id serial primary key,
        author integer references users (id),
        title text not null,
        meta jsonb
    )
    """,
]


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    Skips the dependent tests when no container runtime is available.
    """
    container = PostgresContainer(
        image='postgres:16',
        username=config.postgresql.username,
        password=config.postgresql.password,
        dbname=config.postgresql.database,
    )

    try:
        container.start()
    except Exception as e:
        pytest.skip(f'PostgreSQL container unavailable: {e}')

    Setting.unlock()
    config.postgresql.hostname = container.get_container_host_ip()
    config.postgresql.port = int(container.get_exposed_port(5432))
    Setting.lock()

    logger.info(f'PostgreSQL container started at '
                f'{config.postgresql.hostname}:{config.postgresql.port}')

    def finalizer():
        try:
            container.stop()
            logger.info('PostgreSQL container stopped')
        except Exception as e:
            logger.warning(f'Error stopping container: {e}')

    request.addfinalizer(finalizer)
    return container


@pytest.fixture
def psql_source(psql_docker):
    """
    Connection source with a freshly staged schema for each test.
    """
    source = recorddao.connect('postgresql', config=config)

    with source.connect() as cn:
        with cn.cursor() as cursor:
            for statement in SCHEMA:
                cursor.execute(statement)
        cn.commit()

    yield source
    source.dispose()
