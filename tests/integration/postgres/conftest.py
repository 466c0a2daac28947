"""
Fixtures for PostgreSQL-specific integration tests.
"""
import pytest
from recorddao import Dao

from tests.fixtures.entities import Article, User


@pytest.fixture
def user_dao(psql_source):
    return Dao(User, source=psql_source)


@pytest.fixture
def article_dao(psql_source):
    return Dao(Article, source=psql_source)
