"""
Fixtures for SQLite-specific integration tests.
"""
import pytest
from recorddao import Dao

from tests.fixtures.entities import Event, Post, Tag, User


class UserDao(Dao[User]):
    pass


@pytest.fixture
def user_dao(sqlite_source):
    """User DAO over a file-backed SQLite database"""
    return UserDao(source=sqlite_source)


@pytest.fixture
def tag_dao(sqlite_source):
    return Dao(Tag, source=sqlite_source)


@pytest.fixture
def post_dao(sqlite_source):
    return Dao(Post, source=sqlite_source)


@pytest.fixture
def event_dao(sqlite_source):
    return Dao(Event, source=sqlite_source)
