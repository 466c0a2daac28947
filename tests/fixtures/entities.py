"""
Entity types shared by the unit and integration tests.

The SQLite schema for these entities lives in `tests.fixtures.sqlite`, the
PostgreSQL one in `tests.fixtures.postgres`.
"""
import datetime
import enum
from dataclasses import dataclass, field
from typing import ClassVar

import pytest
from psycopg.types.json import Jsonb
from recorddao import Converter, LobType, column, entity


class Status(enum.Enum):
    ACTIVE = 1
    SUSPENDED = 2


class UpperConverter(Converter):
    """Stores text upper-cased and reads it back lower-cased."""

    def store(self, connection, value):
        return None if value is None else value.upper()

    def retrieve(self, value):
        return None if value is None else value.lower()


@entity(table='users')
class User:
    id: int | None = column(primary_key=True, default=None)
    name: str = column('user_name', default='')
    email: str | None = None
    status: Status = Status.ACTIVE
    joined: datetime.date | None = None
    last_seen: datetime.datetime | None = None
    avatar: bytes | None = column(lob=LobType.BLOB, default=None)
    bio: str | None = column(lob=LobType.CLOB, default=None)

    kind: ClassVar[str] = 'user'


@entity(table='tags')
class Tag:
    id: int | None = column(primary_key=True, default=None)
    label: str | None = column(converter=UpperConverter(), default=None)


@entity(table='posts')
class Post:
    id: int | None = column(primary_key=True, default=None)
    author: int | None = None
    title: str = ''


@entity(table='posts')
class Article:
    """Post with the jsonb metadata column of the PostgreSQL schema."""
    id: int | None = column(primary_key=True, default=None)
    author: int | None = None
    title: str = ''
    meta: dict | None = column(store=lambda cn, value: None if value is None else Jsonb(value),
                               default=None)


@entity(table='events')
class Event:
    """Entity without a primary key field."""
    name: str = ''
    at: datetime.datetime | None = None


@dataclass
class Plain:
    id: int = 0
    values: list = field(default_factory=list)


@pytest.fixture
def make_user():
    """Factory for User records with distinct names."""
    counter = iter(range(1, 10_000))

    def make(**kwargs):
        n = next(counter)
        kwargs.setdefault('name', f'user{n}')
        kwargs.setdefault('email', f'user{n}@example.com')
        return User(**kwargs)
    return make
