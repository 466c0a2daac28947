"""
DAO operations against PostgreSQL (psycopg, `format` markers).
"""
import datetime

import pytest
from recorddao import IntegrityError, OperationError, set_batch_size

from tests.fixtures.entities import Article, Status, User


def test_generated_key_returning(user_dao):
    user = User(name='ann', email='ann@example.com')
    key = user_dao.insert(user)
    assert key == user.id
    assert user_dao.get_by_pk(key) == user


def test_value_types_round_trip(user_dao):
    user = User(name='bob', email='bob@example.com', status=Status.SUSPENDED,
                joined=datetime.date(2024, 2, 29),
                last_seen=datetime.datetime(2024, 3, 1, 8, 15, 30),
                avatar=b'\x00\x01\x02', bio='text')
    user_dao.insert(user)
    loaded = user_dao.get_by_pk(user.id)
    assert loaded == user
    assert isinstance(loaded.avatar, bytes)


def test_in_list_and_percent_literal(user_dao):
    user_dao.insert_many([User(name=f'u{i}', email=f'u{i}@example.com') for i in range(4)])
    users = user_dao.select("SELECT * FROM users WHERE email LIKE '%@example.com' AND user_name IN (?)",
                            ['u1', 'u2'])
    assert sorted(u.name for u in users) == ['u1', 'u2']


def test_escaped_question_mark_operator(user_dao, article_dao):
    author = User(name='ann', email='ann@example.com')
    user_dao.insert(author)
    article_dao.insert(Article(author=author.id, title='one', meta={'draft': True}))
    article_dao.insert(Article(author=author.id, title='two', meta={'final': True}))

    articles = article_dao.select(r'SELECT * FROM posts WHERE meta \? ?', 'draft')
    assert [a.title for a in articles] == ['one']
    assert articles[0].meta == {'draft': True}


def test_batches_and_transaction(user_dao):
    set_batch_size(2)
    users = [User(name=f'u{i}', email=f'u{i}@example.com') for i in range(5)]
    with user_dao.transaction() as tx:
        assert tx.insert_many(users) == 5
    assert len(user_dao.get_all()) == 5


def test_transaction_rollback(user_dao):
    first = User(name='a', email='dup@example.com')
    with user_dao.transaction() as tx:
        tx.insert(first)
        with pytest.raises(OperationError) as exc_info:
            tx.insert(User(name='b', email='dup@example.com'))
        assert isinstance(exc_info.value.cause, IntegrityError)
    assert user_dao.get_all() == []
