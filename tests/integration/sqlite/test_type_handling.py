"""
Value marshalling round trips on SQLite.
"""
import datetime
import io

from tests.fixtures.entities import Status


def test_enum_stored_by_name(user_dao, make_user, fetch_rows):
    user = make_user(status=Status.SUSPENDED)
    user_dao.insert(user)
    assert fetch_rows('SELECT status FROM users WHERE id = ?', user.id) == [('SUSPENDED',)]
    assert user_dao.get_by_pk(user.id).status is Status.SUSPENDED


def test_date_and_timestamp(user_dao, make_user):
    joined = datetime.date(2024, 2, 29)
    last_seen = datetime.datetime(2024, 3, 1, 8, 15, 30, 125000)
    user = make_user(joined=joined, last_seen=last_seen)
    user_dao.insert(user)

    loaded = user_dao.get_by_pk(user.id)
    assert loaded.joined == joined
    assert type(loaded.joined) is datetime.date
    assert loaded.last_seen == last_seen


def test_date_stored_as_iso_text(user_dao, make_user, fetch_rows):
    user = make_user(joined=datetime.date(2024, 2, 29))
    user_dao.insert(user)
    rows = fetch_rows('SELECT CAST(joined AS TEXT) AS joined_text FROM users WHERE id = ?', user.id)
    assert rows == [('2024-02-29',)]


def test_blob_round_trip(user_dao, make_user):
    payload = bytes(range(256))
    user = make_user(avatar=payload)
    user_dao.insert(user)
    loaded = user_dao.get_by_pk(user.id)
    assert loaded.avatar == payload
    assert isinstance(loaded.avatar, bytes)


def test_streams_are_read(user_dao, make_user):
    user = make_user(avatar=io.BytesIO(b'\x89PNG'), bio=io.StringIO('a long biography'))
    user_dao.insert(user)
    loaded = user_dao.get_by_pk(user.id)
    assert loaded.avatar == b'\x89PNG'
    assert loaded.bio == 'a long biography'


def test_null_values(user_dao, make_user):
    user = make_user(email=None, status=None)
    user_dao.insert(user)
    loaded = user_dao.get_by_pk(user.id)
    assert loaded.email is None
    assert loaded.status is None
    assert loaded.joined is None


def test_select_by_date_parameter(user_dao, make_user):
    user_dao.insert(make_user(joined=datetime.date(2024, 1, 1)))
    user_dao.insert(make_user(joined=datetime.date(2024, 6, 1)))
    users = user_dao.select('SELECT * FROM users WHERE joined > ?', datetime.date(2024, 3, 1))
    assert [u.joined for u in users] == [datetime.date(2024, 6, 1)]
