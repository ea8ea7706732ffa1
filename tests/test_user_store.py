"""Unit tests for auth/store.py -- UserStore queries and writes.

Covers:
- create_user() assigns ids and timestamps; duplicate email raises IntegrityError
- get_by_email() / get_by_id() / get_by_oauth() lookups and misses
- link_oauth() attaches a provider identity to an existing row
- ping() reports a reachable database
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore


@pytest.fixture
def store():
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


def test_create_and_fetch_by_email(store):
    uid = store.create_user(User(email="alice@example.com", hashed_password="$2b$04$hash"))

    user = store.get_by_email("alice@example.com")
    assert user is not None
    assert user.id == uid
    assert user.hashed_password == "$2b$04$hash"
    assert user.oauth_provider is None
    assert user.created_at


def test_get_by_id(store):
    uid = store.create_user(User(email="bob@example.com"))
    user = store.get_by_id(uid)
    assert user.email == "bob@example.com"
    assert store.get_by_id(uid + 100) is None


def test_missing_email_returns_none(store):
    assert store.get_by_email("nobody@example.com") is None


def test_duplicate_email_raises_integrity_error(store):
    store.create_user(User(email="carol@example.com", hashed_password="x"))
    with pytest.raises(IntegrityError):
        store.create_user(User(email="carol@example.com", hashed_password="y"))


def test_oauth_only_user_has_no_password(store):
    uid = store.create_user(User(email="dave@example.com", oauth_provider="google", oauth_subject="sub-1"))
    user = store.get_by_id(uid)
    assert user.hashed_password is None
    assert not user.has_password


def test_get_by_oauth(store):
    uid = store.create_user(User(email="erin@example.com", oauth_provider="google", oauth_subject="sub-2"))
    assert store.get_by_oauth("google", "sub-2").id == uid
    assert store.get_by_oauth("google", "sub-unknown") is None


def test_link_oauth(store):
    uid = store.create_user(User(email="frank@example.com", hashed_password="x"))
    assert store.get_by_oauth("google", "sub-3") is None

    store.link_oauth(uid, "google", "sub-3")

    linked = store.get_by_oauth("google", "sub-3")
    assert linked.id == uid
    # Linking keeps the local password usable.
    assert linked.hashed_password == "x"


def test_ping(store):
    assert store.ping() is True
