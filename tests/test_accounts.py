"""User, password and session store tests."""

from datetime import timedelta

import pytest

from src.accounts import (
    DuplicateUserError,
    SessionStore,
    UserRepository,
    hash_password,
    verify_password,
)


@pytest.fixture
def users(tmp_path):
    return UserRepository(db_path=tmp_path / "accounts.db")


@pytest.fixture
def sessions(tmp_path):
    return SessionStore(db_path=tmp_path / "accounts.db", max_age_seconds=3600)


def test_password_hash_roundtrip():
    encoded = hash_password("s3cret-pass", iterations=1000)

    assert encoded.startswith("pbkdf2_sha256$1000$")
    assert verify_password("s3cret-pass", encoded)
    assert not verify_password("wrong", encoded)
    assert not verify_password("", encoded)


def test_password_hashes_are_salted():
    assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)


def test_verify_rejects_garbage_hash():
    assert not verify_password("anything", "not-a-hash")
    assert not verify_password("anything", "md5$1$abc$def")


def test_empty_password_not_hashed():
    with pytest.raises(ValueError):
        hash_password("")


def test_create_and_find_user(users):
    user = users.create("alice", "Alice@Example.com", "password1")

    assert user.id is not None
    assert user.email == "alice@example.com"
    assert verify_password("password1", user.password_hash)
    assert users.find_by_username("alice") == user
    assert users.find_by_id(user.id) == user
    assert users.find_by_username("bob") is None


def test_duplicate_username_or_email(users):
    users.create("alice", "alice@example.com", "password1")

    assert users.exists("alice", "other@example.com")
    assert users.exists("someone", "alice@example.com")
    assert not users.exists("bob", "bob@example.com")
    with pytest.raises(DuplicateUserError):
        users.create("alice", "new@example.com", "password2")
    with pytest.raises(DuplicateUserError):
        users.create("alice2", "alice@example.com", "password2")


def test_session_lifecycle(sessions, now):
    sid = sessions.create({"user": {"id": 1, "username": "alice"}}, now)

    assert sessions.load(sid, now) == {"user": {"id": 1, "username": "alice"}}

    sessions.save(sid, {"user": {"id": 1, "username": "alice"}, "_flash": {"success": ["hi"]}}, now)
    assert sessions.load(sid, now)["_flash"] == {"success": ["hi"]}

    sessions.delete(sid)
    assert sessions.load(sid, now) is None


def test_expired_session_is_not_loaded(sessions, now):
    sid = sessions.create({"user": {"id": 1}}, now)

    assert sessions.load(sid, now + timedelta(minutes=59)) is not None
    assert sessions.load(sid, now + timedelta(hours=2)) is None
    # expired rows are removed on access
    assert sessions.load(sid, now) is None


def test_save_slides_expiry(sessions, now):
    sid = sessions.create({}, now)
    sessions.save(sid, {"seen": True}, now + timedelta(minutes=50))
    assert sessions.load(sid, now + timedelta(minutes=90)) == {"seen": True}


def test_purge_expired(sessions, now):
    old = sessions.create({}, now - timedelta(hours=5))
    fresh = sessions.create({}, now)

    assert sessions.purge_expired(now) == 1
    assert sessions.load(old, now) is None
    assert sessions.load(fresh, now) == {}
