from datetime import datetime, timedelta, timezone

import pytest

from disk_backend.errors import ConflictError
from disk_backend.services.accounts import Account, AccountStore, DuplicateKeyError


def _account(username: str) -> Account:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return Account(
        username=username,
        password_hash="$argon2id$placeholder",
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(days=3),
        banners=("welcome",),
    )


@pytest.fixture
def store(database) -> AccountStore:
    return AccountStore(database)


def test_insert_and_find(store):
    created = store.insert(_account("alice"))
    found = store.find_by_key("alice")

    assert created.id is not None
    assert found == created
    assert found.banners == ("welcome",)
    assert found.expires_at.tzinfo is not None


def test_find_missing_returns_none(store):
    assert store.find_by_key("ghost") is None


def test_insert_duplicate_key(store):
    store.insert(_account("alice"))

    with pytest.raises(DuplicateKeyError) as excinfo:
        store.insert(_account("alice"))
    assert isinstance(excinfo.value, ConflictError)


def test_update_by_key(store):
    created = store.insert(_account("alice"))
    updated = store.update_by_key("alice", {"name": "Alice", "balance": 10})

    assert updated.name == "Alice"
    assert updated.balance == 10
    assert updated.updated_at >= created.updated_at


def test_update_missing_returns_none(store):
    assert store.update_by_key("ghost", {"name": "x"}) is None


def test_identity_key_is_immutable(store):
    store.insert(_account("alice"))

    with pytest.raises(ValueError):
        store.update_by_key("alice", {"username": "mallory"})
    with pytest.raises(ValueError):
        store.update_by_key("alice", {"no_such_field": 1})


def test_repr_hides_password_hash(store):
    created = store.insert(_account("alice"))

    assert "argon2" not in repr(created)
    assert "password_hash" not in created.public_view()
