from argon2 import PasswordHasher as Argon2Hasher
import pytest

from disk_backend.errors import InternalError
from disk_backend.services.passwords import MalformedHashError, PasswordHasher


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher()


def test_hash_verifies_original_password(hasher):
    digest = hasher.hash("secret1")

    assert digest.startswith("$argon2")
    assert "secret1" not in digest
    assert hasher.verify(digest, "secret1") is True


def test_wrong_password_is_a_plain_mismatch(hasher):
    digest = hasher.hash("secret1")

    assert hasher.verify(digest, "secret2") is False
    assert hasher.verify(digest, "") is False


def test_hashes_are_salted(hasher):
    assert hasher.hash("secret1") != hasher.hash("secret1")


def test_malformed_digest_is_an_internal_error(hasher):
    with pytest.raises(MalformedHashError) as excinfo:
        hasher.verify("not-a-digest", "secret1")

    assert isinstance(excinfo.value, InternalError)


def test_weak_parameters_need_rehash(hasher):
    weak = Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1)
    digest = weak.hash("secret1")

    assert hasher.needs_rehash(digest) is True
    assert hasher.needs_rehash(hasher.hash("secret1")) is False
    assert hasher.verify(digest, "secret1") is True
