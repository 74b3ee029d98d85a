from dataclasses import replace
from datetime import timedelta

import pytest

from disk_backend.container import build_services
from disk_backend.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from disk_backend.services.passwords import MalformedHashError, PasswordHasher


def test_register_then_duplicate_conflicts(services):
    assert services.credentials.register("alice", "secret1") == {
        "message": "Registration successful"
    }

    with pytest.raises(ConflictError):
        services.credentials.register("alice", "other1")


def test_registered_account_defaults(services, clock):
    services.credentials.register("alice", "secret1")
    account = services.accounts.find_by_key("alice")

    assert account.password_hash != "secret1"
    assert account.avatar == "http://files.test/imgs/avatar.jpg"
    assert account.role == "member"
    assert account.level == 1
    assert account.balance == 0
    assert len(account.code) == 6
    assert account.expires_at == clock() + timedelta(days=3)


def test_login_rejects_wrong_password_and_unknown_user(services):
    services.credentials.register("alice", "secret1")

    with pytest.raises(UnauthorizedError) as wrong:
        services.credentials.login("alice", "wrong")
    with pytest.raises(UnauthorizedError) as unknown:
        services.credentials.login("bob", "secret1")
    assert wrong.value.message == unknown.value.message


def test_login_returns_token_and_identity(services):
    services.credentials.register("alice", "secret1")
    result = services.credentials.login("alice", "secret1")

    assert result["username"] == "alice"
    assert result["user_id"] == str(services.accounts.find_by_key("alice").id)
    assert services.issuer.verify(result["token"]).username == "alice"


def test_expired_account_cannot_login(services, clock):
    services.credentials.register("alice", "secret1")
    services.accounts.update_by_key("alice", {"expires_at": clock() - timedelta(seconds=1)})

    with pytest.raises(UnauthorizedError) as excinfo:
        services.credentials.login("alice", "secret1")
    assert "expired" in excinfo.value.message.lower()


def test_corrupt_stored_hash_is_internal_error(services):
    services.credentials.register("alice", "secret1")
    services.accounts.update_by_key("alice", {"password_hash": "corrupt"})

    with pytest.raises(MalformedHashError):
        services.credentials.login("alice", "secret1")


def test_register_with_valid_code_within_ttl(services, mailer, clock):
    services.credentials.send_verification_code("a@b.com")
    code = mailer.last_code()
    clock.advance(299)

    services.credentials.register("alice", "secret1", email="a@b.com", code=code)

    assert services.accounts.find_by_key("alice").email == "a@b.com"
    # Consumed on success.
    assert services.codes.get("a@b.com") is None


def test_register_with_code_after_ttl_is_rejected(services, mailer, clock):
    services.credentials.send_verification_code("a@b.com")
    code = mailer.last_code()
    clock.advance(301)

    with pytest.raises(UnauthorizedError) as excinfo:
        services.credentials.register("alice", "secret1", email="a@b.com", code=code)
    assert excinfo.value.message == "Verification code invalid or expired"
    assert services.accounts.find_by_key("alice") is None


def test_register_with_wrong_code_is_rejected(services, mailer):
    services.credentials.send_verification_code("a@b.com")
    wrong = "000000" if mailer.last_code() != "000000" else "111111"

    with pytest.raises(UnauthorizedError):
        services.credentials.register("alice", "secret1", email="a@b.com", code=wrong)


def test_register_without_code_skips_check_by_default(services):
    services.credentials.register("alice", "secret1", email="a@b.com")

    assert services.accounts.find_by_key("alice").email == "a@b.com"


def test_register_requires_code_when_verification_enforced(
    settings, database, redis_client, mailer, clock
):
    strict = build_services(
        replace(settings, require_email_verification=True),
        database=database,
        redis_client=redis_client,
        mailer=mailer,
        clock=clock,
    )

    with pytest.raises(UnauthorizedError):
        strict.credentials.register("alice", "secret1", email="a@b.com")
    with pytest.raises(UnauthorizedError):
        strict.credentials.register("alice", "secret1")

    strict.credentials.send_verification_code("a@b.com")
    strict.credentials.register(
        "alice", "secret1", email="a@b.com", code=mailer.last_code()
    )
    assert strict.accounts.find_by_key("alice") is not None


def test_send_code_mail_failure_keeps_code(services, mailer):
    mailer.fail = True

    with pytest.raises(InternalError) as excinfo:
        services.credentials.send_verification_code("a@b.com")
    assert excinfo.value.message == "Failed to send verification code"
    assert services.codes.get("a@b.com") is not None


def test_resend_replaces_previous_code(services, mailer):
    services.credentials.send_verification_code("a@b.com")
    services.credentials.send_verification_code("a@b.com")

    assert services.codes.get("a@b.com") == mailer.last_code()


def test_user_info_never_exposes_hash(services):
    services.credentials.register("alice", "secret1")
    info = services.credentials.get_user_info("alice")

    assert info["username"] == "alice"
    assert "password_hash" not in info
    assert "password" not in info


def test_update_user_info_merges_allowed_fields(services):
    services.credentials.register("alice", "secret1")
    info = services.credentials.update_user_info(
        "alice", {"name": "Alice", "email": "Alice@Example.com", "role": "admin"}
    )

    assert info["name"] == "Alice"
    assert info["email"] == "alice@example.com"
    assert info["role"] == "member"
    assert "password_hash" not in info


def test_user_info_for_unknown_user(services):
    with pytest.raises(NotFoundError):
        services.credentials.get_user_info("ghost")
    with pytest.raises(NotFoundError):
        services.credentials.update_user_info("ghost", {"name": "x"})


def test_code_admits_one_register_while_another_is_hashing(services, mailer, monkeypatch):
    services.credentials.send_verification_code("a@b.com")
    code = mailer.last_code()
    original_hash = PasswordHasher.hash
    outcomes = {}

    def hash_during_second_register(self, plaintext):
        monkeypatch.setattr(PasswordHasher, "hash", original_hash)
        try:
            services.credentials.register(
                "mallory", "secret2", email="a@b.com", code=code
            )
            outcomes["mallory"] = True
        except UnauthorizedError:
            outcomes["mallory"] = False
        return original_hash(self, plaintext)

    monkeypatch.setattr(PasswordHasher, "hash", hash_during_second_register)
    services.credentials.register("alice", "secret1", email="a@b.com", code=code)

    assert outcomes == {"mallory": False}
    assert services.accounts.find_by_key("alice") is not None
    assert services.accounts.find_by_key("mallory") is None


def test_unknown_user_login_still_verifies_a_digest(services, monkeypatch):
    digests = []
    original_verify = PasswordHasher.verify

    def recording_verify(self, digest, plaintext):
        digests.append(digest)
        return original_verify(self, digest, plaintext)

    monkeypatch.setattr(PasswordHasher, "verify", recording_verify)

    with pytest.raises(UnauthorizedError):
        services.credentials.login("ghost", "secret1")
    assert len(digests) == 1
    assert digests[0].startswith("$argon2")
