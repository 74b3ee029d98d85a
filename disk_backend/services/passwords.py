import logging

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from disk_backend.errors import InternalError

LOGGER = logging.getLogger(__name__)


class MalformedHashError(InternalError):
    default_message = "Stored credential is unreadable"


class PasswordHasher:
    """Argon2id hashing of account passwords.

    Digests are self-describing (algorithm, parameters and salt are encoded
    in the string), so parameters can change without invalidating stored
    records. A digest that cannot be parsed is reported as
    ``MalformedHashError`` rather than as a failed match, so a corrupt
    record is never mistaken for a wrong password.
    """

    def __init__(self, hasher: Argon2Hasher | None = None) -> None:
        self._hasher = hasher or Argon2Hasher()

    def hash(self, plaintext: str) -> str:
        try:
            return self._hasher.hash(plaintext)
        except HashingError as exc:
            LOGGER.error("Password hashing failed: %s", exc)
            raise InternalError("Failed to secure password") from exc

    def verify(self, digest: str, plaintext: str) -> bool:
        try:
            return self._hasher.verify(digest, plaintext)
        except VerifyMismatchError:
            return False
        except InvalidHashError as exc:
            LOGGER.error("Stored password digest is malformed")
            raise MalformedHashError() from exc
        except VerificationError as exc:
            LOGGER.error("Password verification failed: %s", exc)
            raise MalformedHashError() from exc

    def needs_rehash(self, digest: str) -> bool:
        try:
            return self._hasher.check_needs_rehash(digest)
        except (InvalidHashError, ValueError):
            return False
