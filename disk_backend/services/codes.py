"""Email verification codes.

Codes are six random digits. That is a low-entropy secret (one in a
million per guess) and is only acceptable because a code lives for a few
minutes and gates account creation, never access to an existing account.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hmac
import json
import logging
import secrets
from typing import Callable

from disk_backend.services.cache import Cache

LOGGER = logging.getLogger(__name__)

KEY_PREFIX = "regcode:"


@dataclass(frozen=True)
class CodeRecord:
    code: str
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_address(address: str) -> str:
    return address.strip().lower()


def _same_code(stored: str, candidate: str) -> bool:
    return hmac.compare_digest(
        stored.encode("utf-8"), candidate.strip().encode("utf-8")
    )


class VerificationCodeStore:
    def __init__(
        self,
        cache: Cache,
        ttl_seconds: int = 300,
        code_length: int = 6,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache = cache
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, address: str) -> CodeRecord:
        return self.put(address, self._generate_code(), self._ttl_seconds)

    def put(self, address: str, code: str, ttl_seconds: int) -> CodeRecord:
        record = CodeRecord(
            code=code,
            expires_at=self._clock() + timedelta(seconds=ttl_seconds),
        )
        # The absolute expiry travels with the value so a late purge never
        # resurrects a stale code.
        payload = json.dumps(
            {"code": record.code, "expires_at": record.expires_at.timestamp()}
        )
        self._cache.put(self._key(address), payload, ttl_seconds)
        return record

    def get(self, address: str) -> str | None:
        raw_value = self._cache.get(self._key(address))
        if raw_value is None:
            return None
        record = self._decode(raw_value)
        if record is None:
            self.delete(address)
            return None
        if self._clock() >= record.expires_at:
            return None
        return record.code

    def delete(self, address: str) -> None:
        self._cache.delete(self._key(address))

    def matches(self, address: str, code: str) -> bool:
        stored = self.get(address)
        if stored is None:
            return False
        return _same_code(stored, code)

    def consume(self, address: str, code: str) -> bool:
        """Check ``code`` and remove it so that only one caller can succeed.

        A wrong guess leaves the stored code in place. A correct one is
        taken out with a single GETDEL, and only the caller that actually
        removed the entry gets True.
        """
        if not self.matches(address, code):
            return False
        raw_value = self._cache.pop(self._key(address))
        if raw_value is None:
            return False
        record = self._decode(raw_value)
        if record is None or self._clock() >= record.expires_at:
            return False
        return _same_code(record.code, code)

    def _decode(self, raw_value: str) -> CodeRecord | None:
        try:
            payload = json.loads(raw_value)
            return CodeRecord(
                code=str(payload["code"]),
                expires_at=datetime.fromtimestamp(
                    float(payload["expires_at"]), tz=timezone.utc
                ),
            )
        except (ValueError, KeyError, TypeError):
            LOGGER.warning("Discarding unreadable verification code entry")
            return None

    def _key(self, address: str) -> str:
        return f"{KEY_PREFIX}{normalize_address(address)}"

    def _generate_code(self) -> str:
        value = secrets.randbelow(10**self._code_length)
        return str(value).zfill(self._code_length)
