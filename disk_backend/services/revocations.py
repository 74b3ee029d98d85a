from datetime import datetime, timezone
import logging
import math
from typing import Callable

from disk_backend.services.cache import Cache
from disk_backend.services.tokens import SessionClaims

LOGGER = logging.getLogger(__name__)

KEY_PREFIX = "revoked:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RevocationList:
    """Denylist of token ids, each kept only until the token would lapse."""

    def __init__(self, cache: Cache, clock: Callable[[], datetime] = _utcnow) -> None:
        self._cache = cache
        self._clock = clock

    def revoke(self, claims: SessionClaims) -> bool:
        remaining = (claims.expires_at - self._clock()).total_seconds()
        if remaining <= 0:
            return False
        self._cache.put(
            f"{KEY_PREFIX}{claims.token_id}",
            claims.username,
            max(1, math.ceil(remaining)),
        )
        LOGGER.info("Revoked session token for username=%s", claims.username)
        return True

    def is_revoked(self, token_id: str) -> bool:
        return self._cache.get(f"{KEY_PREFIX}{token_id}") is not None
