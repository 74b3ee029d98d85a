from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Callable

from disk_backend.errors import UnauthorizedError
from disk_backend.services.accounts import AccountStore
from disk_backend.services.revocations import RevocationList
from disk_backend.services.tokens import SessionClaims, TokenIssuer

LOGGER = logging.getLogger(__name__)


class AccessDenied(UnauthorizedError):
    default_message = "Invalid credential"


@dataclass(frozen=True)
class Identity:
    username: str
    subject_id: str
    claims: SessionClaims


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountGuard:
    """Resolves a bearer token into the identity of a live account.

    Each step is a hard gate: signature and lifetime, revocation, account
    existence and, when ``enforce_expiry`` is set, account expiry. A token
    minted before an account expired is therefore refused as soon as the
    account lapses instead of at the token's own expiry.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        accounts: AccountStore,
        revocations: RevocationList,
        enforce_expiry: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._issuer = issuer
        self._accounts = accounts
        self._revocations = revocations
        self._enforce_expiry = enforce_expiry
        self._clock = clock

    def authorize(self, token: str | None) -> Identity:
        if not token:
            raise AccessDenied("Missing credential")
        claims = self._issuer.verify(token)
        if self._revocations.is_revoked(claims.token_id):
            LOGGER.info("Denied revoked token username=%s", claims.username)
            raise AccessDenied("Credential revoked")
        account = self._accounts.find_by_key(claims.username)
        if account is None:
            LOGGER.warning("Denied token for missing account username=%s", claims.username)
            raise AccessDenied("Account not found")
        if str(account.id) != claims.subject_id:
            # Username reused by a different account than the one that logged in.
            LOGGER.warning("Denied token with stale subject username=%s", claims.username)
            raise AccessDenied("Account not found")
        if self._enforce_expiry and account.is_expired(self._clock()):
            LOGGER.info("Denied token for expired account username=%s", claims.username)
            raise AccessDenied("Account expired")
        return Identity(
            username=account.username,
            subject_id=claims.subject_id,
            claims=claims,
        )
