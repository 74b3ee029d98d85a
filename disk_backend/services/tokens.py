from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Callable

import jwt

from disk_backend.errors import UnauthorizedError

LOGGER = logging.getLogger(__name__)


class InvalidTokenError(UnauthorizedError):
    default_message = "Invalid credential"


@dataclass(frozen=True)
class SessionClaims:
    username: str
    subject_id: str
    token_id: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    token: str
    claims: SessionClaims


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Signs and verifies session tokens.

    Every verification failure surfaces as the same ``InvalidTokenError``;
    only the log line says whether the token was expired, tampered with or
    malformed.
    """

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int = 7 * 24 * 3600,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("JWT secret is not configured")
        self._secret = secret
        self._lifetime = timedelta(seconds=lifetime_seconds)
        self._algorithm = algorithm
        self._clock = clock

    @property
    def lifetime_seconds(self) -> int:
        return int(self._lifetime.total_seconds())

    def sign(self, username: str, subject_id: str) -> IssuedToken:
        # JWT times are whole seconds: iat rounds down, exp rounds up.
        now = self._clock()
        issued_at = now.replace(microsecond=0)
        expires_at = issued_at + self._lifetime
        if now.microsecond:
            expires_at += timedelta(seconds=1)
        claims = SessionClaims(
            username=username,
            subject_id=str(subject_id),
            token_id=secrets.token_urlsafe(16),
            issued_at=issued_at,
            expires_at=expires_at,
        )
        payload = {
            "sub": claims.subject_id,
            "username": claims.username,
            "jti": claims.token_id,
            "iat": int(claims.issued_at.timestamp()),
            "exp": int(claims.expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, claims=claims)

    def verify(self, token: str) -> SessionClaims:
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub", "jti"]},
            )
        except jwt.ExpiredSignatureError as exc:
            LOGGER.info("Rejected token: expired")
            raise InvalidTokenError() from exc
        except jwt.InvalidSignatureError as exc:
            LOGGER.warning("Rejected token: bad signature")
            raise InvalidTokenError() from exc
        except jwt.InvalidTokenError as exc:
            LOGGER.warning("Rejected token: malformed (%s)", exc)
            raise InvalidTokenError() from exc

        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        if self._clock() >= expires_at:
            LOGGER.info("Rejected token: expired")
            raise InvalidTokenError()
        username = payload.get("username")
        if not isinstance(username, str) or not username:
            LOGGER.warning("Rejected token: missing username claim")
            raise InvalidTokenError()
        return SessionClaims(
            username=username,
            subject_id=str(payload["sub"]),
            token_id=str(payload["jti"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=expires_at,
        )
