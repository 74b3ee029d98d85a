from datetime import datetime, timedelta, timezone
import logging
import secrets
import uuid
from typing import Any, Callable

from disk_backend.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from disk_backend.services.accounts import Account, AccountStore
from disk_backend.services.codes import VerificationCodeStore, normalize_address
from disk_backend.services.email import Mailer, MailSendError
from disk_backend.services.guard import Identity
from disk_backend.services.passwords import PasswordHasher
from disk_backend.services.revocations import RevocationList
from disk_backend.services.tokens import TokenIssuer

LOGGER = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("phone", "email", "name", "avatar", "wechat")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialService:
    def __init__(
        self,
        accounts: AccountStore,
        hasher: PasswordHasher,
        codes: VerificationCodeStore,
        issuer: TokenIssuer,
        revocations: RevocationList,
        mailer: Mailer,
        *,
        app_url: str,
        mail_subject: str,
        account_lifetime_days: int = 3,
        require_email_verification: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._accounts = accounts
        self._hasher = hasher
        self._codes = codes
        self._issuer = issuer
        self._revocations = revocations
        self._mailer = mailer
        self._app_url = app_url.rstrip("/")
        self._mail_subject = mail_subject
        self._account_lifetime = timedelta(days=account_lifetime_days)
        self._require_email_verification = require_email_verification
        self._clock = clock
        self._unknown_user_hash = hasher.hash(secrets.token_urlsafe(16))

    def send_verification_code(self, email: str) -> dict[str, Any]:
        address = normalize_address(email)
        record = self._codes.issue(address)
        try:
            self._mailer.send_verification_code(
                address, record.code, self._mail_subject, self._codes.ttl_seconds
            )
        except MailSendError as exc:
            # The stored code stays valid; a resend simply replaces it.
            LOGGER.error("Verification code dispatch failed to=%s error=%s", address, exc)
            raise InternalError("Failed to send verification code") from exc
        LOGGER.info("Verification code sent to=%s", address)
        return {"message": "Verification code sent"}

    def register(
        self,
        username: str,
        password: str,
        email: str | None = None,
        code: str | None = None,
    ) -> dict[str, Any]:
        if self._accounts.find_by_key(username) is not None:
            raise ConflictError("User already exists")

        if self._require_email_verification and not (email and code):
            raise UnauthorizedError("Email verification code is required")
        if email and code:
            if not self._codes.consume(email, code):
                raise UnauthorizedError("Verification code invalid or expired")
        elif email or code:
            LOGGER.warning(
                "Registering username=%s without code verification", username
            )

        password_hash = self._hasher.hash(password)
        now = self._clock()
        account = Account(
            username=username,
            password_hash=password_hash,
            email=normalize_address(email) if email else None,
            avatar=f"{self._app_url}/imgs/avatar.jpg",
            code=uuid.uuid4().hex[-6:],
            created_at=now,
            updated_at=now,
            expires_at=now + self._account_lifetime,
        )
        created = self._accounts.insert(account)
        LOGGER.info("Registered username=%s id=%s", created.username, created.id)
        return {"message": "Registration successful"}

    def login(self, username: str, password: str) -> dict[str, Any]:
        account = self._accounts.find_by_key(username)
        if account is None:
            # Same argon2 cost as a real mismatch.
            self._hasher.verify(self._unknown_user_hash, password)
            LOGGER.info("Failed login username=%s", username)
            raise UnauthorizedError("Invalid username or password")
        if not self._hasher.verify(account.password_hash, password):
            LOGGER.info("Failed login username=%s", username)
            raise UnauthorizedError("Invalid username or password")
        if account.is_expired(self._clock()):
            raise UnauthorizedError("Account expired, contact an administrator to renew")

        if self._hasher.needs_rehash(account.password_hash):
            self._accounts.update_by_key(
                username, {"password_hash": self._hasher.hash(password)}
            )

        issued = self._issuer.sign(account.username, str(account.id))
        LOGGER.info("Logged in username=%s", username)
        return {
            "token": issued.token,
            "username": account.username,
            "user_id": str(account.id),
        }

    def get_user_info(self, username: str) -> dict[str, Any]:
        account = self._accounts.find_by_key(username)
        if account is None:
            raise NotFoundError("User not found")
        return account.public_view()

    def update_user_info(self, username: str, changes: dict[str, Any]) -> dict[str, Any]:
        values = {key: changes[key] for key in UPDATABLE_FIELDS if key in changes}
        if "email" in values and values["email"]:
            values["email"] = normalize_address(values["email"])
        if not values:
            account = self._accounts.find_by_key(username)
        else:
            account = self._accounts.update_by_key(username, values)
        if account is None:
            raise NotFoundError("User not found")
        return account.public_view()

    def logout(self, identity: Identity) -> dict[str, Any]:
        self._revocations.revoke(identity.claims)
        return {"message": "Logged out"}
