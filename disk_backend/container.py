from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import redis

from disk_backend.config import Settings
from disk_backend.database import Database
from disk_backend.services.accounts import AccountStore
from disk_backend.services.cache import Cache, build_redis_client
from disk_backend.services.codes import VerificationCodeStore
from disk_backend.services.credentials import CredentialService
from disk_backend.services.email import Mailer
from disk_backend.services.files import FileStore
from disk_backend.services.guard import AccountGuard
from disk_backend.services.passwords import PasswordHasher
from disk_backend.services.revocations import RevocationList
from disk_backend.services.tokens import TokenIssuer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Services:
    settings: Settings
    database: Database
    cache: Cache
    accounts: AccountStore
    codes: VerificationCodeStore
    issuer: TokenIssuer
    revocations: RevocationList
    guard: AccountGuard
    credentials: CredentialService
    files: FileStore

    def close(self) -> None:
        self.cache.close()
        self.database.dispose()


def build_services(
    settings: Settings,
    *,
    database: Optional[Database] = None,
    redis_client: Optional[redis.Redis] = None,
    mailer: Optional[Mailer] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Services:
    """Construct every collaborator once, before the app accepts traffic."""
    database = database or Database.from_url(settings.database_url)
    cache = Cache(redis_client or build_redis_client(settings.redis_url))
    mailer = mailer or Mailer(
        settings.mail_host,
        settings.mail_port,
        settings.mail_user,
        settings.mail_password,
    )
    accounts = AccountStore(database)
    codes = VerificationCodeStore(
        cache,
        ttl_seconds=settings.verification_code_ttl_seconds,
        code_length=settings.verification_code_length,
        clock=clock,
    )
    issuer = TokenIssuer(
        settings.jwt_secret,
        lifetime_seconds=settings.token_lifetime_seconds,
        algorithm=settings.jwt_algorithm,
        clock=clock,
    )
    revocations = RevocationList(cache, clock=clock)
    guard = AccountGuard(
        issuer,
        accounts,
        revocations,
        enforce_expiry=settings.enforce_expiry_per_request,
        clock=clock,
    )
    credentials = CredentialService(
        accounts,
        PasswordHasher(),
        codes,
        issuer,
        revocations,
        mailer,
        app_url=settings.app_url,
        mail_subject=settings.mail_subject,
        account_lifetime_days=settings.account_lifetime_days,
        require_email_verification=settings.require_email_verification,
        clock=clock,
    )
    return Services(
        settings=settings,
        database=database,
        cache=cache,
        accounts=accounts,
        codes=codes,
        issuer=issuer,
        revocations=revocations,
        guard=guard,
        credentials=credentials,
        files=FileStore(settings.upload_dir, max_bytes=settings.max_upload_bytes),
    )
