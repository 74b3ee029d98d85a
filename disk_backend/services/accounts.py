from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from disk_backend.database import Database
from disk_backend.errors import ConflictError
from disk_backend.models.account import AccountEntry

LOGGER = logging.getLogger(__name__)

ROLE_MEMBER = "member"
# Levels: 1 normal, 2 period member, 3 permanent member.
LEVEL_NORMAL = 1

_IMMUTABLE_FIELDS = {"id", "username", "created_at"}


class DuplicateKeyError(ConflictError):
    default_message = "User already exists"


@dataclass(frozen=True)
class Account:
    username: str
    password_hash: str = field(repr=False)
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    id: int | None = None
    email: str | None = None
    phone: str | None = None
    name: str | None = None
    avatar: str | None = None
    wechat: str | None = None
    banners: tuple[str, ...] = ()
    role: str = ROLE_MEMBER
    level: int = LEVEL_NORMAL
    balance: int = 0
    code: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def public_view(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "phone": self.phone,
            "name": self.name,
            "avatar": self.avatar,
            "wechat": self.wechat,
            "banners": list(self.banners),
            "role": self.role,
            "level": self.level,
            "balance": self.balance,
            "code": self.code,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "expires_at": self.expires_at,
        }


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccountStore:
    def __init__(self, database: Database) -> None:
        self._database = database

    def find_by_key(self, username: str) -> Account | None:
        with self._database.session_scope() as session:
            entry = session.execute(
                select(AccountEntry).where(AccountEntry.username == username)
            ).scalar_one_or_none()
            if entry is None:
                return None
            return self._to_account(entry)

    def insert(self, account: Account) -> Account:
        entry = AccountEntry(
            username=account.username,
            password_hash=account.password_hash,
            email=account.email,
            phone=account.phone,
            name=account.name,
            avatar=account.avatar,
            wechat=account.wechat,
            banners=list(account.banners),
            role=account.role,
            level=account.level,
            balance=account.balance,
            code=account.code,
            created_at=account.created_at,
            updated_at=account.updated_at,
            expires_at=account.expires_at,
        )
        try:
            with self._database.session_scope() as session:
                session.add(entry)
                session.flush()
                return self._to_account(entry)
        except IntegrityError as exc:
            LOGGER.info("Duplicate username on insert username=%s", account.username)
            raise DuplicateKeyError() from exc

    def update_by_key(self, username: str, values: dict[str, Any]) -> Account | None:
        for name in values:
            if name in _IMMUTABLE_FIELDS or not hasattr(AccountEntry, name):
                raise ValueError(f"Account field '{name}' cannot be updated")
        with self._database.session_scope() as session:
            entry = session.execute(
                select(AccountEntry).where(AccountEntry.username == username)
            ).scalar_one_or_none()
            if entry is None:
                return None
            for name, value in values.items():
                if name == "banners" and value is not None:
                    value = list(value)
                setattr(entry, name, value)
            entry.updated_at = datetime.now(timezone.utc)
            session.flush()
            return self._to_account(entry)

    def _to_account(self, entry: AccountEntry) -> Account:
        return Account(
            id=entry.id,
            username=entry.username,
            password_hash=entry.password_hash,
            email=entry.email,
            phone=entry.phone,
            name=entry.name,
            avatar=entry.avatar,
            wechat=entry.wechat,
            banners=tuple(entry.banners or ()),
            role=entry.role or ROLE_MEMBER,
            level=entry.level or LEVEL_NORMAL,
            balance=entry.balance or 0,
            code=entry.code,
            created_at=_aware(entry.created_at),
            updated_at=_aware(entry.updated_at),
            expires_at=_aware(entry.expires_at),
        )

