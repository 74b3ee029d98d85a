from datetime import datetime
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip().lower()
    if not cleaned:
        return None
    if not _EMAIL_PATTERN.match(cleaned):
        raise ValueError("Email format is invalid")
    return cleaned


class SendCodeRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        cleaned = _validate_email(value)
        if cleaned is None:
            raise ValueError("Email is required")
        return cleaned


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=20)
    password: str = Field(min_length=6, max_length=20)
    email: Optional[str] = None
    code: Optional[str] = Field(default=None, max_length=16)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 3:
            raise ValueError("Username must be at least 3 characters")
        if not re.fullmatch(r"[A-Za-z0-9_.-]+", cleaned):
            raise ValueError("Username may only contain letters, digits, '.', '_' or '-'")
        return cleaned

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return _validate_email(value)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=20)
    password: str = Field(min_length=1, max_length=128)


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone: Optional[str] = Field(default=None, max_length=32)
    email: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=512)
    wechat: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return _validate_email(value)


class UserView(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None
    wechat: Optional[str] = None
    banners: list[str] = Field(default_factory=list)
    role: str
    level: int
    balance: int
    code: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime


class LoginResult(BaseModel):
    token: str
    username: str
    user_id: str


class MessageResult(BaseModel):
    message: str


class Envelope(BaseModel):
    code: int = 200
    data: Any = None
    message: str = "ok"
