import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv(override=True)

VERSION = "1.0.0"


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./disk_backend.db")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    token_lifetime_seconds: int = int(
        os.getenv("TOKEN_LIFETIME_SECONDS", str(7 * 24 * 3600))
    )
    verification_code_ttl_seconds: int = int(
        os.getenv("VERIFICATION_CODE_TTL_SECONDS", "300")
    )
    verification_code_length: int = int(os.getenv("VERIFICATION_CODE_LENGTH", "6"))
    require_email_verification: bool = _env_bool("REQUIRE_EMAIL_VERIFICATION", False)
    enforce_expiry_per_request: bool = _env_bool("ENFORCE_EXPIRY_PER_REQUEST", True)
    account_lifetime_days: int = int(os.getenv("ACCOUNT_LIFETIME_DAYS", "3"))
    app_url: str = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
    mail_host: str = os.getenv("MAIL_HOST", "")
    mail_port: int = int(os.getenv("MAIL_PORT", "465"))
    mail_user: str = os.getenv("MAIL_USER", "")
    mail_password: str = os.getenv("MAIL_PASSWORD", "")
    mail_subject: str = os.getenv("MAIL_SUBJECT", "Your registration code")
    upload_dir: str = os.getenv("UPLOAD_DIR", os.path.join("static", "upload"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "")
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "*")
    )


settings = Settings()
