"""Application configuration loaded from environment variables."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.security import (
    ADMIN_USERNAMES,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    USERNAME_PATTERN,
)

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
)


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api"

    # Key-value store backend for user records. Empty means "not configured";
    # registration then answers 503 instead of writing anywhere.
    DATABASE_URL: str | None = "sqlite:///./admin_auth.db"

    # Token signing keys. Access and refresh tokens must never share a key.
    JWT_SECRET: SecretStr = SecretStr("change-me-in-production")
    JWT_REFRESH_SECRET: SecretStr = SecretStr("change-me-refresh-in-production")

    # Seed admin account written to the store on first boot (if absent).
    BOOTSTRAP_ADMIN_USERNAME: str = "admin"
    BOOTSTRAP_ADMIN_PASSWORD: SecretStr | None = None

    # Only used when APP_ENV=prod; dev allows any origin.
    CORS_ALLOW_ORIGINS: list[str] = []

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError("LOG_LEVEL must be a logging level name (e.g. INFO, DEBUG)")
        return level

    @field_validator("API_PREFIX")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        s = v.strip().rstrip("/")
        if s and not s.startswith("/"):
            raise ValueError("API_PREFIX must start with '/' (e.g. /api)")
        return s

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not any(v.strip().startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL (e.g. sqlite:///./admin_auth.db)"
            )
        return v.strip()

    @field_validator("JWT_SECRET", "JWT_REFRESH_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT signing secrets must be set and non-empty")
        return v

    @field_validator("BOOTSTRAP_ADMIN_USERNAME")
    @classmethod
    def validate_bootstrap_username(cls, v: str) -> str:
        s = v.strip().lower()
        if not (USERNAME_MIN_LEN <= len(s) <= USERNAME_MAX_LEN) or not USERNAME_PATTERN.fullmatch(s):
            raise ValueError(
                f"BOOTSTRAP_ADMIN_USERNAME must be {USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} "
                "letters, digits or underscores"
            )
        if s not in ADMIN_USERNAMES:
            raise ValueError(
                f"BOOTSTRAP_ADMIN_USERNAME must be one of: {', '.join(sorted(ADMIN_USERNAMES))}"
            )
        return s

    @field_validator("BOOTSTRAP_ADMIN_PASSWORD")
    @classmethod
    def validate_bootstrap_password(cls, v: SecretStr | None) -> SecretStr | None:
        if v is None or not v.get_secret_value():
            return None
        if len(v.get_secret_value()) < PASSWORD_MIN_LEN:
            raise ValueError(f"BOOTSTRAP_ADMIN_PASSWORD must be at least {PASSWORD_MIN_LEN} characters")
        return v

    @model_validator(mode="after")
    def validate_key_segregation(self) -> "Settings":
        if self.JWT_SECRET.get_secret_value() == self.JWT_REFRESH_SECRET.get_secret_value():
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be different")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
