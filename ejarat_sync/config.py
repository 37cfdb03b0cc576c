"""
Configuration and settings for the sync backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database (any SQLAlchemy URL; Postgres expected in production)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Session tokens
    jwt_secret: str = Field(default="dev_secret_change_me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    token_ttl_days: int = Field(default=30, ge=1, alias="TOKEN_TTL_DAYS")

    # Password hashing cost factor
    bcrypt_rounds: int = Field(default=10, ge=4, le=31, alias="BCRYPT_ROUNDS")

    # HTTP
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")
    max_body_bytes: int = Field(default=1024 * 1024, alias="MAX_BODY_BYTES")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="EJARAT_USE_IN_MEMORY_BACKENDS"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing at startup."""


def validate_settings(settings: Settings) -> None:
    """Fail fast on settings the service cannot start without."""
    if not settings.use_in_memory_backends and not settings.database_url:
        raise ConfigurationError(
            "DATABASE_URL is required unless EJARAT_USE_IN_MEMORY_BACKENDS is set"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
