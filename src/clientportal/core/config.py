"""Configuration management for the client portal.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded at process
start and is immutable during runtime. Invalid signing secrets or token
lifetimes are rejected here, before any request is served.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from limits import parse as parse_rate_limit
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from clientportal.domain.services.duration_parser import parse_duration

MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables (prefix ``CLIENTPORTAL_``)
    and .env files. All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CLIENTPORTAL_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application Settings
    app_name: str = "Client Portal"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    api_prefix: str = "/api"
    frontend_url: str = "http://localhost:5173"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 5000

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./data/clientportal.db"
    db_echo: bool = False

    # Token Settings
    jwt_access_secret: str = Field(
        ...,
        min_length=MIN_SECRET_LENGTH,
        description="Secret for signing access tokens",
    )
    jwt_refresh_secret: str = Field(
        ...,
        min_length=MIN_SECRET_LENGTH,
        description="Secret for signing refresh tokens (must differ from the access secret)",
    )
    jwt_access_expiration: str = "15m"
    jwt_refresh_expiration: str = "7d"
    password_reset_token_expiration_minutes: int = Field(default=30, gt=0)
    email_verification_token_expiration_hours: int = Field(default=24, gt=0)

    # MFA Settings
    mfa_issuer: str = "Secure Client Portal"

    # Lockout Settings
    max_failed_login_attempts: int = Field(default=5, gt=0)
    lockout_minutes: int = Field(default=15, gt=0)

    # Rate Limiting
    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/15 minutes"

    # Password hashing (Argon2id)
    password_hash_time_cost: int = Field(default=3, ge=1)
    password_hash_memory_cost: int = Field(default=65536, ge=8)

    # Email Settings
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_use_tls: bool = True
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str = "no-reply@client-portal.local"
    email_from_name: str = "Client Portal"
    email_log_file: str = "logs/emails.log"

    # CORS Settings
    cors_origins: list[str] = Field(default=["http://localhost:5173"])

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("login_rate_limit")
    @classmethod
    def validate_rate_limit(cls, v: str) -> str:
        """Reject limits that are not ``<count>/<period>`` expressions."""
        parse_rate_limit(v)
        return v

    @field_validator("jwt_access_expiration", "jwt_refresh_expiration")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        """Reject token lifetimes that are not ``<integer><unit>``."""
        parse_duration(v)
        return v.strip()

    @model_validator(mode="after")
    def validate_distinct_secrets(self) -> "Settings":
        """Access and refresh tokens must not share a signing secret."""
        if self.jwt_access_secret == self.jwt_refresh_secret:
            raise ValueError("jwt_access_secret and jwt_refresh_secret must differ")
        return self

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_access_expiration)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_refresh_expiration)

    @property
    def password_reset_ttl(self) -> timedelta:
        return timedelta(minutes=self.password_reset_token_expiration_minutes)

    @property
    def email_verification_ttl(self) -> timedelta:
        return timedelta(hours=self.email_verification_token_expiration_hours)

    @property
    def smtp_configured(self) -> bool:
        """SMTP delivery is used only when host and credentials are all present."""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once at startup; a missing or weak signing secret
    raises ``pydantic.ValidationError`` here.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
