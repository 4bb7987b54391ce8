"""Application settings and configuration."""

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

INSECURE_DEFAULT_SECRET = "your-secret-key-change-this-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "Shortlink API"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/shortlink.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_echo: bool = False

    # API
    api_prefix: str = "/api"
    allow_registration: bool = True

    # CORS
    cors_allow_origins: str | None = None
    cors_allow_credentials: bool = False

    # Security
    secret_key: str = INSECURE_DEFAULT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_hours: int = 1
    refresh_token_expire_days: int = 7

    # Brute-force defense
    account_lockout_attempts: int = 5
    account_lockout_duration_minutes: int = 30

    # Retention
    login_attempt_retention_days: int = 30
    retention_sweep_interval_minutes: int = 60

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @model_validator(mode="after")
    def check_signing_secret(self) -> "Settings":
        """Refuse the built-in signing secret in production, warn about it elsewhere."""
        if self.secret_key == INSECURE_DEFAULT_SECRET:
            if self.is_production:
                raise ValueError("SECRET_KEY must be set when ENVIRONMENT is production")
            logger.warning("SECRET_KEY not set in environment, using default (insecure)")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Parse the comma-separated CORS origin list."""
        if not self.cors_allow_origins:
            return []
        return [origin.strip().rstrip("/") for origin in self.cors_allow_origins.split(",") if origin.strip()]

    def lockout_retry_hint(self, minutes: int) -> str:
        """Human-readable retry hint returned with lockout responses."""
        unit = "minute" if minutes == 1 else "minutes"
        return f"Account locked due to too many failed attempts. Try again in {minutes} {unit}."


settings = Settings()


def get_settings() -> Settings:
    """Settings dependency, overridable in tests via `app.dependency_overrides`."""
    return settings
