"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from authcore.core.exceptions import ConfigurationError

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "authcore"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "authcore_db"
    POSTGRES_USER: str = "authcore"
    POSTGRES_PASSWORD: str = "authcore"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Token signing
    JWT_ACCESS_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "auth-service"
    JWT_AUDIENCE: str = "auth-client"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Password hashing
    PASSWORD_HASH_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6

    # Federated sign-in
    OAUTH_PROVIDERS: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["google"])

    # Maintenance
    TOKEN_PURGE_INTERVAL_SECONDS: float = 3600.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("OAUTH_PROVIDERS", mode="before")
    @classmethod
    def _parse_oauth_providers(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated provider tags from env.

        Examples:
            OAUTH_PROVIDERS=["google","github"]
            OAUTH_PROVIDERS=google,github
        """
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, str):
            return [parsed.strip().lower()]
        if isinstance(parsed, list):
            return [str(tag).strip().lower() for tag in parsed if str(tag).strip()]

        return [tag.strip().lower() for tag in raw.split(",") if tag.strip()]

    def get_log_file(self) -> str:
        """Resolve log file path; empty means stream-only logging"""
        p = self.LOG_FILE
        if not p or Path(p).is_absolute():
            return p
        return str(_BASE_DIR.parent / p)

    def get_database_url(self) -> str:
        """
        Resolve database URL.

        Priority:
          1) Explicit DATABASE_URL
          2) Construct from POSTGRES_* parts with safe URL encoding
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        user = quote_plus(self.POSTGRES_USER)
        password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Validate signing secrets and hashing cost.

        Missing or shared secrets are rejected in every environment;
        placeholder secrets and weak hash cost only in production.

        Raises:
            ConfigurationError: If the settings cannot sign tokens safely.
        """
        if not self.JWT_ACCESS_SECRET:
            raise ConfigurationError("JWT_ACCESS_SECRET is required")
        if not self.JWT_REFRESH_SECRET:
            raise ConfigurationError("JWT_REFRESH_SECRET is required")
        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")

        if self.ENVIRONMENT.lower() != "production":
            return

        insecure_secret_markers = {
            "change-me",
            "changeme",
            "secret",
            "your-super-secret-key-change-this-in-production",
        }
        for name in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
            value = getattr(self, name)
            if value.lower() in insecure_secret_markers or len(value) < 32:
                raise ConfigurationError(
                    f"Insecure {name} for production. Use a strong key (e.g. `openssl rand -hex 32`)."
                )

        if self.PASSWORD_HASH_ROUNDS < 10:
            raise ConfigurationError("PASSWORD_HASH_ROUNDS must be at least 10 in production")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
