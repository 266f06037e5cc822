"""Application settings and configuration.

This module defines all configuration options for the GoonGPT API.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StorageBackend = Literal["file", "sql", "redis"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="GoonGPT API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: Literal["development", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Storage selection; left unset it follows the deployment environment
    storage_backend: StorageBackend | None = Field(default=None, alias="STORAGE_BACKEND")
    dev_storage_dir: str = Field(default=".dev-storage", alias="DEV_STORAGE_DIR")

    # Database configuration (hosted store)
    database_url: str = Field(default="sqlite:///./goongpt.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis configuration (alternative hosted store)
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Sessions and cookies
    cookie_secure: bool = Field(default=False, alias="COOKIE_SECURE")

    # Anonymous rate-limit map housekeeping
    rate_limit_sweep_interval_seconds: float = Field(
        default=300.0,
        alias="RATE_LIMIT_SWEEP_INTERVAL_SECONDS",
    )
    rate_limit_stale_after_seconds: float = Field(
        default=3600.0,
        alias="RATE_LIMIT_STALE_AFTER_SECONDS",
    )

    # Token earning
    daily_token_limit: int = Field(default=100, alias="DAILY_TOKEN_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:8888",
            "http://localhost:3000",
            "https://goongpt.pro",
            "https://www.goongpt.pro",
            "https://goongpt.netlify.app",
        ],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Return True when running as the production deployment."""
        return self.environment == "production"

    @property
    def effective_storage_backend(self) -> StorageBackend:
        """Return the storage backend respecting environment detection.

        Local development keeps data in JSON files; production defaults to the
        hosted SQL database unless a backend is chosen explicitly.
        """
        if self.storage_backend is not None:
            return self.storage_backend
        return "sql" if self.is_production else "file"


settings = Settings()
