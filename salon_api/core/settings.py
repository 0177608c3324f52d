from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from salon_api.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Salon API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for salon and beauty-business management. "
            "Customers, appointments, staff payroll, inventory, vouchers, points and finance."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, create a demo owner with sample data after migrations.",
    )
    DEMO_USER_EMAIL: str = Field(default="demo@salon.example")
    DEMO_USER_PASSWORD: str = Field(default="demo1234")

    # Tokens
    JWT_SECRET_KEY: str = Field(
        default="change-me-in-production", description="HMAC secret used to sign JWTs"
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 14)

    # Cookie session propagation
    AUTH_COOKIE_NAME: str = Field(default="access_token")
    AUTH_COOKIE_SECURE: bool = Field(default=False)

    # Response cache
    CACHE_ENABLED: bool = Field(default=True)
    CACHE_MAX_ENTRIES: int = Field(default=1024, description="Upper bound on cached responses; least recently used go first")

    # Rate limits (requests per minute per client)
    RATE_LIMIT_API_PER_MINUTE: int = Field(default=300)
    RATE_LIMIT_AUTH_PER_MINUTE: int = Field(default=20)

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING, ...)")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    # Automatically load from .env at runtime.
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      A new instance is constructed on each call so environment changes are
      picked up without a restart.
    """
    return AppSettings()
