"""
Application configuration module.

Provides centralized, environment-safe configuration management
with sensible defaults for every setting the authorization core reads.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables or a `.env`
    file next to the process working directory.

    Attributes:
        APP_NAME: Application name.
        ENVIRONMENT: development, testing or production.
        DATABASE_URL: SQLAlchemy database URL.
        SECRET_KEY: Key used to verify bearer tokens.
        ORG_SELECTION_COOKIE_NAME: Cookie carrying the active organization.
        TENANT_CACHE_TTL_SECONDS: Lifetime of tenant-scoped cached reads.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    APP_NAME: str = Field(default="Stratikey Authorization Core")
    APP_VERSION: str = Field(default="1.0.0")
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./stratikey.db")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=1800)

    # Bearer token verification (issuance happens upstream)
    SECRET_KEY: str = Field(default="change-me-in-production-min-32-characters")
    ALGORITHM: str = Field(default="HS256")
    TOKEN_ISSUER: str = Field(default="stratikey")
    TOKEN_AUDIENCE: str = Field(default="stratikey-api")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="console")

    # Organization context
    ORG_SELECTION_COOKIE_NAME: str = Field(default="stratikey_selected_org")
    ORG_SELECTION_COOKIE_MAX_AGE_DAYS: int = Field(default=30)
    ORG_HEADER_NAME: str = Field(default="X-Organization-Id")
    TENANT_CACHE_TTL_SECONDS: int = Field(default=120)

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=60)
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=300)
    APPROVAL_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=3600)
    APPROVAL_RATE_LIMIT_MAX_REQUESTS: int = Field(default=100)

    # CORS
    CORS_ORIGINS: str = Field(default="http://localhost:3000")
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_METHODS: str = Field(default="GET,POST,PATCH,OPTIONS")
    CORS_HEADERS: str = Field(default="Authorization,Content-Type,X-Organization-Id")

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def cors_methods_list(self) -> List[str]:
        return [m.strip() for m in self.CORS_METHODS.split(",") if m.strip()]

    @property
    def cors_headers_list(self) -> List[str]:
        return [h.strip() for h in self.CORS_HEADERS.split(",") if h.strip()]

    @property
    def selection_cookie_max_age(self) -> int:
        """Cookie lifetime in seconds."""
        return self.ORG_SELECTION_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings instance.
    """
    loaded = Settings()
    logger.info(
        "Settings loaded: app_name=%s, environment=%s",
        loaded.APP_NAME,
        loaded.ENVIRONMENT,
    )
    return loaded


# Global settings instance
settings = get_settings()
