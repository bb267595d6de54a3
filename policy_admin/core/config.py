"""
Application configuration for the Policy Admin API.

Settings are strongly typed via Pydantic v2 BaseSettings. Defaults target
local/dev usage; every value can be overridden through environment variables
or a .env file at the project root.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (.env supported)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # -------------------------------------------------------------------------
    # Core application info
    # -------------------------------------------------------------------------
    APP_NAME: str = "Policy Admin API"
    APP_VERSION: str = "0.3.0"
    # Exposes internal error details in 500 responses when enabled
    DEBUG: bool = False

    # -------------------------------------------------------------------------
    # Server configuration
    # -------------------------------------------------------------------------
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    RELOAD: bool = False
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------------------------------
    # Database configuration
    # -------------------------------------------------------------------------
    DATABASE_URL: str = "sqlite+aiosqlite:///./policy_admin.db"
    DB_ECHO: bool = False

    # -------------------------------------------------------------------------
    # Security / API
    # -------------------------------------------------------------------------
    CORS_ALLOW_ORIGINS: list[str] = ["http://localhost:3000"]
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # -------------------------------------------------------------------------
    # Default administrator bootstrap
    # -------------------------------------------------------------------------
    BOOTSTRAP_ADMIN: bool = True
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_NAME: str = "Super Admin"
    DEFAULT_ADMIN_PASSWORD: str = "Admin@123"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance (singleton-like)."""
    return Settings()
