"""Application configuration via pydantic-settings."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine the backend directory (where this file lives: backend/realty_server/config.py)
_BACKEND_DIR = Path(__file__).resolve().parent.parent

# Default to SQLite in standalone mode
_DEFAULT_DB = f"sqlite+aiosqlite:///{_BACKEND_DIR / 'realty.db'}"

_DEFAULT_ORIGINS = [
    "http://localhost:4000",
    "http://localhost:5174",
    "http://localhost:5173",
    "https://real-estate-website-admin.onrender.com",
    "https://real-estate-website-backend-zfu7.onrender.com",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    ENVIRONMENT: str = Field(
        "production", validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV")
    )
    LOG_LEVEL: str = "INFO"

    # Database – defaults to local SQLite so the app works without a DB server
    DATABASE_URL: str = _DEFAULT_DB

    # CORS
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: list(_DEFAULT_ORIGINS))

    # Rate limiting (applies to /api only)
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 500

    # Request bodies
    MAX_BODY_SIZE: int = 50 * 1024 * 1024

    # Frontends
    USER_DIST_DIR: str = str(_BACKEND_DIR / "user_dist")
    ADMIN_DIST_DIR: str = str(_BACKEND_DIR / "admin_dist")
    ADMIN_PATH_PREFIX: str = "/admin"

    # Scratch space for file exports
    TEMP_DIR: str = str(_BACKEND_DIR / "temp")

    # Package holding the API route modules
    ROUTE_MODULES_PACKAGE: str = "realty_server.routers"

    @field_validator("USER_DIST_DIR", "ADMIN_DIST_DIR", "TEMP_DIR")
    @classmethod
    def _absolute_dir(cls, value: str) -> str:
        """Relative directories are taken from the backend dir."""
        if not os.path.isabs(value):
            return str(_BACKEND_DIR / value)
        return value

    @field_validator("ADMIN_PATH_PREFIX")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = "/" + value.strip().strip("/")
        if value == "/":
            raise ValueError("ADMIN_PATH_PREFIX must not be the site root")
        return value

    @field_validator("CORS_ORIGINS")
    @classmethod
    def _valid_origins(cls, value: List[str]) -> List[str]:
        origins = []
        for origin in value:
            origin = origin.strip().rstrip("/")
            if not origin or any(ch.isspace() for ch in origin):
                raise ValueError(f"Invalid CORS origin: {origin!r}")
            origins.append(origin)
        return origins

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide settings once, reading ../.env if present."""
    return Settings(
        _env_file=str(_BACKEND_DIR.parent / ".env"),
        _env_file_encoding="utf-8",
    )
