# microtools/config.py
"""
Centralized application configuration using pydantic-settings.

All settings are read from environment variables or .env file.
"""

import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Priority: environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    # --- Database ---
    DB_URL: str = Field(
        default="postgresql://localhost:5432/microtools",
        description="Database connection URL (PostgreSQL or SQLite)"
    )

    # --- Redis (arq worker only) ---
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    # --- Server ---
    HOST: str = Field(
        default="127.0.0.1",
        description="Server bind host"
    )
    PORT: int = Field(
        default=3459,
        description="Server bind port"
    )

    # --- Debug / Logging ---
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    OTEL_ENABLED: bool = Field(
        default=False,
        description="Install OpenTelemetry tracing on startup"
    )

    # --- File shares ---
    FILES_DIR: str = Field(
        default=os.path.join(PROJECT_ROOT, "data", "files"),
        description="Root directory for uploaded file shares"
    )
    FILESHARE_DEFAULT_DAYS: int = Field(
        default=3,
        description="Default lifetime of a file share in days"
    )
    MAX_UPLOAD_FILES: int = Field(default=20, description="Max files per share")
    MAX_UPLOAD_BYTES: int = Field(default=50 * 1024 * 1024, description="Max bytes per file")

    # --- Expiration sweep ---
    SWEEP_ENABLED: bool = Field(
        default=True,
        description="Run the periodic expiration sweep inside the API process"
    )
    SWEEP_INTERVAL_SECONDS: float = Field(
        default=3600.0,
        description="Seconds between two expiration sweeps"
    )
    ORPHAN_GRACE_SECONDS: float = Field(
        default=3600.0,
        description="Minimum age of a blob directory without a row before it is reclaimed"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v_upper

    @field_validator("SWEEP_INTERVAL_SECONDS")
    @classmethod
    def validate_sweep_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("SWEEP_INTERVAL_SECONDS must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings()


# --- Singleton instance for easy import ---
settings = get_settings()


# --- Module-level exports ---

# Database
DATABASE_URL: str = settings.DB_URL

# Server
HOST: str = settings.HOST
PORT: int = settings.PORT
DEBUG: bool = settings.DEBUG
LOG_LEVEL: str = settings.LOG_LEVEL

# Redis
REDIS_URL: str = settings.REDIS_URL

# --- Paths ---
LOGS_PATH: str = os.path.join(PROJECT_ROOT, "logs")

# Lifetimes a file share may be created with, in days.
FILESHARE_EXPIRY_CHOICES: tuple[int, ...] = (1, 3, 7, 30)
