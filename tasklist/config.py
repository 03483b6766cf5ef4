"""
Unified configuration for storage location and other settings.

The storage directory resolution:
1. Checks TASKLIST_STORAGE_DIR environment variable first
2. Falls back to the configured value (.env file or STORAGE_DIR)
3. Falls back to a data/ directory under the current working directory

This module uses Pydantic Settings for type-safe configuration management
with support for .env files and environment variable overrides.
"""
import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORAGE_DIR = "data"

# Same order of magnitude as a browser localStorage origin quota
DEFAULT_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024


class Settings(BaseSettings):
    """Application settings for tasklist.

    All configuration values can be set via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # Storage Configuration
    # ============================================================================
    storage_dir: str = Field(default="", validate_default=True)  # Resolved by validator
    storage_key: str = "todo_tasks"
    storage_quota_bytes: int = DEFAULT_STORAGE_QUOTA_BYTES  # 0 disables the quota

    # ============================================================================
    # Logging Configuration
    # ============================================================================
    log_level: str = "WARNING"

    @field_validator("storage_dir", mode="before")
    @classmethod
    def resolve_storage_dir(cls, v: Optional[str]) -> str:
        """
        Resolve the storage directory.

        Resolution order:
        1. TASKLIST_STORAGE_DIR environment variable
        2. Value from .env file or Settings field (if provided)
        3. data/ under the current working directory

        Returns:
            Absolute path to the storage directory
        """
        env_dir = os.getenv("TASKLIST_STORAGE_DIR")
        if env_dir:
            return os.path.abspath(env_dir)
        if v:
            return os.path.abspath(v)
        return os.path.abspath(DEFAULT_STORAGE_DIR)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings()


def ensure_storage_directory(storage_dir: Optional[str] = None) -> str:
    """
    Ensure the storage directory exists.

    Args:
        storage_dir: Directory to create. If None, uses the configured one.

    Returns:
        The absolute directory path
    """
    if storage_dir is None:
        storage_dir = get_settings().storage_dir
    storage_dir = os.path.abspath(storage_dir)
    os.makedirs(storage_dir, exist_ok=True)
    return storage_dir
