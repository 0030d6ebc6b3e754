"""Application settings loaded from environment variables.

Configuration file discovery (in priority order):
1. OS environment variables (always highest priority)
2. AUTHDB_ENV_FILE environment variable (path to a .env file)
3. config/.env in the project root

Uses pydantic-settings for automatic type coercion and validation.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve().parent

    for parent in [current, *current.parents]:
        if (parent / "config").is_dir():
            return parent
        if (parent / ".git").is_dir():
            return parent

    return Path.cwd()


def get_config_dir() -> Path:
    """Get the config directory path."""
    return _find_project_root() / "config"


def _resolve_env_file_path() -> Path | None:
    """Resolve the .env file path.

    Priority:
    1. AUTHDB_ENV_FILE env var (full path, or relative to the project root)
    2. config/.env
    """
    env_file_path = os.environ.get("AUTHDB_ENV_FILE")
    if env_file_path:
        path = Path(env_file_path)
        if not path.is_absolute():
            path = _find_project_root() / path
        if path.exists():
            return path

    env_file = get_config_dir() / ".env"
    if env_file.exists():
        return env_file

    return None


class Settings(BaseSettings):
    """Identity store configuration loaded from environment variables.

    Values are loaded from:
    1. OS environment variables prefixed with ``AUTHDB_`` (highest priority)
    2. .env file (see ``_resolve_env_file_path``)
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHDB_",
        env_file=_resolve_env_file_path(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "auth-db:"

    # Password hashing
    salt_length: int = 16
    hash_iterations: int = 10000
    hash_key_length: int = 64
    hash_digest: Literal["sha1", "sha256", "sha512", "bcrypt"] = "sha512"
    password_required: bool = True
    password_min_length: int = 6
    password_max_length: int = 128

    # Records
    auto_timestamps: bool = True

    # Sessions
    session_ttl_seconds: int = 3600
    session_id_bytes: int = 24

    # Logging
    log_level: str = "INFO"

    @field_validator("key_prefix")
    @classmethod
    def _validate_key_prefix(cls, v: str) -> str:
        """Key prefix must end with the ':' separator."""
        if v and not v.endswith(":"):
            return f"{v}:"
        return v

    @field_validator(
        "salt_length",
        "hash_iterations",
        "hash_key_length",
        "session_ttl_seconds",
        "session_id_bytes",
    )
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            msg = "must be a positive integer"
            raise ValueError(msg)
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
