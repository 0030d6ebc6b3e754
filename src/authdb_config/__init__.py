"""Shared configuration package for the identity store."""

from .settings import (
    Settings,
    clear_settings_cache,
    get_config_dir,
    get_settings,
)

__all__ = [
    "Settings",
    "clear_settings_cache",
    "get_config_dir",
    "get_settings",
]
