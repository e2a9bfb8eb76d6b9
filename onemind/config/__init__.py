"""Configuration package."""

from onemind.config.settings import (
    AppSettings,
    GeminiSettings,
    RouterSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "RouterSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
