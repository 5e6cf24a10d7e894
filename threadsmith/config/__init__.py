"""Configuration module - settings and environment management."""

from threadsmith.config.settings import (
    ConfigurationError,
    PROVIDER_ALIASES,
    Settings,
    load_settings,
)

__all__ = [
    "ConfigurationError",
    "PROVIDER_ALIASES",
    "Settings",
    "load_settings",
]
