"""Configuration module for AddonSync."""

from .settings import (
    CoalescingSettings,
    HealthSettings,
    HttpPoolSettings,
    ManifestSettings,
    Settings,
    StremioSettings,
    UpdateCheckSettings,
    get_settings,
)

__all__ = [
    "CoalescingSettings",
    "HealthSettings",
    "HttpPoolSettings",
    "ManifestSettings",
    "Settings",
    "StremioSettings",
    "UpdateCheckSettings",
    "get_settings",
]
