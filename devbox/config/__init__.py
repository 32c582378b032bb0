"""
Configuration management for devbox.

This module provides centralized configuration management using Pydantic
for type safety, validation, and environment-based settings.
"""

from .settings import (
    AppSettings,
    MonitoringSettings,
    ProvisionerSettings,
    get_settings,
    reload_settings,
)

__all__ = [
    "get_settings",
    "reload_settings",
    "AppSettings",
    "MonitoringSettings",
    "ProvisionerSettings",
]
