"""
Central configuration management for devbox.

This module provides type-safe configuration management using Pydantic,
with every value overridable through ``DEVBOX_``-prefixed environment
variables. With no overrides the provisioner targets ``fedora-dev`` built
from ``fedora:41``.
"""

import os
import shlex
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def check_container_name(name: str) -> str:
    """Strip ``name`` and reject empty names or names containing whitespace."""
    name = name.strip()
    if not name:
        raise ValueError("Container name must not be empty")
    if any(ch.isspace() for ch in name):
        raise ValueError("Container name must not contain whitespace")
    return name


class ProvisionerSettings(BaseSettings):
    """Container and host provisioning settings."""

    # Container
    container_name: str = Field(default="fedora-dev")
    base_image: str = Field(default="fedora")
    fedora_version: str = Field(default="41")
    container_marker: Path = Field(default=Path("/run/.containerenv"))
    runtime_command: str = Field(default="distrobox")

    # Host package manager
    package_manager: str = Field(default="dnf")
    use_sudo: Optional[bool] = Field(default=None)

    # Shell
    profile_path: Path = Field(default_factory=lambda: Path.home() / ".bashrc")

    # Command used to dispatch the provisioner inside the container
    reentry_command: str = Field(
        default_factory=lambda: f"{shlex.quote(sys.executable)} -m devbox"
    )

    @field_validator("container_name")
    @classmethod
    def validate_container_name(cls, v):
        """Validate container name is usable as a distrobox name."""
        return check_container_name(v)

    @field_validator("fedora_version")
    @classmethod
    def validate_fedora_version(cls, v):
        """Validate the Fedora release is a number or rawhide."""
        if not (v.isdigit() or v == "rawhide"):
            raise ValueError("Fedora version must be a release number or 'rawhide'")
        return v

    @field_validator("profile_path", mode="before")
    @classmethod
    def expand_profile_path(cls, v):
        """Expand a leading ``~`` in the profile path."""
        return Path(v).expanduser()

    @property
    def image(self) -> str:
        """Full image reference for new containers."""
        return f"{self.base_image}:{self.fedora_version}"

    @property
    def reentry_argv(self) -> List[str]:
        """Re-entry command split into argv."""
        return shlex.split(self.reentry_command)

    @property
    def needs_sudo(self) -> bool:
        """Whether privileged commands must be prefixed with sudo."""
        if self.use_sudo is not None:
            return self.use_sudo
        return os.geteuid() != 0

    model_config = {"env_prefix": "DEVBOX_", "case_sensitive": False}


class MonitoringSettings(BaseSettings):
    """Logging configuration."""

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text
    log_dir: Optional[str] = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    model_config = {"env_prefix": "DEVBOX_", "case_sensitive": False}


class AppSettings(BaseSettings):
    """Main application settings."""

    app_name: str = Field(default="devbox")
    app_version: str = Field(default="0.1.0")

    provisioner: ProvisionerSettings = Field(default_factory=ProvisionerSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    def get_display_dict(self) -> Dict[str, Any]:
        """Get configuration as a plain dict for display."""
        config = self.model_dump()
        config["provisioner"]["image"] = self.provisioner.image
        config["provisioner"]["needs_sudo"] = self.provisioner.needs_sudo
        return config

    model_config = {"env_prefix": "DEVBOX_", "case_sensitive": False}


# Singleton pattern for settings
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload of settings (useful for testing)."""
    global _settings
    _settings = None
    return get_settings()
