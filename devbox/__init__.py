"""
Fedora development container provisioner.

Creates or enters a distrobox container, installs language toolchains,
editors and CLI utilities into it, and patches the user's shell profile.
Every step is safe to repeat.
"""

__version__ = "0.1.0"
