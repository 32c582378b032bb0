"""
Command-line interface for devbox.
"""

from .main import cli, provision_main

__all__ = ["cli", "provision_main"]
