"""
Application directory utilities.

Log files live under the XDG data directory, falling back to a private
temporary directory when that is not writable.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional


def get_secure_app_directory(
    app_name: str = "devbox", subdirectory: Optional[str] = None
) -> Path:
    """
    Get a writable per-user application directory.

    Args:
        app_name: Name of the application (default: "devbox")
        subdirectory: Optional subdirectory within the app directory

    Returns:
        Path: Writable directory path

    Examples:
        >>> log_dir = get_secure_app_directory("devbox", "logs")
    """
    base_dir = _get_data_home() / app_name
    app_dir = base_dir / subdirectory if subdirectory else base_dir

    try:
        app_dir.mkdir(parents=True, exist_ok=True)
        _test_directory_writable(app_dir)
        return app_dir

    except OSError:
        return _create_secure_temp_directory(f"{app_name}_", "_data")


def _get_data_home() -> Path:
    """$XDG_DATA_HOME, or ~/.local/share."""
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home)
    return Path.home() / ".local" / "share"


def _test_directory_writable(directory: Path) -> None:
    """
    Test if directory is writable by creating and removing a test file.

    Raises:
        OSError: If directory is not writable
    """
    test_file = directory / ".write_test"
    test_file.touch()
    test_file.unlink()


def _create_secure_temp_directory(prefix: str, suffix: str) -> Path:
    """Create a temporary directory with owner-only permissions."""
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix, suffix=suffix))
    os.chmod(temp_dir, 0o700)
    return temp_dir
