"""
DNF tool for host package management.

This module provides a concrete implementation of the Tool interface for
dnf and rpm: installing packages, refreshing metadata and registering
third-party repositories.
"""

from pathlib import Path
from typing import Sequence

from .base import CommandResult, Tool, ToolConfig, ToolSchema, ToolValidationError

# dnf check-update exits with 100 when updates are available
CHECK_UPDATE_AVAILABLE = 100


class DnfTool(Tool):
    """
    DNF tool for package installation.

    Provides functionality for:
    - Installing packages non-interactively
    - Refreshing repository metadata
    - Importing signing keys and writing repository definitions
    """

    def __init__(self, config: ToolConfig):
        super().__init__(config)

    async def get_schema(self) -> ToolSchema:
        """Return the DNF tool schema."""
        return ToolSchema(
            name="dnf",
            description="DNF package manager tool",
            version=self.config.version,
            actions={
                "install": {
                    "description": "Install packages",
                    "parameters": {
                        "packages": {
                            "type": "array",
                            "items": {"type": "string"},
                            "required": True,
                        },
                    },
                },
                "refresh_metadata": {
                    "description": "Refresh repository metadata",
                    "parameters": {},
                },
                "import_key": {
                    "description": "Import an RPM signing key",
                    "parameters": {"url": {"type": "string", "required": True}},
                },
                "write_repository": {
                    "description": "Write a repository definition file",
                    "parameters": {
                        "path": {"type": "string", "required": True},
                        "content": {"type": "string", "required": True},
                    },
                },
            },
            required_permissions=["root"],
            dependencies=["dnf", "rpm"],
        )

    async def install(self, packages: Sequence[str]) -> None:
        """Install packages; already installed packages are a no-op for dnf."""
        if not packages:
            raise ToolValidationError("packages are required for install")

        self.logger.info(
            "Installing packages",
            extra={"tool_name": self.config.name, "packages": list(packages)},
        )
        await self._run_command(
            self._privileged([self.config.executable, "install", "-y", *packages]),
            capture=False,
        )

    async def refresh_metadata(self) -> CommandResult:
        """
        Refresh repository metadata.

        The exit status is never treated as an error: ``check-update`` exits
        100 when updates are pending and a failed refresh does not stop the
        following install.
        """
        result = await self._run_command(
            self._privileged([self.config.executable, "check-update"]),
            check=False,
            capture=False,
        )
        if result.returncode == CHECK_UPDATE_AVAILABLE:
            self.logger.info(
                "Metadata refreshed, updates available",
                extra={"tool_name": self.config.name},
            )
        elif not result.success:
            self.logger.warning(
                "Metadata refresh failed, continuing",
                extra={
                    "tool_name": self.config.name,
                    "returncode": result.returncode,
                },
            )
        return result

    async def import_key(self, url: str) -> None:
        """Import an RPM signing key; importing a known key is a no-op."""
        await self._run_command(self._privileged(["rpm", "--import", url]))

    async def write_repository(self, path: Path, content: str) -> bool:
        """
        Write a repository definition file.

        Returns:
            bool: False when the file already holds exactly ``content``
        """
        if path.exists() and path.read_text(encoding="utf-8") == content:
            self.logger.info(
                "Repository already registered",
                extra={"tool_name": self.config.name, "path": str(path)},
            )
            return False

        await self._run_command(
            self._privileged(["tee", str(path)]), input_text=content
        )
        self.logger.info(
            "Repository definition written",
            extra={"tool_name": self.config.name, "path": str(path)},
        )
        return True
