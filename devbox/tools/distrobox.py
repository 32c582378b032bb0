"""
Distrobox tool for development container management.

This module provides a concrete implementation of the Tool interface for
the distrobox CLI: listing, creating and entering containers.
"""

from typing import List, Sequence

from .base import Tool, ToolConfig, ToolSchema, ToolValidationError


def parse_container_names(output: str) -> List[str]:
    """
    Extract container names from ``distrobox list`` output.

    The table is pipe separated with an ``ID | NAME | STATUS | IMAGE``
    header. Lines without pipes are read as ``NAME ...`` rows.
    """
    names: List[str] = []
    name_index = 1

    for line in output.splitlines():
        if not line.strip():
            continue

        if "|" not in line:
            names.append(line.split()[0])
            continue

        columns = [column.strip() for column in line.split("|")]
        upper = [column.upper() for column in columns]
        if "NAME" in upper:
            name_index = upper.index("NAME")
            continue

        if name_index < len(columns) and columns[name_index]:
            names.append(columns[name_index])

    return names


class DistroboxTool(Tool):
    """
    Distrobox tool for development containers.

    Provides functionality for:
    - Listing existing containers
    - Creating a container from a base image
    - Running a command inside a container
    """

    def __init__(self, config: ToolConfig):
        super().__init__(config)

    async def get_schema(self) -> ToolSchema:
        """Return the distrobox tool schema."""
        return ToolSchema(
            name="distrobox",
            description="Distrobox development container tool",
            version=self.config.version,
            actions={
                "list_containers": {
                    "description": "List existing containers",
                    "parameters": {},
                },
                "create_container": {
                    "description": "Create a container from an image",
                    "parameters": {
                        "name": {"type": "string", "required": True},
                        "image": {"type": "string", "required": True},
                    },
                },
                "command_available": {
                    "description": "Check a command resolves inside a container",
                    "parameters": {
                        "name": {"type": "string", "required": True},
                        "command": {"type": "string", "required": True},
                    },
                },
                "enter_container": {
                    "description": "Run a command inside a container",
                    "parameters": {
                        "name": {"type": "string", "required": True},
                        "command": {
                            "type": "array",
                            "items": {"type": "string"},
                            "required": True,
                        },
                    },
                },
            },
            required_permissions=["podman"],
            dependencies=["distrobox"],
        )

    def _version_command(self) -> List[str]:
        return [self.config.executable, "version"]

    async def list_containers(self) -> List[str]:
        """Return the names of all existing containers."""
        result = await self._run_command(
            [self.config.executable, "list", "--no-color"]
        )
        names = parse_container_names(result.stdout)
        self.logger.debug(
            "Listed containers",
            extra={"tool_name": self.config.name, "containers": names},
        )
        return names

    async def command_available(self, name: str, command: str) -> bool:
        """Whether ``command`` resolves to an executable inside the container."""
        result = await self._run_command(
            [
                self.config.executable,
                "enter",
                name,
                "--",
                "sh",
                "-c",
                'command -v "$1"',
                "sh",
                command,
            ],
            check=False,
        )
        return result.success

    async def create_container(self, name: str, image: str) -> None:
        """Create a new container named ``name`` from ``image``."""
        if not name or not image:
            raise ToolValidationError("name and image are required for create")

        self.logger.info(
            "Creating container",
            extra={"tool_name": self.config.name, "container": name, "image": image},
        )
        await self._run_command(
            [self.config.executable, "create", "--name", name, "--image", image],
            capture=False,
        )

    async def enter_container(self, name: str, command: Sequence[str]) -> None:
        """Run ``command`` inside the container and wait for it to finish."""
        if not command:
            raise ToolValidationError("command is required for enter")

        self.logger.info(
            "Entering container",
            extra={
                "tool_name": self.config.name,
                "container": name,
                "command": list(command),
            },
        )
        await self._run_command(
            [self.config.executable, "enter", name, "--", *command],
            capture=False,
        )
