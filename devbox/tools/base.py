"""
Base tool interface for external command-line programs.

This module defines the tool abstraction layer that wraps the container
runtime and the host package manager. Every external command goes through
``Tool._run_command`` and runs to completion before the caller continues.
"""

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field


class ToolStatus(Enum):
    """Tool operation status."""

    IDLE = "idle"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class CommandResult(BaseModel):
    """Result of a single external command."""

    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: Optional[float] = None

    @property
    def success(self) -> bool:
        """Whether the command exited with status zero."""
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        """Shell-quoted rendering of the command."""
        return shlex.join(self.command)


class ToolConfig(BaseModel):
    """Configuration for a tool."""

    name: str
    executable: str
    version: str = "1.0.0"
    use_sudo: bool = False


class ToolSchema(BaseModel):
    """Schema describing tool capabilities."""

    name: str
    description: str
    version: str
    actions: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    required_permissions: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class Tool(ABC):
    """
    Base tool interface for all external programs.

    Subclasses expose one coroutine per supported action. Failures are
    raised as ``CommandError`` carrying the exit status of the failing
    command; nothing is retried.
    """

    def __init__(self, config: ToolConfig):
        self.config = config
        self.logger = logging.getLogger(f"{self.__class__.__name__}:{config.name}")
        self.status = ToolStatus.IDLE
        self._available = False
        self._version: Optional[str] = None

    async def initialize(self) -> None:
        """Check that the tool's executable can be run."""
        result = await self._run_command(self._version_command(), check=False)
        if not result.success:
            raise ToolError(
                f"{self.config.executable} is not available: "
                f"{result.stderr.strip() or 'exit status ' + str(result.returncode)}"
            )
        self._available = True
        self._version = result.stdout.strip().splitlines()[0] if result.stdout else ""
        self.logger.info(
            "Tool initialized",
            extra={"tool_name": self.config.name, "tool_version": self._version},
        )

    async def get_status(self) -> Dict[str, Any]:
        """Describe availability for the ``tools`` command."""
        schema = await self.get_schema()
        try:
            await self.initialize()
        except ToolError as e:
            return {"status": "unavailable", "error": str(e)}
        return {
            "status": "available",
            "description": schema.description,
            "version": self._version,
            "actions": list(schema.actions),
        }

    @abstractmethod
    async def get_schema(self) -> ToolSchema:
        """Return the tool's schema describing its capabilities."""

    def _version_command(self) -> List[str]:
        return [self.config.executable, "--version"]

    def _privileged(self, cmd: Sequence[str]) -> List[str]:
        """Prefix a command with sudo when the tool is configured for it."""
        if self.config.use_sudo:
            return ["sudo", *cmd]
        return list(cmd)

    async def _run_command(
        self,
        cmd: Sequence[str],
        check: bool = True,
        capture: bool = True,
        input_text: Optional[str] = None,
    ) -> CommandResult:
        """
        Run an external command and wait for it to exit.

        Args:
            cmd: Command and arguments
            check: Raise ``CommandError`` on a non-zero exit status
            capture: Capture stdout/stderr instead of inheriting the terminal
            input_text: Text written to the command's stdin

        Returns:
            CommandResult: Exit status and captured output
        """
        command = list(cmd)
        start_time = datetime.utcnow()
        self.status = ToolStatus.EXECUTING
        self.logger.debug(
            "Running command",
            extra={"tool_name": self.config.name, "command": shlex.join(command)},
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE if input_text is not None else None,
                stdout=asyncio.subprocess.PIPE if capture else None,
                stderr=asyncio.subprocess.PIPE if capture else None,
            )
        except FileNotFoundError as e:
            self.status = ToolStatus.FAILED
            result = CommandResult(command=command, returncode=127, stderr=str(e))
            if check:
                raise CommandError(result)
            return result

        stdout, stderr = await process.communicate(
            input_text.encode("utf-8") if input_text is not None else None
        )
        duration = (datetime.utcnow() - start_time).total_seconds()

        result = CommandResult(
            command=command,
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8") if stdout else "",
            stderr=stderr.decode("utf-8") if stderr else "",
            duration=duration,
        )

        if not result.success:
            self.status = ToolStatus.FAILED
            if check:
                self.logger.error(
                    "Command failed",
                    extra={
                        "tool_name": self.config.name,
                        "command": result.command_line,
                        "returncode": result.returncode,
                        "duration_seconds": duration,
                    },
                )
                raise CommandError(result)
            return result

        self.status = ToolStatus.COMPLETED
        return result


class ToolError(Exception):
    """Base exception for tool-related errors."""


class ToolValidationError(ToolError):
    """Exception raised for invalid tool arguments."""


class CommandError(ToolError):
    """Exception raised when an external command exits non-zero."""

    def __init__(self, result: CommandResult):
        self.result = result
        self.returncode = result.returncode
        message = (
            f"Command '{result.command_line}' failed with exit status "
            f"{result.returncode}"
        )
        if result.stderr.strip():
            message = f"{message}: {result.stderr.strip()}"
        super().__init__(message)
