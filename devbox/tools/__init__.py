"""
External program wrappers used by the provisioner.
"""

from .base import (
    CommandError,
    CommandResult,
    Tool,
    ToolConfig,
    ToolError,
    ToolSchema,
    ToolValidationError,
)
from .distrobox import DistroboxTool, parse_container_names
from .dnf import DnfTool

__all__ = [
    "CommandError",
    "CommandResult",
    "DistroboxTool",
    "DnfTool",
    "Tool",
    "ToolConfig",
    "ToolError",
    "ToolSchema",
    "ToolValidationError",
    "parse_container_names",
]
