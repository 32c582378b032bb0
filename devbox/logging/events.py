"""
Simple log events for the provisioning event log.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class LogEvent:
    """Base class for all log events."""

    correlation_id: str
    event_type: str = ""
    timestamp: Optional[datetime] = None
    execution_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}
        if self.timestamp is None:
            self.timestamp = datetime.now()


@dataclass
class ExecutionStarted(LogEvent):
    """Event emitted when a provisioning run starts."""

    container_name: str = ""
    inside_container: bool = False

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "execution_started"


@dataclass
class ExecutionCompleted(LogEvent):
    """Event emitted when a provisioning run ends."""

    container_name: str = ""
    route: str = ""
    success: bool = False
    duration_seconds: float = 0.0
    returncode: int = 0

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "execution_completed"


@dataclass
class StepStarted(LogEvent):
    """Event emitted when a step starts."""

    step_id: str = ""
    step_name: str = ""

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "step_started"


@dataclass
class StepCompleted(LogEvent):
    """Event emitted when a step completes."""

    step_id: str = ""
    step_name: str = ""
    success: bool = False
    duration_seconds: float = 0.0
    error_message: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        self.event_type = "step_completed"
