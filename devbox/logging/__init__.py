"""
Event logging and console progress for devbox.

This module provides a simple, event-driven log with console step
messages for the provisioning run.
"""

from .events import (
    ExecutionCompleted,
    ExecutionStarted,
    LogEvent,
    StepCompleted,
    StepStarted,
)
from .log_manager import LogManager
from .progress_tracker import ProgressTracker

__all__ = [
    "LogManager",
    "LogEvent",
    "ExecutionStarted",
    "ExecutionCompleted",
    "StepStarted",
    "StepCompleted",
    "ProgressTracker",
]
