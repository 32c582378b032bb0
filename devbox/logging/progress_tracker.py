"""
Console step messages with rich, backed by the event log.

External commands inherit the terminal while they run, so steps are
reported as plain persistent lines rather than a live progress bar.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from rich.console import Console

from .events import StepCompleted, StepStarted
from .log_manager import LogManager

BANNER_RULE = "=" * 50


class ProgressTracker:
    """Prints step messages and emits step events."""

    def __init__(self, log_manager: LogManager, console: Optional[Console] = None):
        self.log_manager = log_manager
        self.console = console or Console(highlight=False, emoji=False)
        self._step_messages: List[str] = []

    def _print(self, message: str, style: Optional[str] = None) -> None:
        self.console.print(
            message, style=style, markup=False, highlight=False, soft_wrap=True
        )
        self._step_messages.append(message)

    def banner(self, title: str, lines: Iterable[str] = ()) -> None:
        """Print a ruled banner."""
        self._print(BANNER_RULE)
        self._print(title, style="bold")
        for line in lines:
            self._print(line)
        self._print(BANNER_RULE)

    def add_step_message(
        self, step_name: str, indent: int = 0, completed: bool = False
    ) -> None:
        """Print a progress line, or a completion line when ``completed``."""
        indent_amount = "  " * indent
        icon = "✓" if completed else ("→" if indent == 0 else "-")
        self._print(
            f"{indent_amount}{icon} {step_name}",
            style="green" if completed else None,
        )

    def log_step_success(self, message: str, indent: int = 0) -> None:
        """Print a completion line."""
        self.add_step_message(message, indent, completed=True)

    def print_lines(self, lines: Iterable[str]) -> None:
        """Print pre-rendered lines such as the completion summary."""
        for line in lines:
            self._print(line)

    @property
    def step_messages(self) -> List[str]:
        """Messages printed so far."""
        return list(self._step_messages)

    def track_step_execution(
        self, step_id: str, step_name: str, correlation_id: str, execution_id: str
    ):
        """Context manager emitting start/completion events around a step."""

        class StepTracker:
            def __init__(
                self, tracker, step_id, step_name, correlation_id, execution_id
            ):
                self.tracker = tracker
                self.step_id = step_id
                self.step_name = step_name
                self.correlation_id = correlation_id
                self.execution_id = execution_id
                self.start_time = None

            async def __aenter__(self):
                self.start_time = datetime.utcnow()

                await self.tracker.log_manager.emit_event(
                    StepStarted(
                        timestamp=self.start_time,
                        correlation_id=self.correlation_id,
                        execution_id=self.execution_id,
                        step_id=self.step_id,
                        step_name=self.step_name,
                    )
                )
                return self

            async def __aexit__(self, exc_type, exc_val, exc_tb):
                end_time = datetime.utcnow()
                duration = (
                    end_time - (self.start_time or datetime.utcnow())
                ).total_seconds()
                success = exc_type is None

                await self.tracker.log_manager.emit_event(
                    StepCompleted(
                        timestamp=end_time,
                        correlation_id=self.correlation_id,
                        execution_id=self.execution_id,
                        step_id=self.step_id,
                        step_name=self.step_name,
                        success=success,
                        duration_seconds=duration,
                        error_message=str(exc_val) if exc_val else None,
                    )
                )

        return StepTracker(self, step_id, step_name, correlation_id, execution_id)
