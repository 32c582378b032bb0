"""
Event log for provisioning runs.

Every event is kept on the manager for the current process and appended as
one JSON object per line to ``events.jsonl``.
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..utils.directories import get_secure_app_directory
from .events import LogEvent

EVENT_LOG_NAME = "events.jsonl"


def event_record(event: LogEvent) -> Dict[str, Any]:
    """Flatten an event into the JSONL record, metadata merged at top level."""
    record = asdict(event)
    metadata = record.pop("metadata") or {}
    record["timestamp"] = event.timestamp.isoformat() if event.timestamp else ""
    record.update(metadata)
    return record


class LogManager:
    """Collects provisioning events and appends them to the event log."""

    def __init__(self, log_dir: Optional[str] = None):
        if log_dir is None:
            self.log_dir = get_secure_app_directory("devbox", "logs")
        else:
            self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("LogManager")
        self.events: List[LogEvent] = []
        self.event_log_file = self.log_dir / EVENT_LOG_NAME

    async def emit_event(self, event: LogEvent) -> None:
        """Record an event; a failed write is logged and does not stop the run."""
        self.events.append(event)

        try:
            with open(self.event_log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(event_record(event), default=str) + "\n")
        except OSError as e:
            self.logger.error(
                "Failed to write event",
                extra={"event_type": event.event_type, "error_message": str(e)},
            )
