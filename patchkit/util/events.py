import logging
from datetime import datetime, timezone
from enum import StrEnum
from pathlib import Path
from typing import Any

import ulid
from pydantic import BaseModel

from patchkit.util.jsonl import append_jsonl

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    TOOL_CALL_STARTED = "tool_call_started"
    TOOL_CALL_FINISHED = "tool_call_finished"
    PATCH_APPLIED = "patch_applied"
    PATCH_FAILED = "patch_failed"


class Event(BaseModel):
    event_type: EventType
    timestamp: datetime
    run_id: str
    step_id: int
    payload: dict[str, Any]


class EventLogger:
    """Logs edit events to a JSONL file."""

    def __init__(
        self,
        events_file: Path,
        run_id: str | None = None,
    ):
        self.run_id = run_id or str(ulid.ULID())
        self.events_file = Path(events_file)
        self._step_counter = 0
        logger.debug("EventLogger initialized for run %s, writing to %s", self.run_id, events_file)

    def next_step_id(self) -> int:
        self._step_counter += 1
        return self._step_counter

    def log(self, event_type: EventType, payload: dict) -> Event:
        event = Event(
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            run_id=self.run_id,
            step_id=self.next_step_id(),
            payload=payload,
        )

        logger.debug("Logged event %s (step %d) for run %s", event_type, event.step_id, self.run_id)
        append_jsonl(self.events_file, event)
        return event
