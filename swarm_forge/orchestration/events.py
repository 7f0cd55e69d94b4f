"""
Mission event stream.
The coordinator publishes task, artifact, phase and log events; UIs subscribe.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class MissionEventType(Enum):
    TASK_STATUS_CHANGED = "task_status_changed"
    ARTIFACT_ADDED = "artifact_added"
    PHASE_CHANGED = "phase_changed"
    LOG_LINE = "log_line"


class LogLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class MissionEvent:
    event_type: MissionEventType
    mission_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: f"evt_{time.time_ns()}")

    def to_dict(self) -> dict:
        return {
            "type": self.event_type.value,
            "mission": self.mission_id,
            "payload": self.payload,
            "timestamp": self.timestamp,
            "id": self.id,
        }


Subscriber = Callable[[MissionEvent], None]


class EventBus:
    def __init__(self):
        self._subscribers: list[tuple[Subscriber, Optional[set[MissionEventType]]]] = []

    def subscribe(
        self,
        callback: Subscriber,
        event_types: Optional[list[MissionEventType]] = None,
    ) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        entry = (callback, set(event_types) if event_types else None)
        self._subscribers.append(entry)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber):
        self._subscribers = [s for s in self._subscribers if s[0] is not callback]

    def emit(self, event: MissionEvent):
        for callback, event_types in list(self._subscribers):
            if event_types is not None and event.event_type not in event_types:
                continue
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed on %s", event.event_type.value)

    def __len__(self) -> int:
        return len(self._subscribers)
