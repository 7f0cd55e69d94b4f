"""
Mission state: directives, tasks, plans and the per-mission state container.
The coordinator owns MissionState; everything else sees snapshots via events.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .errors import ErrorKind

if TYPE_CHECKING:
    from .aggregator import Artifact


class TaskKind(Enum):
    RESEARCH = "RESEARCH"
    STRATEGY = "STRATEGY"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class Modality(Enum):
    TEXT = "text"
    FAST_TEXT = "fast_text"
    SEARCH = "search"
    LOCATION = "location"
    IMAGE = "image"
    VIDEO = "video"
    SPEECH = "speech"


class TaskStatus(Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    HALTED = "HALTED"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.HALTED)


class MissionPhase(Enum):
    IDLE = "IDLE"
    PLANNING = "PLANNING"
    EXECUTING = "EXECUTING"
    FINALIZING = "FINALIZING"
    ABORTED = "ABORTED"


class PlanSource(Enum):
    SYNTHESIZED = "synthesized"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FileAttachment:
    data: bytes
    mime_type: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Directive:
    text: str
    files: tuple[FileAttachment, ...] = ()


_ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: (TaskStatus.ACTIVE,),
    TaskStatus.ACTIVE: (TaskStatus.COMPLETED, TaskStatus.HALTED),
    TaskStatus.COMPLETED: (),
    TaskStatus.HALTED: (),
}


@dataclass
class Task:
    id: str
    label: str
    description: str
    assigned_node: str
    kind: TaskKind = TaskKind.STRATEGY
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    explicit_kind: bool = True
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    def transition(self, status: TaskStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValueError(f"Task {self.id}: illegal transition {self.status.value} -> {status.value}")
        self.status = status
        if status == TaskStatus.ACTIVE:
            self.progress = max(self.progress, 10)
        elif status == TaskStatus.COMPLETED:
            self.progress = 100

    def halt(self, kind: ErrorKind, message: str) -> None:
        self.transition(TaskStatus.HALTED)
        self.error_kind = kind
        self.error_message = message

    def snapshot(self) -> "Task":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "assignedNode": self.assigned_node,
            "kind": self.kind.value,
            "status": self.status.value,
            "progress": self.progress,
            "error": self.error_kind.value if self.error_kind else None,
        }


@dataclass
class Plan:
    tasks: list[Task]
    source: PlanSource = PlanSource.SYNTHESIZED
    failure: Optional[ErrorKind] = None

    def __len__(self) -> int:
        return len(self.tasks)


@dataclass
class MissionState:
    directive: Directive
    mission_id: str = field(default_factory=lambda: f"mission_{uuid.uuid4().hex[:8]}")
    plan: Optional[Plan] = None
    phase: MissionPhase = MissionPhase.IDLE
    artifacts: list["Artifact"] = field(default_factory=list)
    is_active: bool = False
    is_cancelled: bool = False
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def completed_count(self) -> int:
        if self.plan is None:
            return 0
        return sum(1 for t in self.plan.tasks if t.status == TaskStatus.COMPLETED)

    @property
    def elapsed(self) -> float:
        return (self.finished_at or time.time()) - self.started_at


@dataclass
class MissionReport:
    mission_id: str
    phase: MissionPhase
    tasks: list[Task]
    artifacts: list["Artifact"]
    cancelled: bool
    plan_source: Optional[PlanSource]
    plan_failure: Optional[ErrorKind] = None
    elapsed: float = 0.0

    @property
    def failed(self) -> bool:
        return not self.artifacts and not self.cancelled

    @property
    def partial(self) -> bool:
        return bool(self.artifacts) and any(t.status != TaskStatus.COMPLETED for t in self.tasks)

    def statuses(self) -> list[TaskStatus]:
        return [t.status for t in self.tasks]
