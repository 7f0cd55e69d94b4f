"""
Result aggregator for normalizing task outputs into session artifacts.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .errors import ErrorKind


class ArtifactKind(Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


class ResultStatus(Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Citation:
    source_uri: str
    title: str = ""
    kind: str = "web"


@dataclass
class Deliverable:
    kind: ArtifactKind
    payload: str
    label: Optional[str] = None
    mime_type: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationResult:
    status: ResultStatus
    node_id: str
    modality: str = ""
    text_output: Optional[str] = None
    deliverables: list[Deliverable] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    elapsed_ms: int = 0
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @classmethod
    def failure(cls, node_id: str, kind: ErrorKind, message: str, elapsed_ms: int = 0) -> "GenerationResult":
        return cls(
            status=ResultStatus.ERROR,
            node_id=node_id,
            error_kind=kind,
            error_message=message,
            elapsed_ms=elapsed_ms,
        )


@dataclass(frozen=True)
class Artifact:
    id: str
    kind: ArtifactKind
    payload: str
    label: str
    task_id: str
    originating_node: str
    created_at: float
    mime_type: Optional[str] = None
    citations: tuple[Citation, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "taskId": self.task_id,
            "node": self.originating_node,
            "createdAt": self.created_at,
            "mimeType": self.mime_type,
            "citations": [{"uri": c.source_uri, "title": c.title, "kind": c.kind} for c in self.citations],
        }


class ArtifactAggregator:
    def __init__(self):
        self.artifacts: list[Artifact] = []

    def absorb(self, task_id: str, result: GenerationResult, label: Optional[str] = None) -> list[Artifact]:
        if not result.success:
            return []

        citations = tuple(result.citations)
        absorbed = []
        for deliverable in result.deliverables:
            artifact = Artifact(
                id=uuid.uuid4().hex[:12],
                kind=deliverable.kind,
                payload=deliverable.payload,
                label=deliverable.label or label or task_id,
                task_id=task_id,
                originating_node=result.node_id,
                created_at=time.time(),
                mime_type=deliverable.mime_type,
                citations=citations,
                metadata=dict(deliverable.metadata),
            )
            absorbed.append(artifact)

        self.artifacts.extend(absorbed)
        return absorbed

    def by_task(self, task_id: str) -> list[Artifact]:
        return [a for a in self.artifacts if a.task_id == task_id]

    def summary(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for artifact in self.artifacts:
            counts[artifact.kind.value] = counts.get(artifact.kind.value, 0) + 1
        return counts
