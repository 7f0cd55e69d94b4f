"""
Mission orchestration: plan synthesis, modality routing and swarm execution.
"""

from .errors import ErrorKind, MissionError, PlanError, classify_error, summarize_error
from .state import (
    Directive,
    FileAttachment,
    MissionPhase,
    MissionReport,
    MissionState,
    Modality,
    Plan,
    PlanSource,
    Task,
    TaskKind,
    TaskStatus,
)
from .nodes import Cluster, NodeDefinition, NODE_MANIFEST, get_node, get_node_specialty
from .aggregator import (
    Artifact,
    ArtifactAggregator,
    ArtifactKind,
    Citation,
    Deliverable,
    GenerationResult,
    ResultStatus,
)
from .policy import CallPolicy, with_policy
from .events import EventBus, LogLevel, MissionEvent, MissionEventType
from .planner import PlanSynthesizer, emergency_plan, extract_json_payload, find_task_array
from .dispatcher import ModalityRouter, classify_modality
from .execution import ExecutionMode, create_executor
from .sequential import SequentialExecutor
from .parallel import ParallelExecutor
from .coordinator import SwarmCoordinator
from .orchestrator import MissionControl

__all__ = [
    "ErrorKind",
    "MissionError",
    "PlanError",
    "classify_error",
    "summarize_error",
    "Directive",
    "FileAttachment",
    "MissionPhase",
    "MissionReport",
    "MissionState",
    "Modality",
    "Plan",
    "PlanSource",
    "Task",
    "TaskKind",
    "TaskStatus",
    "Cluster",
    "NodeDefinition",
    "NODE_MANIFEST",
    "get_node",
    "get_node_specialty",
    "Artifact",
    "ArtifactAggregator",
    "ArtifactKind",
    "Citation",
    "Deliverable",
    "GenerationResult",
    "ResultStatus",
    "CallPolicy",
    "with_policy",
    "EventBus",
    "LogLevel",
    "MissionEvent",
    "MissionEventType",
    "PlanSynthesizer",
    "emergency_plan",
    "extract_json_payload",
    "find_task_array",
    "ModalityRouter",
    "classify_modality",
    "ExecutionMode",
    "create_executor",
    "SequentialExecutor",
    "ParallelExecutor",
    "SwarmCoordinator",
    "MissionControl",
]
