"""
Swarm coordinator: owns one mission's lifecycle.
Workflow: Planning → Executing (sequential | staggered | parallel) → Finalizing | Aborted → Idle.
"""

import asyncio
import logging
import time
from typing import Optional, Sequence

from .aggregator import Artifact, ArtifactAggregator
from .dispatcher import ModalityRouter
from .errors import ErrorKind, PlanError, classify_error, summarize_error
from .events import EventBus, LogLevel, MissionEvent, MissionEventType
from .planner import PlanSynthesizer, emergency_plan
from .policy import CallPolicy, with_policy
from .sequential import SequentialExecutor
from .state import (
    Directive,
    FileAttachment,
    MissionPhase,
    MissionReport,
    MissionState,
    Modality,
    Plan,
    Task,
    TaskStatus,
)

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class SwarmCoordinator:
    def __init__(
        self,
        synthesizer: PlanSynthesizer,
        router: ModalityRouter,
        executor=None,
        events: Optional[EventBus] = None,
        call_policy: Optional[CallPolicy] = None,
        video_policy: Optional[CallPolicy] = None,
    ):
        self.synthesizer = synthesizer
        self.router = router
        self.executor = executor or SequentialExecutor()
        self.events = events if events is not None else EventBus()
        self.call_policy = call_policy or CallPolicy()
        self.video_policy = video_policy or self.call_policy.with_timeout(600.0)
        self.aggregator = ArtifactAggregator()
        self.state: Optional[MissionState] = None
        self._cancel_event: Optional[asyncio.Event] = None

    @property
    def is_active(self) -> bool:
        return self.state is not None and self.state.is_active

    def abort(self) -> bool:
        """Request cooperative cancellation. Returns False when no mission is running."""
        if not self.is_active or self.state.is_cancelled:
            return False
        self.state.is_cancelled = True
        if self._cancel_event is not None:
            self._cancel_event.set()
        self._log("MISSION_ABORT: no new tasks will start; in-flight results will be discarded", LogLevel.WARNING)
        return True

    async def run_mission(self, directive: Directive) -> MissionReport:
        if self.is_active:
            raise RuntimeError("A mission is already running")

        state = MissionState(directive=directive, is_active=True)
        self.state = state
        self._cancel_event = asyncio.Event()
        outcome = MissionPhase.EXECUTING

        try:
            self._set_phase(MissionPhase.PLANNING)
            state.plan = await self._plan(directive)
            for task in state.plan.tasks:
                self._emit(MissionEventType.TASK_STATUS_CHANGED, task.to_dict())

            self._set_phase(MissionPhase.EXECUTING)
            await self.executor.run(
                state.plan.tasks,
                lambda task: self._run_task(task, directive.files),
                lambda: state.is_cancelled,
            )

            if state.is_cancelled:
                outcome = MissionPhase.ABORTED
                self._set_phase(MissionPhase.ABORTED)
            elif state.artifacts:
                outcome = MissionPhase.FINALIZING
                self._set_phase(MissionPhase.FINALIZING)
                self._log(
                    f"MISSION_COMPLETE: {len(state.artifacts)} artifact(s) from "
                    f"{state.completed_count}/{len(state.plan)} task(s)",
                    LogLevel.SUCCESS,
                )
            else:
                self._log("MISSION_FAILED: no task produced an artifact", LogLevel.ERROR)
        finally:
            state.is_active = False
            state.finished_at = time.time()
            self._set_phase(MissionPhase.IDLE)

        return self._report(state, outcome)

    async def _plan(self, directive: Directive) -> Plan:
        self._log(f"COMMAND_RECEIVED: {directive.text}", node="SN-00")
        try:
            plan = await self.synthesizer.synthesize(directive)
        except PlanError as e:
            self._log(
                f"PLAN_FAILED ({summarize_error(e)}); activating emergency plan",
                LogLevel.WARNING,
                node="SN-00",
            )
            plan = emergency_plan(directive.text)
            plan.failure = e.kind
            return plan

        self._log(f"PLAN_VERIFIED: deploying {len(plan)} node(s)", LogLevel.SUCCESS, node="SN-00")
        return plan

    async def _run_task(self, task: Task, files: Sequence[FileAttachment] = ()):
        state = self.state
        self._transition(task, TaskStatus.ACTIVE)
        self._log(f"{task.label} dispatched", node=task.assigned_node)

        modality = self.router.classify(task)
        policy = self.video_policy if modality == Modality.VIDEO else self.call_policy

        try:
            result = await with_policy(
                lambda: self.router.dispatch(task, files, self._cancel_event),
                policy,
                label=f"{task.assigned_node}/{task.id}",
            )
        except Exception as e:
            kind = classify_error(e)
            self._halt(task, kind, summarize_error(e, kind))
            return

        if state.is_cancelled:
            self._halt(task, ErrorKind.MISSION_ABORTED, f"{ErrorKind.MISSION_ABORTED.value}: result discarded after abort")
            return

        if not result.success:
            kind = result.error_kind or ErrorKind.GATEWAY_FAILURE
            self._halt(task, kind, f"{kind.value}: {result.error_message or 'node reported an error'}")
            return

        artifacts = self.aggregator.absorb(task.id, result, label=task.label)
        state.artifacts.extend(artifacts)
        self._transition(task, TaskStatus.COMPLETED)
        for artifact in artifacts:
            self._emit(MissionEventType.ARTIFACT_ADDED, self._artifact_payload(artifact))

        self._log(
            f"{task.label} completed via {result.modality} in {result.elapsed_ms}ms "
            f"({len(artifacts)} artifact(s))",
            LogLevel.SUCCESS,
            node=task.assigned_node,
        )

    def _transition(self, task: Task, status: TaskStatus):
        task.transition(status)
        self._emit(MissionEventType.TASK_STATUS_CHANGED, task.to_dict())

    def _halt(self, task: Task, kind: ErrorKind, message: str):
        task.halt(kind, message)
        self._emit(MissionEventType.TASK_STATUS_CHANGED, task.to_dict())
        self._log(f"{task.label} halted: {message}", LogLevel.ERROR, node=task.assigned_node)

    def _set_phase(self, phase: MissionPhase):
        previous = self.state.phase
        self.state.phase = phase
        self._emit(MissionEventType.PHASE_CHANGED, {"phase": phase.value, "previous": previous.value})

    def _log(self, message: str, level: LogLevel = LogLevel.INFO, node: Optional[str] = None):
        logger.log(_LOG_LEVELS[level], "[%s] %s", node or "MISSION_CONTROL", message)
        self._emit(MissionEventType.LOG_LINE, {"level": level.value, "message": message, "node": node})

    def _emit(self, event_type: MissionEventType, payload: dict):
        self.events.emit(MissionEvent(event_type=event_type, mission_id=self.state.mission_id, payload=payload))

    def _artifact_payload(self, artifact: Artifact) -> dict:
        payload = artifact.to_dict()
        payload["artifact"] = artifact
        return payload

    def _report(self, state: MissionState, outcome: MissionPhase) -> MissionReport:
        plan = state.plan
        return MissionReport(
            mission_id=state.mission_id,
            phase=outcome,
            tasks=[t.snapshot() for t in plan.tasks] if plan is not None else [],
            artifacts=list(state.artifacts),
            cancelled=state.is_cancelled,
            plan_source=plan.source if plan is not None else None,
            plan_failure=plan.failure if plan is not None else None,
            elapsed=state.elapsed,
        )
