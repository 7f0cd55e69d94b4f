import asyncio

import pytest

from swarm_forge.clients import (
    GatewayError,
    GatewayResponse,
    GenerationKind,
    InlineData,
    QuotaExceededError,
    VideoOperation,
)
from swarm_forge.config import Config
from swarm_forge.orchestration import (
    Directive,
    ErrorKind,
    MissionControl,
    MissionEventType,
    MissionPhase,
    PlanSource,
    TaskStatus,
)

from conftest import ScriptedGateway, build_coordinator, planner_reply


def text_task(i, node="SP-01"):
    return {"id": f"t{i}", "label": f"Step_{i}", "assignedNode": node, "kind": "STRATEGY", "description": f"step {i}"}


def image_response():
    return GatewayResponse(inline_parts=[InlineData(data=b"png", mime_type="image/png")])


def record_phases(coordinator):
    phases = []
    coordinator.events.subscribe(
        lambda event: phases.append(event.payload["phase"]),
        [MissionEventType.PHASE_CHANGED],
    )
    return phases


class TestMissionLifecycle:
    async def test_image_succeeds_video_times_out(self):
        async def never_finishes():
            await asyncio.sleep(5)

        def handler(request):
            if request.system_instruction:
                return planner_reply([
                    {"id": "img", "label": "Visual", "assignedNode": "CC-10", "kind": "IMAGE", "description": "Hero visual"},
                    {"id": "vid", "label": "Trailer", "assignedNode": "CC-06", "kind": "VIDEO", "description": "Trailer"},
                ])
            if request.kind == GenerationKind.IMAGE:
                return image_response()
            return never_finishes()

        coordinator = build_coordinator(ScriptedGateway(handler=handler), video_timeout=0.05)
        phases = record_phases(coordinator)

        report = await coordinator.run_mission(Directive("Launch"))

        assert report.statuses() == [TaskStatus.COMPLETED, TaskStatus.HALTED]
        assert report.tasks[1].error_kind == ErrorKind.NODE_TIMEOUT
        assert report.tasks[1].error_message.startswith("NODE_TIMEOUT:")
        assert len(report.artifacts) == 1
        assert not report.failed
        assert report.partial
        assert report.phase == MissionPhase.FINALIZING
        assert phases == ["PLANNING", "EXECUTING", "FINALIZING", "IDLE"]
        assert coordinator.state.phase == MissionPhase.IDLE
        assert not coordinator.is_active

    async def test_failure_does_not_stop_remaining_tasks(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1), text_task(2), text_task(3)])
            if request.prompt == "step 2":
                return GatewayError("upstream exploded", status_code=500)
            return GatewayResponse(text=f"done {request.prompt}")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        report = await coordinator.run_mission(Directive("x"))

        assert report.statuses() == [TaskStatus.COMPLETED, TaskStatus.HALTED, TaskStatus.COMPLETED]
        assert report.tasks[1].error_kind == ErrorKind.GATEWAY_FAILURE
        assert len(report.artifacts) == 2
        assert {a.task_id for a in report.artifacts} == {"t1", "t3"}

    async def test_persisted_quota_halts_task_after_one_retry(self):
        calls = {"quota": 0}

        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1), text_task(2)])
            if request.prompt == "step 1":
                calls["quota"] += 1
                return QuotaExceededError("429 RESOURCE_EXHAUSTED")
            return GatewayResponse(text="ok")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        report = await coordinator.run_mission(Directive("x"))

        assert calls["quota"] == 2
        assert report.tasks[0].error_kind == ErrorKind.RESOURCE_EXHAUSTED
        assert report.tasks[1].status == TaskStatus.COMPLETED

    async def test_multi_part_image_yields_one_artifact(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([
                    {"id": "img", "label": "Visual", "assignedNode": "CC-10", "kind": "IMAGE", "description": "Hero"},
                ])
            return GatewayResponse(inline_parts=[
                InlineData(data=b"a", mime_type="image/png"),
                InlineData(data=b"b", mime_type="image/png"),
            ])

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        report = await coordinator.run_mission(Directive("x"))

        completed = [t for t in report.tasks if t.status == TaskStatus.COMPLETED]
        assert len(report.artifacts) == len(completed) == 1

    async def test_zero_artifacts_is_failed(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1)])
            return GatewayError("down")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        phases = record_phases(coordinator)
        report = await coordinator.run_mission(Directive("x"))

        assert report.failed
        assert not report.partial
        assert report.phase == MissionPhase.EXECUTING
        assert phases == ["PLANNING", "EXECUTING", "IDLE"]


class TestPlanFallback:
    async def test_emergency_plan_after_format_error(self):
        def handler(request):
            if request.system_instruction:
                return GatewayResponse(text="I am unable to comply.")
            if request.kind == GenerationKind.IMAGE:
                return image_response()
            if request.kind == GenerationKind.VIDEO:
                return GatewayResponse(operation=VideoOperation(name="op", done=True, result_uri="https://v/1.mp4"))
            return GatewayResponse(text="brief")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        report = await coordinator.run_mission(Directive("sneakers"))

        assert report.plan_source == PlanSource.FALLBACK
        assert report.plan_failure == ErrorKind.PLAN_FORMAT_ERROR
        assert [t.assigned_node for t in report.tasks] == ["RA-01", "SP-01", "CC-10", "CC-06"]
        assert report.statuses() == [TaskStatus.COMPLETED] * 4
        assert [a.kind.value for a in report.artifacts] == ["document", "document", "image", "video"]

    async def test_emergency_plan_after_gateway_failure(self):
        def handler(request):
            if request.system_instruction:
                return GatewayError("unauthorized", status_code=401)
            return GatewayResponse(text="ok")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        report = await coordinator.run_mission(Directive("x"))

        assert report.plan_failure == ErrorKind.GATEWAY_FAILURE
        assert len(report.tasks) == 4


class TestAbort:
    async def test_abort_between_tasks_in_sequential_mode(self):
        coordinator = None

        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(i) for i in range(1, 5)])
            if request.prompt == "step 2":
                coordinator.abort()
            return GatewayResponse(text="ok")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        phases = record_phases(coordinator)
        report = await coordinator.run_mission(Directive("x"))

        assert report.statuses() == [
            TaskStatus.COMPLETED,
            TaskStatus.HALTED,
            TaskStatus.PENDING,
            TaskStatus.PENDING,
        ]
        assert report.tasks[1].error_kind == ErrorKind.MISSION_ABORTED
        assert report.cancelled
        assert not report.failed
        assert [a.task_id for a in report.artifacts] == ["t1"]
        assert phases == ["PLANNING", "EXECUTING", "ABORTED", "IDLE"]

    async def test_abort_without_mission_is_noop(self):
        coordinator = build_coordinator(ScriptedGateway())
        assert coordinator.abort() is False

    async def test_abort_during_staggered_start(self):
        coordinator = None

        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(i) for i in range(1, 4)])
            if request.prompt == "step 1":
                coordinator.abort()
            return GatewayResponse(text="ok")

        coordinator = build_coordinator(ScriptedGateway(handler=handler), mode="staggered", stagger_interval=0.05)
        report = await coordinator.run_mission(Directive("x"))

        assert report.statuses() == [TaskStatus.HALTED, TaskStatus.PENDING, TaskStatus.PENDING]


class TestConcurrentModes:
    async def test_parallel_runs_every_task(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(i) for i in range(1, 5)])
            return GatewayResponse(text=request.prompt)

        coordinator = build_coordinator(ScriptedGateway(handler=handler), mode="parallel")
        report = await coordinator.run_mission(Directive("x"))

        assert report.statuses() == [TaskStatus.COMPLETED] * 4
        assert sorted(a.payload for a in report.artifacts) == ["step 1", "step 2", "step 3", "step 4"]

    async def test_max_concurrency_bounds_in_flight_tasks(self):
        in_flight = {"now": 0, "peak": 0}

        async def slow_text(prompt):
            in_flight["now"] += 1
            in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
            await asyncio.sleep(0.01)
            in_flight["now"] -= 1
            return GatewayResponse(text=prompt)

        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(i) for i in range(1, 6)])
            return slow_text(request.prompt)

        coordinator = build_coordinator(ScriptedGateway(handler=handler), mode="parallel", max_concurrency=2)
        report = await coordinator.run_mission(Directive("x"))

        assert report.statuses() == [TaskStatus.COMPLETED] * 5
        assert in_flight["peak"] == 2


class TestEvents:
    async def test_task_and_artifact_events(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1)])
            return GatewayResponse(text="ok")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        events = []
        coordinator.events.subscribe(events.append)

        await coordinator.run_mission(Directive("x"))

        statuses = [e.payload["status"] for e in events if e.event_type == MissionEventType.TASK_STATUS_CHANGED]
        assert statuses == ["PENDING", "ACTIVE", "COMPLETED"]
        assert sum(1 for e in events if e.event_type == MissionEventType.ARTIFACT_ADDED) == 1
        assert any(e.event_type == MissionEventType.LOG_LINE for e in events)

    async def test_failing_subscriber_does_not_break_mission(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1)])
            return GatewayResponse(text="ok")

        def explode(event):
            raise RuntimeError("ui crashed")

        coordinator = build_coordinator(ScriptedGateway(handler=handler))
        coordinator.events.subscribe(explode)

        report = await coordinator.run_mission(Directive("x"))

        assert report.statuses() == [TaskStatus.COMPLETED]


class TestMissionControl:
    async def test_submit_directive_runs_in_background(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1)])
            return GatewayResponse(text="ok")

        config = Config()
        config.execution.settle_delay = 0
        control = MissionControl(config, client=ScriptedGateway(handler=handler))
        phases = []
        control.subscribe(lambda e: phases.append(e.payload["phase"]), [MissionEventType.PHASE_CHANGED])

        mission = control.submit_directive("Launch")
        assert isinstance(mission, asyncio.Task)

        report = await mission

        assert report.statuses() == [TaskStatus.COMPLETED]
        assert phases[-1] == "IDLE"
        assert len(control.artifacts) == 1

    async def test_subscribers_share_the_coordinator_bus(self):
        def handler(request):
            if request.system_instruction:
                return planner_reply([text_task(1)])
            return GatewayResponse(text="ok")

        config = Config()
        config.execution.settle_delay = 0
        control = MissionControl(config, client=ScriptedGateway(handler=handler))
        seen = []
        control.subscribe(seen.append)

        await control.run_directive("x")

        assert control.coordinator.events is control.events
        kinds = {event.event_type for event in seen}
        assert kinds == set(MissionEventType)

    async def test_second_submit_while_running_is_rejected(self):
        release = asyncio.Event()

        async def wait_for_release():
            await release.wait()
            return planner_reply([text_task(1)])

        def handler(request):
            if request.system_instruction:
                return wait_for_release()
            return GatewayResponse(text="ok")

        config = Config()
        config.execution.settle_delay = 0
        control = MissionControl(config, client=ScriptedGateway(handler=handler))

        mission = control.submit_directive("first")
        with pytest.raises(RuntimeError):
            control.submit_directive("second")

        release.set()
        await mission

    def test_missing_api_key_is_rejected(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

        with pytest.raises(ValueError):
            MissionControl(Config())
