"""
Shared fixtures: a scripted in-memory gateway and fast call policies.
"""

import asyncio
from typing import Any, Callable, Optional

import pytest

from swarm_forge import stats
from swarm_forge.clients import (
    GatewayClient,
    GatewayResponse,
    GenerationKind,
    GenerationRequest,
    Retrieval,
    VideoOperation,
)
from swarm_forge.config import ExecutionConfig, GenerationConfig, ModelConfig
from swarm_forge.orchestration import (
    CallPolicy,
    ModalityRouter,
    PlanSynthesizer,
    SwarmCoordinator,
    create_executor,
)


class ScriptedGateway(GatewayClient):
    """
    Gateway fake. Each generate() pops the next scripted outcome, or asks
    `handler(request)` when one is set. An outcome may be a GatewayResponse,
    an exception instance (raised) or a coroutine (awaited first).
    """

    def __init__(
        self,
        responses: Optional[list[Any]] = None,
        polls: Optional[list[Any]] = None,
        handler: Optional[Callable[[GenerationRequest], Any]] = None,
    ):
        self.responses = list(responses or [])
        self.polls = list(polls or [])
        self.handler = handler
        self.calls: list[GenerationRequest] = []
        self.poll_calls: list[VideoOperation] = []
        self.unsupported: set[GenerationKind] = set()

    async def _resolve(self, outcome: Any) -> Any:
        if asyncio.iscoroutine(outcome):
            outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        self.calls.append(request)
        if self.handler is not None:
            outcome = self.handler(request)
        elif self.responses:
            outcome = self.responses.pop(0)
        else:
            outcome = GatewayResponse(text="ok")
        return await self._resolve(outcome)

    async def poll_operation(self, operation: VideoOperation) -> VideoOperation:
        self.poll_calls.append(operation)
        outcome = self.polls.pop(0) if self.polls else VideoOperation(name=operation.name, done=True)
        return await self._resolve(outcome)

    def supports(self, kind: GenerationKind, retrieval: Optional[Retrieval] = None) -> bool:
        return kind not in self.unsupported


def planner_reply(tasks: list[dict]) -> GatewayResponse:
    import json
    return GatewayResponse(text=json.dumps({"tasks": tasks}))


@pytest.fixture(autouse=True)
def clean_stats():
    stats.reset_stats()
    yield
    stats.reset_stats()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def fast_policy():
    return CallPolicy(timeout=1.0, max_retries=1, backoff_base=0)


@pytest.fixture
def generation():
    return GenerationConfig(video_poll_interval=0)


def build_coordinator(
    client: GatewayClient,
    mode: str = "sequential",
    timeout: float = 1.0,
    video_timeout: float = 1.0,
    settle_delay: float = 0.0,
    stagger_interval: float = 0.0,
    max_concurrency: Optional[int] = None,
) -> SwarmCoordinator:
    policy = CallPolicy(timeout=timeout, max_retries=1, backoff_base=0)
    execution = ExecutionConfig(
        mode=mode,
        settle_delay=settle_delay,
        stagger_interval=stagger_interval,
        max_concurrency=max_concurrency,
    )
    return SwarmCoordinator(
        PlanSynthesizer(client, model="planner", policy=policy),
        ModalityRouter(client, ModelConfig(), GenerationConfig(video_poll_interval=0), poll_policy=policy),
        executor=create_executor(mode, execution),
        call_policy=policy,
        video_policy=policy.with_timeout(video_timeout),
    )
