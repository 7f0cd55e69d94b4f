"""
Mission control: wires config, gateway client, planner, router and coordinator together.
"""

import asyncio
import logging
from typing import Callable, Optional, Sequence

from ..clients import GatewayClient, create_client
from ..config import Config, api_key_env_vars
from .coordinator import SwarmCoordinator
from .dispatcher import ModalityRouter
from .events import EventBus, MissionEvent, MissionEventType
from .execution import create_executor
from .planner import PlanSynthesizer
from .policy import CallPolicy
from .state import Directive, FileAttachment, MissionReport

logger = logging.getLogger(__name__)


class MissionControl:
    def __init__(self, config: Optional[Config] = None, client: Optional[GatewayClient] = None):
        self.config = config or Config()
        self.client = client or self._create_client()
        self.events = EventBus()

        policy = self.config.policy
        self.call_policy = CallPolicy(
            timeout=policy.timeout,
            max_retries=policy.max_retries,
            backoff_base=policy.backoff_base,
        )
        self.video_policy = self.call_policy.with_timeout(policy.video_timeout)

        self.synthesizer = PlanSynthesizer(
            self.client,
            model=self.config.models.planner,
            policy=self.call_policy,
        )
        self.router = ModalityRouter(
            self.client,
            models=self.config.models,
            generation=self.config.generation,
            poll_policy=self.call_policy,
        )
        self.coordinator = SwarmCoordinator(
            self.synthesizer,
            self.router,
            executor=create_executor(self.config.execution.mode, self.config.execution),
            events=self.events,
            call_policy=self.call_policy,
            video_policy=self.video_policy,
        )
        self._mission: Optional[asyncio.Task] = None

    def _create_client(self) -> GatewayClient:
        api_key = self.config.resolve_api_key()
        if not api_key:
            env_names = " or ".join(api_key_env_vars(self.config.gateway.provider))
            raise ValueError(f"No API key configured: set gateway.api_key or {env_names}")
        return create_client(
            provider=self.config.gateway.provider,
            api_key=api_key,
            default_model=self.config.models.text,
            base_url=self.config.gateway.base_url,
        )

    def subscribe(
        self,
        callback: Callable[[MissionEvent], None],
        event_types: Optional[list[MissionEventType]] = None,
    ) -> Callable[[], None]:
        return self.events.subscribe(callback, event_types)

    async def run_directive(self, text: str, files: Sequence[FileAttachment] = ()) -> MissionReport:
        return await self.coordinator.run_mission(Directive(text=text, files=tuple(files)))

    def submit_directive(self, text: str, files: Sequence[FileAttachment] = ()) -> asyncio.Task:
        """Start a mission in the background; progress is observed through events."""
        if self.coordinator.is_active or (self._mission and not self._mission.done()):
            raise RuntimeError("A mission is already running")

        self._mission = asyncio.create_task(self.run_directive(text, files))
        self._mission.add_done_callback(self._on_mission_done)
        return self._mission

    def _on_mission_done(self, task: asyncio.Task):
        if task.cancelled():
            logger.warning("Mission task was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Mission crashed: %s", exc, exc_info=exc)

    def abort_mission(self) -> bool:
        return self.coordinator.abort()

    @property
    def artifacts(self):
        return list(self.coordinator.aggregator.artifacts)
