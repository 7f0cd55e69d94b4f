"""
Modality router: classifies each task and runs the matching generation routine.
"""

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, Optional, Sequence

from ..clients.base import (
    GatewayClient,
    GatewayError,
    GatewayResponse,
    GenerationKind,
    GenerationRequest,
    InlineData,
    Retrieval,
    VideoOperation,
)
from ..config import GenerationConfig, ModelConfig
from .. import stats
from .aggregator import ArtifactKind, Citation, Deliverable, GenerationResult, ResultStatus
from .errors import ErrorKind, MissionError
from .media import is_raw_pcm, pcm_sample_rate, to_data_uri, wrap_pcm_as_wav
from .nodes import get_node_specialty
from .policy import CallPolicy, with_policy
from .state import FileAttachment, Modality, Task, TaskKind

logger = logging.getLogger(__name__)


KIND_MODALITIES: dict[TaskKind, Modality] = {
    TaskKind.RESEARCH: Modality.SEARCH,
    TaskKind.STRATEGY: Modality.TEXT,
    TaskKind.IMAGE: Modality.IMAGE,
    TaskKind.VIDEO: Modality.VIDEO,
}

# Checked in order; the first modality with a matching pattern wins.
INTENT_PATTERNS: list[tuple[Modality, list[str]]] = [
    (Modality.VIDEO, [r"video", r"movie", r"\bfilm", r"animat", r"\bveo\b", r"trailer", r"motion", r"\bsequence\b"]),
    (Modality.IMAGE, [r"image", r"picture", r"photo", r"\bdraw", r"\bart\b", r"artwork", r"\bfilter", r"visual", r"graphic", r"poster", r"\blogo\b"]),
    (Modality.SPEECH, [r"\bspeak", r"audio", r"\btts\b", r"\bvoice", r"\bsay\b", r"\btalk", r"narrat"]),
    (Modality.LOCATION, [r"\bmaps?\b", r"location", r"nearby", r"restaurant", r"address", r"\bplaces?\b", r"directions"]),
    (Modality.SEARCH, [r"search", r"google", r"current", r"\bnews\b", r"latest", r"who is", r"status of", r"research"]),
    (Modality.FAST_TEXT, [r"\bfast\b", r"\bquick", r"\blite\b", r"\bcheck\b"]),
]

_COMPILED_PATTERNS = [
    (modality, [re.compile(p, re.IGNORECASE) for p in patterns])
    for modality, patterns in INTENT_PATTERNS
]

EDIT_PATTERN = re.compile(r"\b(edit|filter|remove|change|add|retouch)\b", re.IGNORECASE)


def match_intent(description: str) -> Optional[Modality]:
    for modality, patterns in _COMPILED_PATTERNS:
        if any(p.search(description) for p in patterns):
            return modality
    return None


def classify_modality(
    description: str,
    kind: Optional[TaskKind] = None,
    node_id: str = "",
) -> Modality:
    if kind is not None:
        return KIND_MODALITIES[kind]

    intent = match_intent(description)
    if intent is not None:
        return intent

    specialty = get_node_specialty(node_id) if node_id else None
    if specialty is not None:
        return specialty

    return Modality.TEXT


Handler = Callable[[Task, list[InlineData], Optional[asyncio.Event]], Awaitable[GenerationResult]]


class ModalityRouter:
    def __init__(
        self,
        client: GatewayClient,
        models: Optional[ModelConfig] = None,
        generation: Optional[GenerationConfig] = None,
        poll_policy: Optional[CallPolicy] = None,
    ):
        self.client = client
        self.models = models or ModelConfig()
        self.generation = generation or GenerationConfig()
        self.poll_policy = poll_policy or CallPolicy()
        self._handlers: dict[Modality, Handler] = {
            Modality.TEXT: self._run_text,
            Modality.FAST_TEXT: self._run_fast_text,
            Modality.SEARCH: self._run_search,
            Modality.LOCATION: self._run_location,
            Modality.IMAGE: self._run_image,
            Modality.VIDEO: self._run_video,
            Modality.SPEECH: self._run_speech,
        }

    def classify(self, task: Task) -> Modality:
        return classify_modality(
            task.description,
            task.kind if task.explicit_kind else None,
            task.assigned_node,
        )

    async def dispatch(
        self,
        task: Task,
        files: Sequence[FileAttachment] = (),
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        modality = self.classify(task)
        attachments = [InlineData(data=f.data, mime_type=f.mime_type) for f in files]
        logger.debug("Dispatching %s to %s via %s", task.id, task.assigned_node, modality.value)

        start_time = time.monotonic()
        result = await self._handlers[modality](task, attachments, cancel_event)
        result.elapsed_ms = int((time.monotonic() - start_time) * 1000)
        return result

    async def _generate(self, request: GenerationRequest, modality: Modality) -> GatewayResponse:
        if not self.client.supports(request.kind, request.retrieval):
            raise GatewayError(f"gateway cannot serve {modality.value} requests")
        stats.record_call(modality.value)
        return await self.client.generate(request)

    def _success(self, task: Task, modality: Modality, **kwargs) -> GenerationResult:
        return GenerationResult(
            status=ResultStatus.SUCCESS,
            node_id=task.assigned_node,
            modality=modality.value,
            **kwargs,
        )

    def _text_result(self, task: Task, modality: Modality, response: GatewayResponse, model: str) -> GenerationResult:
        text = (response.text or "").strip()
        citations = [
            Citation(source_uri=g.uri, title=g.title, kind=g.kind)
            for g in response.grounding
        ]
        deliverables = []
        if text:
            deliverables.append(Deliverable(
                kind=ArtifactKind.DOCUMENT,
                payload=text,
                label=task.label,
                mime_type="text/markdown",
                metadata={"model": model},
            ))
        return self._success(
            task,
            modality,
            text_output=text or None,
            deliverables=deliverables,
            citations=citations,
        )

    async def _run_text(self, task, attachments, cancel_event) -> GenerationResult:
        budget = self.generation.thinking_budget
        request = GenerationRequest(
            prompt=task.description,
            kind=GenerationKind.TEXT,
            model=self.models.text,
            attachments=attachments,
            thinking_budget=budget,
            max_output_tokens=None if budget > 0 else self.generation.max_tokens,
        )
        response = await self._generate(request, Modality.TEXT)
        return self._text_result(task, Modality.TEXT, response, self.models.text)

    async def _run_fast_text(self, task, attachments, cancel_event) -> GenerationResult:
        request = GenerationRequest(
            prompt=task.description,
            kind=GenerationKind.TEXT,
            model=self.models.fast,
            attachments=attachments,
            max_output_tokens=self.generation.max_tokens,
        )
        response = await self._generate(request, Modality.FAST_TEXT)
        return self._text_result(task, Modality.FAST_TEXT, response, self.models.fast)

    async def _run_search(self, task, attachments, cancel_event) -> GenerationResult:
        request = GenerationRequest(
            prompt=task.description,
            kind=GenerationKind.TEXT,
            model=self.models.search,
            retrieval=Retrieval.SEARCH,
        )
        response = await self._generate(request, Modality.SEARCH)
        return self._text_result(task, Modality.SEARCH, response, self.models.search)

    async def _run_location(self, task, attachments, cancel_event) -> GenerationResult:
        request = GenerationRequest(
            prompt=task.description,
            kind=GenerationKind.TEXT,
            model=self.models.location,
            retrieval=Retrieval.MAPS,
        )
        response = await self._generate(request, Modality.LOCATION)
        return self._text_result(task, Modality.LOCATION, response, self.models.location)

    async def _run_image(self, task, attachments, cancel_event) -> GenerationResult:
        references = [a for a in attachments if a.mime_type.startswith("image/")]
        editing = bool(references) or bool(EDIT_PATTERN.search(task.description))

        if editing:
            model = self.models.image_edit
            request = GenerationRequest(
                prompt=task.description,
                kind=GenerationKind.IMAGE,
                model=model,
                attachments=references,
            )
        else:
            model = self.models.image
            request = GenerationRequest(
                prompt=task.description,
                kind=GenerationKind.IMAGE,
                model=model,
                aspect_ratio=self.generation.aspect_ratio,
                image_size=self.generation.image_size,
            )

        response = await self._generate(request, Modality.IMAGE)
        images = [p for p in response.inline_parts if p.mime_type.startswith("image/") and p.data]
        if not images:
            return self._success(task, Modality.IMAGE, text_output=response.text)

        # one image per task: the final part is the finished render
        image = images[-1]
        deliverable = Deliverable(
            kind=ArtifactKind.IMAGE,
            payload=to_data_uri(image.data, image.mime_type),
            label=task.label,
            mime_type=image.mime_type,
            metadata={"model": model, "edited": editing, "candidates": len(images)},
        )
        return self._success(task, Modality.IMAGE, text_output=response.text, deliverables=[deliverable])

    async def _run_speech(self, task, attachments, cancel_event) -> GenerationResult:
        request = GenerationRequest(
            prompt=task.description,
            kind=GenerationKind.SPEECH,
            model=self.models.speech,
            voice=self.generation.voice,
        )
        response = await self._generate(request, Modality.SPEECH)

        audio = next((p for p in response.inline_parts if p.mime_type.startswith("audio/")), None)
        if audio is None or not audio.data:
            return self._success(task, Modality.SPEECH)

        if is_raw_pcm(audio.mime_type):
            data = wrap_pcm_as_wav(audio.data, sample_rate=pcm_sample_rate(audio.mime_type))
            mime_type = "audio/wav"
        else:
            data, mime_type = audio.data, audio.mime_type

        return self._success(task, Modality.SPEECH, deliverables=[Deliverable(
            kind=ArtifactKind.AUDIO,
            payload=to_data_uri(data, mime_type),
            label=task.label,
            mime_type=mime_type,
            metadata={"model": self.models.speech, "voice": self.generation.voice},
        )])

    async def _poll(self, operation: VideoOperation) -> VideoOperation:
        stats.record_call("video_poll")
        return await self.client.poll_operation(operation)

    async def _run_video(self, task, attachments, cancel_event) -> GenerationResult:
        request = GenerationRequest(
            prompt=task.description,
            kind=GenerationKind.VIDEO,
            model=self.models.video,
            attachments=[a for a in attachments if a.mime_type.startswith("image/")][:1],
            aspect_ratio=self.generation.aspect_ratio,
        )
        response = await self._generate(request, Modality.VIDEO)
        operation = response.operation
        if operation is None:
            return self._success(task, Modality.VIDEO)

        polls = 0
        while not operation.done:
            await asyncio.sleep(self.generation.video_poll_interval)
            if cancel_event is not None and cancel_event.is_set():
                raise MissionError(ErrorKind.MISSION_ABORTED, f"video job {operation.name} abandoned")
            polls += 1
            operation = await with_policy(
                lambda op=operation: self._poll(op),
                self.poll_policy,
                label=f"{task.assigned_node} poll",
            )

        logger.debug("Video operation %s finished after %d polls", operation.name, polls)
        if not operation.result_uri:
            return self._success(task, Modality.VIDEO)

        return self._success(task, Modality.VIDEO, deliverables=[Deliverable(
            kind=ArtifactKind.VIDEO,
            payload=operation.result_uri,
            label=task.label,
            mime_type="video/mp4",
            metadata={"model": self.models.video, "polls": polls},
        )])
