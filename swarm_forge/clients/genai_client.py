"""
Google GenAI gateway client.
Covers text, grounded retrieval, image, video and speech generation.
"""

import logging
from typing import Any, Optional

from google import genai
from google.genai import errors, types

from .base import (
    GatewayClient,
    GatewayError,
    GatewayResponse,
    GenerationKind,
    GenerationRequest,
    GroundingSource,
    InlineData,
    QuotaExceededError,
    Retrieval,
    VideoOperation,
)

logger = logging.getLogger(__name__)

QUOTA_STATUSES = ("RESOURCE_EXHAUSTED", "RATE_LIMIT_EXCEEDED")


def _translate_error(exc: errors.APIError) -> GatewayError:
    status = (exc.status or "").upper()
    if exc.code == 429 or status in QUOTA_STATUSES:
        return QuotaExceededError(exc.message or str(exc), status_code=exc.code)
    return GatewayError(exc.message or str(exc), status_code=exc.code)


class GenAIClient(GatewayClient):
    def __init__(self, api_key: str, default_model: str = "gemini-3-pro-preview"):
        self.default_model = default_model
        self._client = genai.Client(api_key=api_key)

    def supports(self, kind: GenerationKind, retrieval: Optional[Retrieval] = None) -> bool:
        return True

    def _build_contents(self, request: GenerationRequest) -> list[types.Part]:
        parts = [
            types.Part.from_bytes(data=item.data, mime_type=item.mime_type)
            for item in request.attachments
        ]
        parts.append(types.Part.from_text(text=request.prompt))
        return parts

    def _build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        kwargs: dict[str, Any] = {}

        if request.system_instruction:
            kwargs["system_instruction"] = request.system_instruction

        if request.response_schema:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_schema"] = request.response_schema

        if request.retrieval == Retrieval.SEARCH:
            kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        elif request.retrieval == Retrieval.MAPS:
            kwargs["tools"] = [types.Tool(google_maps=types.GoogleMaps())]

        if request.thinking_budget > 0:
            kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=request.thinking_budget)
        elif request.max_output_tokens:
            kwargs["max_output_tokens"] = request.max_output_tokens

        if request.kind == GenerationKind.IMAGE and (request.aspect_ratio or request.image_size):
            kwargs["image_config"] = types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            )

        if request.kind == GenerationKind.SPEECH:
            kwargs["response_modalities"] = ["AUDIO"]
            kwargs["speech_config"] = types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=request.voice or "Kore"),
                ),
            )

        return types.GenerateContentConfig(**kwargs)

    def _parse_response(self, response: Any) -> GatewayResponse:
        text_parts: list[str] = []
        inline_parts: list[InlineData] = []
        grounding: list[GroundingSource] = []

        if not response.candidates:
            return GatewayResponse()

        candidate = response.candidates[0]
        parts = candidate.content.parts if candidate.content and candidate.content.parts else []
        for part in parts:
            if part.thought:
                continue
            if part.text:
                text_parts.append(part.text)
            if part.inline_data and part.inline_data.data:
                inline_parts.append(InlineData(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "application/octet-stream",
                ))

        metadata = candidate.grounding_metadata
        chunks = metadata.grounding_chunks if metadata and metadata.grounding_chunks else []
        for chunk in chunks:
            if chunk.web and chunk.web.uri:
                grounding.append(GroundingSource(uri=chunk.web.uri, title=chunk.web.title or "", kind="web"))
            elif chunk.maps and chunk.maps.uri:
                grounding.append(GroundingSource(uri=chunk.maps.uri, title=chunk.maps.title or "", kind="location"))

        return GatewayResponse(
            text="".join(text_parts) or None,
            inline_parts=inline_parts,
            grounding=grounding,
        )

    def _wrap_operation(self, operation: Any) -> VideoOperation:
        result_uri = None
        if operation.done and operation.response and operation.response.generated_videos:
            video = operation.response.generated_videos[0].video
            result_uri = video.uri if video else None
        return VideoOperation(
            name=operation.name or "",
            done=bool(operation.done),
            result_uri=result_uri,
            handle=operation,
        )

    async def _generate_video(self, request: GenerationRequest) -> GatewayResponse:
        kwargs: dict[str, Any] = {
            "model": request.model or self.default_model,
            "prompt": request.prompt,
            "config": types.GenerateVideosConfig(
                number_of_videos=1,
                resolution="720p",
                aspect_ratio="9:16" if request.aspect_ratio == "9:16" else "16:9",
            ),
        }

        reference = next((a for a in request.attachments if a.mime_type.startswith("image/")), None)
        if reference:
            kwargs["image"] = types.Image(image_bytes=reference.data, mime_type=reference.mime_type)

        operation = await self._client.aio.models.generate_videos(**kwargs)
        return GatewayResponse(operation=self._wrap_operation(operation))

    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        try:
            if request.kind == GenerationKind.VIDEO:
                return await self._generate_video(request)

            response = await self._client.aio.models.generate_content(
                model=request.model or self.default_model,
                contents=self._build_contents(request),
                config=self._build_config(request),
            )
        except errors.APIError as e:
            logger.debug("GenAI request failed: %s", e)
            raise _translate_error(e) from e

        return self._parse_response(response)

    async def poll_operation(self, operation: VideoOperation) -> VideoOperation:
        try:
            refreshed = await self._client.aio.operations.get(operation.handle)
        except errors.APIError as e:
            raise _translate_error(e) from e
        return self._wrap_operation(refreshed)
