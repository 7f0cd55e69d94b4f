"""
OpenAI-compatible gateway client.
Handles text, structured text, image and speech generation for any
OpenAI-compatible endpoint. Grounded retrieval and video are not available.
"""

import base64
import logging
from typing import Any, Optional

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncAzureOpenAI, AsyncOpenAI, RateLimitError

from .base import (
    GatewayClient,
    GatewayError,
    GatewayResponse,
    GenerationKind,
    GenerationRequest,
    InlineData,
    QuotaExceededError,
    Retrieval,
    VideoOperation,
)
from .genai_client import GenAIClient

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(GatewayClient):
    def __init__(
        self,
        api_key: str,
        base_url: Optional[str],
        default_model: str,
        enable_reasoning: bool = True,
        provider: str = "openai",
        http_timeout: float = 120.0,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model
        self.enable_reasoning = enable_reasoning
        self.provider = provider.lower()

        if self.provider == "azure":
            self._client = AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=base_url,
                api_version="2024-05-01-preview",
                http_client=httpx.AsyncClient(timeout=http_timeout),
            )
        else:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                http_client=httpx.AsyncClient(timeout=http_timeout),
            )

    def supports(self, kind: GenerationKind, retrieval: Optional[Retrieval] = None) -> bool:
        if retrieval is not None:
            return False
        return kind in (GenerationKind.TEXT, GenerationKind.IMAGE, GenerationKind.SPEECH)

    def _convert_messages(self, request: GenerationRequest) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if request.system_instruction:
            messages.append({"role": "system", "content": request.system_instruction})

        images = [a for a in request.attachments if a.mime_type.startswith("image/")]
        if not images:
            messages.append({"role": "user", "content": request.prompt})
            return messages

        content: list[dict[str, Any]] = [
            {
                "type": "image_url",
                "image_url": {"url": f"data:{a.mime_type};base64,{base64.b64encode(a.data).decode('ascii')}"},
            }
            for a in images
        ]
        content.append({"type": "text", "text": request.prompt})
        messages.append({"role": "user", "content": content})
        return messages

    async def _chat(self, request: GenerationRequest) -> GatewayResponse:
        kwargs: dict[str, Any] = {
            "model": request.model or self.default_model,
            "messages": self._convert_messages(request),
        }

        if request.max_output_tokens:
            kwargs["max_tokens"] = request.max_output_tokens

        if request.response_schema:
            kwargs["response_format"] = {"type": "json_object"}

        if self.enable_reasoning and request.thinking_budget > 0:
            if self.provider == "deepseek" or "deepseek" in (self.base_url or "").lower():
                kwargs["reasoning_effort"] = "high"
            else:
                kwargs["extra_body"] = {"enable_thinking": True}

        response = await self._client.chat.completions.create(**kwargs)
        if not response.choices:
            return GatewayResponse()
        return GatewayResponse(text=response.choices[0].message.content)

    async def _image(self, request: GenerationRequest) -> GatewayResponse:
        kwargs: dict[str, Any] = {
            "model": request.model or self.default_model,
            "prompt": request.prompt,
            "n": 1,
            "response_format": "b64_json",
        }
        response = await self._client.images.generate(**kwargs)

        parts = [
            InlineData(data=base64.b64decode(item.b64_json), mime_type="image/png")
            for item in (response.data or [])
            if item.b64_json
        ]
        return GatewayResponse(inline_parts=parts)

    async def _speech(self, request: GenerationRequest) -> GatewayResponse:
        response = await self._client.audio.speech.create(
            model=request.model or self.default_model,
            voice=request.voice or "alloy",
            input=request.prompt,
            response_format="pcm",
        )
        data = response.content
        if not data:
            return GatewayResponse()
        return GatewayResponse(inline_parts=[InlineData(data=data, mime_type="audio/pcm;rate=24000")])

    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        if not self.supports(request.kind, request.retrieval):
            raise GatewayError(f"{self.provider} gateway does not support {request.kind.value} generation")

        try:
            if request.kind == GenerationKind.IMAGE:
                return await self._image(request)
            if request.kind == GenerationKind.SPEECH:
                return await self._speech(request)
            return await self._chat(request)
        except RateLimitError as e:
            raise QuotaExceededError(str(e), status_code=e.status_code) from e
        except APIStatusError as e:
            raise GatewayError(str(e), status_code=e.status_code) from e
        except APITimeoutError as e:
            raise GatewayError(f"Request timed out: {e}") from e
        except APIConnectionError as e:
            raise GatewayError(f"Connection failed: {e}") from e

    async def poll_operation(self, operation: VideoOperation) -> VideoOperation:
        raise GatewayError(f"{self.provider} gateway does not support long-running operations")


def create_client(
    provider: str,
    api_key: str,
    default_model: str,
    base_url: Optional[str] = None,
) -> GatewayClient:
    if provider.lower() in ("genai", "gemini", "google"):
        return GenAIClient(api_key=api_key, default_model=default_model)

    return OpenAICompatibleClient(
        api_key=api_key,
        base_url=base_url,
        default_model=default_model,
        provider=provider,
    )
