from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from google.genai import errors, types
from openai import RateLimitError

from swarm_forge.clients import (
    GatewayError,
    GenAIClient,
    GenerationKind,
    GenerationRequest,
    OpenAICompatibleClient,
    QuotaExceededError,
    Retrieval,
    VideoOperation,
    create_client,
)
from swarm_forge.clients.genai_client import _translate_error


@pytest.fixture
def openai_client():
    return OpenAICompatibleClient(api_key="sk-test", base_url="https://api.example.com/v1", default_model="gpt-test")


class TestCreateClient:
    def test_genai_provider(self):
        assert isinstance(create_client("genai", "key", "gemini-3-pro-preview"), GenAIClient)

    def test_openai_provider(self):
        client = create_client("openai", "key", "gpt-test", base_url="https://api.example.com/v1")
        assert isinstance(client, OpenAICompatibleClient)


class TestOpenAICompatibleClient:
    def test_capabilities(self, openai_client):
        assert openai_client.supports(GenerationKind.TEXT)
        assert openai_client.supports(GenerationKind.SPEECH)
        assert not openai_client.supports(GenerationKind.VIDEO)
        assert not openai_client.supports(GenerationKind.TEXT, Retrieval.SEARCH)

    async def test_rejects_grounded_requests(self, openai_client):
        with pytest.raises(GatewayError):
            await openai_client.generate(GenerationRequest(prompt="x", retrieval=Retrieval.MAPS))

    async def test_poll_is_unsupported(self, openai_client):
        with pytest.raises(GatewayError):
            await openai_client.poll_operation(VideoOperation(name="op"))

    async def test_rate_limit_becomes_quota_error(self, openai_client):
        response = httpx.Response(429, request=httpx.Request("POST", "https://api.example.com/v1/chat/completions"))
        openai_client._client.chat.completions.create = AsyncMock(
            side_effect=RateLimitError("slow down", response=response, body=None)
        )

        with pytest.raises(QuotaExceededError) as exc_info:
            await openai_client.generate(GenerationRequest(prompt="hello"))
        assert exc_info.value.status_code == 429

    async def test_json_mode_for_schema_requests(self, openai_client):
        reply = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content='{"tasks": []}'))])
        create = AsyncMock(return_value=reply)
        openai_client._client.chat.completions.create = create

        response = await openai_client.generate(GenerationRequest(prompt="plan", response_schema={"type": "OBJECT"}))

        assert response.text == '{"tasks": []}'
        assert create.call_args.kwargs["response_format"] == {"type": "json_object"}


class TestGenAIClient:
    def test_quota_translation(self):
        exc = errors.APIError(429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}})
        assert isinstance(_translate_error(exc), QuotaExceededError)

    def test_other_errors_translate_to_gateway_error(self):
        exc = errors.APIError(403, {"error": {"code": 403, "message": "denied", "status": "PERMISSION_DENIED"}})
        translated = _translate_error(exc)
        assert type(translated) is GatewayError
        assert translated.status_code == 403

    def test_parse_response_splits_parts_and_grounding(self):
        client = GenAIClient(api_key="key")
        response = types.GenerateContentResponse(candidates=[types.Candidate(
            content=types.Content(role="model", parts=[
                types.Part(text="internal", thought=True),
                types.Part(text="Answer"),
                types.Part(inline_data=types.Blob(data=b"png", mime_type="image/png")),
            ]),
            grounding_metadata=types.GroundingMetadata(grounding_chunks=[
                types.GroundingChunk(web=types.GroundingChunkWeb(uri="https://example.com", title="Example")),
            ]),
        )])

        parsed = client._parse_response(response)

        assert parsed.text == "Answer"
        assert parsed.inline_parts[0].data == b"png"
        assert parsed.grounding[0].uri == "https://example.com"
        assert parsed.grounding[0].kind == "web"

    def test_search_request_config(self):
        client = GenAIClient(api_key="key")
        config = client._build_config(GenerationRequest(prompt="x", retrieval=Retrieval.SEARCH))

        assert config.tools[0].google_search is not None

    def test_speech_request_config(self):
        client = GenAIClient(api_key="key")
        config = client._build_config(GenerationRequest(prompt="x", kind=GenerationKind.SPEECH, voice="Puck"))

        assert config.response_modalities == ["AUDIO"]
        assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Puck"
