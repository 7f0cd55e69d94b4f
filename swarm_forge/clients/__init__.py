"""
Gateway clients for remote inference providers.
"""

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
from .genai_client import GenAIClient
from .openai_compatible import OpenAICompatibleClient, create_client

__all__ = [
    "GatewayClient",
    "GatewayError",
    "GatewayResponse",
    "GenerationKind",
    "GenerationRequest",
    "GroundingSource",
    "InlineData",
    "QuotaExceededError",
    "Retrieval",
    "VideoOperation",
    "GenAIClient",
    "OpenAICompatibleClient",
    "create_client",
]
