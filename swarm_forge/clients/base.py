"""
Base gateway interface and data structures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class GenerationKind(Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    SPEECH = "speech"


class Retrieval(Enum):
    SEARCH = "search"
    MAPS = "maps"


class GatewayError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QuotaExceededError(GatewayError):
    """Raised when the provider reports a rate limit or exhausted quota."""


@dataclass
class InlineData:
    data: bytes
    mime_type: str


@dataclass
class GroundingSource:
    uri: str
    title: str = ""
    kind: str = "web"


@dataclass
class VideoOperation:
    name: str
    done: bool = False
    result_uri: Optional[str] = None
    handle: Any = None


@dataclass
class GenerationRequest:
    prompt: str
    kind: GenerationKind = GenerationKind.TEXT
    model: Optional[str] = None
    attachments: list[InlineData] = field(default_factory=list)
    system_instruction: Optional[str] = None
    retrieval: Optional[Retrieval] = None
    response_schema: Optional[dict[str, Any]] = None
    thinking_budget: int = 0
    max_output_tokens: Optional[int] = None
    aspect_ratio: Optional[str] = None
    image_size: Optional[str] = None
    voice: Optional[str] = None


@dataclass
class GatewayResponse:
    text: Optional[str] = None
    inline_parts: list[InlineData] = field(default_factory=list)
    grounding: list[GroundingSource] = field(default_factory=list)
    operation: Optional[VideoOperation] = None


class GatewayClient(ABC):
    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        pass

    @abstractmethod
    async def poll_operation(self, operation: VideoOperation) -> VideoOperation:
        pass

    @abstractmethod
    def supports(self, kind: GenerationKind, retrieval: Optional[Retrieval] = None) -> bool:
        pass
