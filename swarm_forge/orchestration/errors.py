"""
Mission error taxonomy.
Every failure that reaches a caller is summarized into one of these kinds.
"""

import asyncio
from enum import Enum
from typing import Optional

from ..clients.base import GatewayError, QuotaExceededError


class ErrorKind(Enum):
    PLAN_FORMAT_ERROR = "PLAN_FORMAT_ERROR"
    PLAN_EMPTY = "PLAN_EMPTY"
    GATEWAY_FAILURE = "GATEWAY_FAILURE"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    NODE_TIMEOUT = "NODE_TIMEOUT"
    MISSION_ABORTED = "MISSION_ABORTED"


class MissionError(Exception):
    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(f"{kind.value}: {message}" if message else kind.value)
        self.kind = kind
        self.message = message


class PlanError(MissionError):
    """Raised by the plan synthesizer; recovered by the emergency plan."""


def _first_line(text: str, limit: int = 160) -> str:
    line = text.strip().splitlines()[0] if text.strip() else ""
    return line[:limit] + ("..." if len(line) > limit else "")


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, MissionError):
        return exc.kind
    if isinstance(exc, QuotaExceededError):
        return ErrorKind.RESOURCE_EXHAUSTED
    if isinstance(exc, asyncio.TimeoutError):
        return ErrorKind.NODE_TIMEOUT
    if isinstance(exc, asyncio.CancelledError):
        return ErrorKind.MISSION_ABORTED
    return ErrorKind.GATEWAY_FAILURE


def summarize_error(exc: BaseException, kind: Optional[ErrorKind] = None) -> str:
    kind = kind or classify_error(exc)
    if isinstance(exc, MissionError):
        detail = exc.message
    elif isinstance(exc, GatewayError) and exc.status_code:
        detail = f"[{exc.status_code}] {exc}"
    else:
        detail = str(exc) or type(exc).__name__
    detail = _first_line(detail)
    return f"{kind.value}: {detail}" if detail else kind.value
