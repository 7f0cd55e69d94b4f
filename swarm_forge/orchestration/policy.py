"""
Retry and timeout policy for remote gateway calls.
Each attempt is bounded by a hard timeout; only quota errors are retried.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..clients.base import GatewayError, QuotaExceededError
from .. import stats
from .errors import ErrorKind, MissionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CallPolicy:
    timeout: float = 120.0
    max_retries: int = 1
    backoff_base: float = 2.0

    def with_timeout(self, timeout: float) -> "CallPolicy":
        return CallPolicy(timeout=timeout, max_retries=self.max_retries, backoff_base=self.backoff_base)


def _log_retry(label: str):
    def before_sleep(retry_state) -> None:
        stats.record_retry()
        logger.warning(
            "%s hit a rate limit (attempt %d), backing off %.1fs",
            label,
            retry_state.attempt_number,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )
    return before_sleep


async def with_policy(
    call: Callable[[], Awaitable[T]],
    policy: Optional[CallPolicy] = None,
    label: str = "gateway",
) -> T:
    policy = policy or CallPolicy()

    async def attempt() -> T:
        try:
            return await asyncio.wait_for(call(), timeout=policy.timeout)
        except asyncio.TimeoutError:
            stats.record_timeout()
            raise MissionError(ErrorKind.NODE_TIMEOUT, f"{label} exceeded {policy.timeout:g}s") from None

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_exponential(multiplier=policy.backoff_base, exp_base=2),
        retry=retry_if_exception_type(QuotaExceededError),
        before_sleep=_log_retry(label),
        reraise=False,
    )

    try:
        async for attempt_state in retrying:
            with attempt_state:
                return await attempt()
    except RetryError as e:
        stats.record_quota_exhausted()
        last = e.last_attempt.exception()
        raise MissionError(
            ErrorKind.RESOURCE_EXHAUSTED,
            f"{label} still rate limited after {policy.max_retries + 1} attempts: {last}",
        ) from last
    except MissionError:
        raise
    except GatewayError as e:
        raise MissionError(ErrorKind.GATEWAY_FAILURE, f"{label}: {e}") from e
