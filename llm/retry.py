"""Async retry with exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 8

# Matched by class name so provider SDKs stay optional imports.
_FAIL_FAST_NAMES = frozenset(
    {
        "AuthenticationError",
        "PermissionDeniedError",
        "BadRequestError",
        "UnprocessableEntityError",
    }
)
_TRANSIENT_NAMES = frozenset(
    {
        # openai
        "RateLimitError",
        "APITimeoutError",
        "APIConnectionError",
        "InternalServerError",
        # httpx
        "ConnectError",
        "ConnectTimeout",
        "ReadTimeout",
        "WriteTimeout",
        "PoolTimeout",
        "RemoteProtocolError",
    }
)
_HAS_STATUS_NAMES = frozenset({"APIStatusError", "ProviderError"})


class Verdict(str, Enum):
    FAIL_FAST = "fail_fast"
    RETRY = "retry"
    GIVE_UP = "give_up"


def status_of(exc: BaseException) -> int | None:
    """HTTP status carried by ``exc`` or its ``response``, if any."""
    for holder in (exc, getattr(exc, "response", None)):
        status = getattr(holder, "status_code", None)
        if isinstance(status, int) and not isinstance(status, bool):
            return status
        if isinstance(status, str) and status.isdigit():
            return int(status)
    return None


def classify(exc: BaseException) -> Verdict:
    name = type(exc).__name__
    if isinstance(exc, ValueError) or name in _FAIL_FAST_NAMES:
        return Verdict.FAIL_FAST
    if isinstance(exc, (TimeoutError, ConnectionError)) or name in _TRANSIENT_NAMES:
        return Verdict.RETRY
    if name in _HAS_STATUS_NAMES:
        status = status_of(exc)
        if status is not None and (status == 429 or status >= 500):
            return Verdict.RETRY
    return Verdict.GIVE_UP


class RetryPolicy:
    """Re-await a coroutine factory on transient faults, doubling the wait each time."""

    def __init__(
        self,
        max_retries: int = 3,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.sleep_fn = sleep_fn or asyncio.sleep

    def backoff_seconds(self, attempt_index: int) -> int:
        return min(2**attempt_index, MAX_BACKOFF_SECONDS)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if classify(exc) is not Verdict.RETRY or attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds(attempt)
                logger.warning(
                    "Transient provider error (%s), retry %d/%d in %ds",
                    type(exc).__name__,
                    attempt + 1,
                    self.max_retries,
                    delay,
                )
                attempt += 1
                await self.sleep_fn(delay)
