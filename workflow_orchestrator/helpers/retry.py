"""Bounded retry combinators for HTTP calls and eventually-visible reads."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

T = TypeVar("T")

logger = logging.getLogger("workflow_orchestrator.helpers.retry")


class RetryExhaustedError(RuntimeError):
    """Raised once every allowed attempt has been used."""


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    delay_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    should_retry: Callable[[T], bool],
    retry_on_exception: bool = False,
    error_message: str = "Retry attempts exhausted",
) -> T:
    """Call ``fn`` until ``should_retry`` rejects its result or attempts run out.

    With ``retry_on_exception`` an exception counts as a failed attempt;
    otherwise it propagates immediately. Waits ``policy.delay_seconds``
    between attempts.
    """

    last_exc: Optional[BaseException] = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await fn()
        except Exception as exc:  # noqa: BLE001
            if not retry_on_exception:
                raise
            last_exc = exc
            logger.debug(
                "retry_attempt_raised",
                extra={"attempt": attempt, "max_attempts": policy.max_attempts, "error": str(exc)},
            )
        else:
            if not should_retry(result):
                return result
            logger.debug(
                "retry_attempt_rejected",
                extra={"attempt": attempt, "max_attempts": policy.max_attempts},
            )
        if attempt < policy.max_attempts:
            await asyncio.sleep(policy.delay_seconds)

    raise RetryExhaustedError(error_message) from last_exc


async def execute_with_retry(
    action: Callable[[], Awaitable[httpx.Response]],
    max_errors: int = 15,
    delay_seconds: float = 5.0,
) -> httpx.Response:
    """Retry ``action`` while it raises or answers with an HTTP status >= 400."""

    return await retry_async(
        action,
        RetryPolicy(max_attempts=max_errors, delay_seconds=delay_seconds),
        should_retry=lambda response: response.status_code >= 400,
        retry_on_exception=True,
        error_message="Unable to execute query.",
    )


async def retry_async_function(
    fn: Callable[[], Awaitable[Optional[T]]],
    max_attempts: int,
    delay_ms: int,
) -> T:
    """Retry ``fn`` while it returns ``None``; used to wait for a new instance to appear."""

    return await retry_async(
        fn,
        RetryPolicy(max_attempts=max_attempts, delay_seconds=delay_ms / 1000),
        should_retry=lambda result: result is None,
        error_message="Exceeded maximum number of retries for async function",
    )
