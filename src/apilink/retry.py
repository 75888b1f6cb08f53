"""Retry with exponential backoff and Retry-After aware rate-limit handling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from apilink.duration import to_seconds
from apilink.errors import (
    DEFAULT_RETRY_AFTER_SECONDS,
    ApiError,
    ErrorKind,
    is_retryable,
    rate_limit_message,
)
from apilink.notifications import Notifier
from apilink.types import Duration

T = TypeVar("T")

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[object]]


def _rate_limit_seconds(error: BaseException | None) -> int | None:
    """Seconds to wait for a rate-limited error, None for anything else."""
    if not isinstance(error, ApiError) or error.kind is not ErrorKind.RATE_LIMITED:
        return None
    if error.retry_after_seconds is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    return error.retry_after_seconds


def _last_error(retry_state: RetryCallState) -> BaseException | None:
    if retry_state.outcome is None:
        return None
    return retry_state.outcome.exception()


class wait_retry_after(wait_base):
    """Wait the server's Retry-After for rate limits, ``fallback`` otherwise."""

    def __init__(self, fallback: wait_base) -> None:
        self.fallback = fallback

    def __call__(self, retry_state: RetryCallState) -> float:
        seconds = _rate_limit_seconds(_last_error(retry_state))
        if seconds is not None:
            return float(seconds)
        return self.fallback(retry_state)


class stop_after_rate_limit_retry(stop_base):
    """Stop on the second rate-limited failure; one Retry-After wait is enough."""

    def __init__(self) -> None:
        self.rate_limited = 0

    def __call__(self, retry_state: RetryCallState) -> bool:
        if _rate_limit_seconds(_last_error(retry_state)) is None:
            return False
        self.rate_limited += 1
        return self.rate_limited > 1


def _before_sleep(notifier: Notifier | None, retries: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = _last_error(retry_state)
        seconds = _rate_limit_seconds(error)
        if seconds is not None:
            logger.info("Rate limited; retrying in %ss", seconds)
            if notifier is not None:
                notifier.info(
                    "Rate limit reached",
                    f"Retrying automatically in {seconds} seconds.",
                )
            return
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.info(
            "%s; retrying in %.2fs, %d retries left",
            error,
            delay,
            retries - retry_state.attempt_number,
        )

    return before_sleep


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    base_delay: Duration = "1s",
    *,
    notifier: Notifier | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying retryable ``ApiError``s.

    Network and server errors back off exponentially: ``base_delay``,
    then double it, for at most ``retries`` retries. A rate-limited
    response is retried once, after exactly the server's Retry-After
    seconds; a second one (or no retries left) raises a ``RateLimited``
    error stating the wait. Anything else propagates immediately.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        retries: Maximum number of retries after the first attempt
        base_delay: First backoff delay
        notifier: Receives an info notification when a rate-limit retry is scheduled
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The first successful result of ``operation``
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(retries + 1) | stop_after_rate_limit_retry(),
        wait=wait_retry_after(wait_exponential(multiplier=to_seconds(base_delay), exp_base=2)),
        before_sleep=_before_sleep(notifier, retries),
        sleep=sleep,
        reraise=True,
    )
    try:
        return await retrying(operation)
    except ApiError as error:
        seconds = _rate_limit_seconds(error)
        if seconds is None:
            raise
        raise ApiError(
            ErrorKind.RATE_LIMITED,
            rate_limit_message(seconds),
            status=error.status,
            retry_after_seconds=seconds,
        ) from error
