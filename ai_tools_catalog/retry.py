"""Exponential backoff and rate-limit helpers for flaky source APIs."""

import asyncio
import logging
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Optional
from typing import TypeVar

import httpx
from tenacity import AsyncRetrying
from tenacity import RetryCallState
from tenacity import stop_after_attempt
from tenacity import wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RATE_LIMIT_WAIT = 60  # seconds, when no Retry-After header is available


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.info(f"Attempt {retry_state.attempt_number} failed ({exc}), retrying in {delay:.1f}s...")


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
) -> T:
    """Await ``fn()`` up to ``max_retries`` times.

    After failed attempt ``n`` (counting from 0) the helper sleeps
    ``initial_delay * 2 ** n`` seconds, except after the final attempt, whose
    exception is re-raised. Every exception is retried.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2),
        sleep=_sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await fn()


def _status_code(error: Any) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_rate_limit_error(error: Any) -> bool:
    """Recognise HTTP 429 responses and rate-limit style error messages."""
    if _status_code(error) == 429:
        return True
    message = str(error).lower()
    return "rate limit" in message or "too many requests" in message


def retry_after_seconds(error: Any, default: int = DEFAULT_RATE_LIMIT_WAIT) -> int:
    """Seconds to wait according to the error's ``Retry-After`` header."""
    headers = None
    if isinstance(error, httpx.HTTPStatusError):
        headers = error.response.headers
    else:
        headers = getattr(error, "headers", None)

    raw = headers.get("retry-after") if headers else None
    try:
        return max(0, int(raw)) if raw is not None else default
    except (TypeError, ValueError):
        return default


async def handle_rate_limit(error: Any) -> bool:
    """Sleep for the ``Retry-After`` duration if ``error`` is a rate limit.

    Returns True when it waited.
    """
    if not is_rate_limit_error(error):
        return False
    delay = retry_after_seconds(error)
    logger.warning(f"Rate limited, waiting {delay}s before continuing...")
    await asyncio.sleep(delay)
    return True
