"""
Retry wrapper for a single provider attempt.

Linear backoff: after failed attempt i (0-indexed) the wrapper sleeps
(i + 1) seconds before the next one, and never sleeps after the last.
There is no jitter and no cap; callers pick the retry count.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 0
BACKOFF_STEP_SECONDS = 1.0


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the failed attempt with this 0-based index."""
    return BACKOFF_STEP_SECONDS * (attempt + 1)


async def call_with_retry(
    attempt: Callable[[], Awaitable[T]],
    retries: int = DEFAULT_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    retry_if: Callable[[Exception], bool] | None = None,
    label: str = "call",
) -> T:
    """
    Run `attempt` up to `retries + 1` times and return the first success.

    Args:
        attempt: Zero-argument coroutine factory, called once per attempt.
        retries: Extra attempts after the first one (>= 0).
        sleep: Awaitable sleep, injectable for tests.
        retry_if: Optional predicate; returning False stops retrying and
                  re-raises the error at once.
        label: Name used in log lines.

    Raises:
        The last exception observed when every attempt fails.
    """
    if retries < 0:
        raise ValueError(f"retries must be >= 0, got {retries}")

    index = 0
    while True:
        try:
            return await attempt()
        except Exception as e:
            if retry_if is not None and not retry_if(e):
                logger.debug(f"[Retry] {label}: not retryable ({type(e).__name__})")
                raise
            if index >= retries:
                logger.error(f"[Retry] {label} failed after {retries + 1} attempt(s): {e}")
                raise
            delay = backoff_delay(index)
            logger.warning(
                f"[Retry] {label} failed (attempt {index + 1}/{retries + 1}): "
                f"{e}. Retrying in {delay:.0f}s"
            )
            await sleep(delay)
        index += 1
