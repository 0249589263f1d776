"""
Retry and Rate Limiting

Backoff Retrier:
- Retries transient failures (HTTP 429, 5xx) with exponential backoff and jitter
- Fails fast on everything else, re-raising the original exception

Rate-Limited Sequential Executor:
- Runs operations strictly in order with a fixed delay between them
- For per-second quotas such as URL Inspection (~1 req/sec)
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from .errors import BatchTooLargeError, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 4       # total tries, not retries
    base_delay: float = 1.0     # seconds


def backoff_delay(base_delay: float, attempt: int, jitter: float) -> float:
    """
    Delay before the next attempt.

    Jitter lives in the upper half, so the delay is always at least 50%
    of the pure exponential value.

    Args:
        base_delay: Base delay in seconds
        attempt: Zero-based index of the attempt that just failed
        jitter: Random value in [0, 1)

    Returns:
        Delay in seconds
    """
    return base_delay * (2 ** attempt) * (0.5 + jitter * 0.5)


async def with_retry(
    operation: Operation,
    config: Optional[RetryConfig] = None,
    sleep: Sleep = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """
    Execute an operation, retrying transient failures.

    Args:
        operation: Zero-argument coroutine function performing one remote call
        config: Retry bounds (defaults: 4 attempts, 1s base delay)
        sleep: Coroutine used to wait between attempts
        rand: Source of jitter in [0, 1)

    Returns:
        The operation's result

    Raises:
        The operation's own exception, unchanged, when it is not retryable
        or the last attempt fails.
    """
    config = config or RetryConfig()
    max_attempts = max(1, config.max_attempts)

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            classified = classify_error(e)
            if not classified.retryable or attempt == max_attempts - 1:
                raise

            delay = backoff_delay(config.base_delay, attempt, rand())
            logger.warning(
                f"Request failed (attempt {attempt + 1}/{max_attempts}, "
                f"status {classified.status_code}): {classified.message}. "
                f"Retrying in {delay:.2f}s..."
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("Retry loop exited without result")


async def rate_limited(
    operations: Sequence[Operation],
    delay: float,
    sleep: Sleep = asyncio.sleep,
) -> List[T]:
    """
    Run operations strictly in order with a delay between consecutive calls.

    A failing operation propagates and aborts the rest of the queue.
    Wrap operations to return tagged outcomes for per-item isolation.

    Args:
        operations: Zero-argument coroutine functions
        delay: Seconds to wait before every operation except the first
        sleep: Coroutine used to wait

    Returns:
        Results in input order
    """
    results = []
    for i, operation in enumerate(operations):
        if i > 0:
            await sleep(delay)
        results.append(await operation())
    return results


def ensure_batch_size(items: Sequence[Any], max_batch_size: int) -> None:
    """Reject batches above the configured size rather than truncating."""
    if len(items) > max_batch_size:
        raise BatchTooLargeError(len(items), max_batch_size)
