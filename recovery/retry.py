"""recovery/retry.py

Retry Engine: bounded exponential backoff for async operations.

Rules:
- At most max_attempts calls.
- Delay after failed attempt n (1-based): min(initial * multiplier ** (n - 1), max_delay).
- No delay after the final attempt; its error is re-raised unchanged.
- Optional jitter only ever shortens a delay (the deterministic value is the ceiling).
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional, Tuple, Type, TypeVar

from config.runtime_schema import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay_ms(attempt: int, config: RetryConfig) -> float:
    """Deterministic delay after failed attempt `attempt` (1-based)."""
    delay = config.initial_delay_ms * (config.backoff_multiplier ** (attempt - 1))
    return min(delay, config.max_delay_ms)


def backoff_delays(config: RetryConfig) -> List[float]:
    """Full delay schedule (ms) between max_attempts attempts."""
    return [backoff_delay_ms(n, config) for n in range(1, config.max_attempts)]


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> T:
    """
    Run `operation` until it succeeds or attempts are exhausted.

    Args:
        operation: Zero-arg coroutine function
        config: Backoff schedule (defaults: 3 attempts, 1s, x2, 30s cap)
        retry_on: Exception types worth retrying; anything else propagates immediately
        sleep: Awaitable sleep taking seconds (injectable for tests)
        rng: Random source for jitter

    Returns:
        Result of the first successful call

    Raises:
        The final attempt's exception, unchanged
    """
    if config is None:
        config = RetryConfig()
    rng = rng or random.Random()

    attempt = 1
    while True:
        try:
            return await operation()
        except retry_on as e:
            if attempt >= config.max_attempts:
                logger.warning(f"[retry] Giving up after {attempt} attempts: {e}")
                raise

            delay_ms = backoff_delay_ms(attempt, config)
            if config.jitter_ratio > 0:
                delay_ms -= delay_ms * config.jitter_ratio * rng.random()

            logger.warning(
                f"[retry] Attempt {attempt}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay_ms:.0f}ms"
            )
            await sleep(delay_ms / 1000.0)
            attempt += 1
