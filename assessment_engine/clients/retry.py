from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import random
import re
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERROR_RE = re.compile(r"timeout|timed out|429|rate.?limit|5\d\d|unavailable|quota|exhausted", re.IGNORECASE)


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 2
    base_delay_ms: int = 500
    factor: float = 1.8
    max_delay_ms: int = 8000
    jitter: bool = True


def is_transient_error(error: BaseException) -> bool:
    """Transient failures are recognised by message: timeouts, 429, 5xx, quota."""
    return TRANSIENT_ERROR_RE.search(str(error)) is not None


def compute_delay_ms(policy: RetryPolicy, delay_ms: float, rand: Callable[[], float]) -> int:
    if not policy.jitter:
        return round(delay_ms)
    # Jitter spreads each wait over [0.7, 1.3] of the nominal delay.
    return round(delay_ms * (0.7 + rand() * 0.6))


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    hint: str = "llm",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Run `fn` and retry transient failures with exponential backoff.

    The last error is re-raised unchanged once the budget is spent; errors
    that are not transient are raised on the first attempt.
    """
    attempt = 0
    delay_ms: float = policy.base_delay_ms
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= policy.retries or not is_transient_error(exc):
                raise
            wait_ms = compute_delay_ms(policy, delay_ms, rand)
            attempt += 1
            logger.warning(
                "%s call failed (attempt %d/%d), retrying in %dms: %s",
                hint,
                attempt,
                policy.retries,
                wait_ms,
                exc,
                extra={"hint": hint, "attempt": attempt},
            )
            await sleep(wait_ms / 1000)
            delay_ms = min(delay_ms * policy.factor, policy.max_delay_ms)
