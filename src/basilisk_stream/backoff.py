"""Exponential backoff with jitter for async operations.

Delay before retry ``n`` (0-based) is
``(initial_retry_delay_ms + jitter) * 2 ** n`` where ``jitter`` is drawn
uniformly from ``[0, max_jitter_ms)``.  At most ``max_retries + 1``
attempts are made; the last failure is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from basilisk_stream.config import BackoffSpec

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_delay_ms(
    retry_count: int,
    initial_retry_delay_ms: int,
    jitter_ms: int = 0,
) -> int:
    """Return the wait before retry number *retry_count*."""
    return (initial_retry_delay_ms + jitter_ms) * (2 ** retry_count)


def _draw_jitter_ms(max_jitter_ms: int) -> int:
    if max_jitter_ms <= 0:
        return 0
    return random.randrange(max_jitter_ms)


async def with_exponential_backoff(
    fn: Callable[[], Awaitable[T]],
    spec: BackoffSpec | None = None,
) -> T:
    """Await ``fn()``, retrying on any exception until the budget runs out."""
    spec = spec or BackoffSpec()
    retry_count = 0

    while True:
        try:
            return await fn()
        except Exception as e:
            _logger.debug("Request failed with error: %s", e)
            if retry_count >= spec.max_retries:
                raise
            delay_ms = compute_delay_ms(
                retry_count,
                spec.initial_retry_delay_ms,
                _draw_jitter_ms(spec.max_jitter_ms),
            )
            _logger.debug(
                "Waiting %.2fs before retrying (retry %d/%d)...",
                delay_ms / 1000, retry_count + 1, spec.max_retries,
            )
            await asyncio.sleep(delay_ms / 1000)
            retry_count += 1
