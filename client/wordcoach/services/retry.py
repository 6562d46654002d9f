"""Bounded exponential backoff around one unit of work."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..errors import EvaluationError

LOGGER = logging.getLogger("wordcoach.evaluation")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Await ``operation`` until it succeeds, retrying only retryable errors.

    Waits ``initial_delay * 2**attempt`` seconds between attempts, so the
    defaults give at most 4 attempts with 1 s, 2 s and 4 s pauses.
    Non-retryable errors propagate immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except EvaluationError as exc:
            if not exc.retryable:
                raise
            if attempt >= max_retries:
                LOGGER.error("Giving up after %d attempts: %s", attempt + 1, exc.detail or exc)
                raise
            delay = initial_delay * (2**attempt)
            attempt += 1
            LOGGER.warning(
                "Retry attempt %d/%d after %d ms: %s",
                attempt,
                max_retries,
                int(delay * 1000),
                exc.detail or exc,
            )
            await sleep(delay)


__all__ = ["retry_with_backoff"]
