"""Retrying of asynchronous operations with exponential backoff."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

_BASE_DELAY_SECONDS = 0.1


def backoff(attempt: int) -> float:
    """Return the delay in seconds before retry number ``attempt``."""
    return _BASE_DELAY_SECONDS * 2 ** max(attempt - 1, 0)


async def retry(operation: Callable[[], Awaitable[T]], max_retries: int) -> T:
    """Await ``operation`` until it succeeds or ``max_retries`` retries failed."""
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception:
            if attempt >= max_retries:
                raise
            attempt += 1
            await asyncio.sleep(backoff(attempt))