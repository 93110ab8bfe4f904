"""
Bounded concurrency for ledger and describer fan-out.

TaskPool caps in-flight calls with a semaphore and optionally paces them with
a min-interval rate limiter. gather_all cancels the siblings of a failing
awaitable instead of leaving them running detached.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")

DEFAULT_MAX_CONCURRENCY = 8


class _RateLimiter:
    """Simple token-bucket style: min interval between acquires."""

    def __init__(self, rate_per_sec: float) -> None:
        self._interval = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.0
        self._last_acquire = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        if self._interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_acquire
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
            self._last_acquire = time.monotonic()


class TaskPool:
    """
    Semaphore-bounded runner for remote calls.

    One pool per pipeline run: asyncio primitives bind to the running loop, and
    a fresh pool keeps runs from sharing state.
    """

    def __init__(
        self,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        *,
        rate_per_sec: float = 0.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._max_concurrency = max_concurrency
        self._sem = asyncio.Semaphore(max_concurrency)
        self._rate_limiter = _RateLimiter(rate_per_sec)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously running calls seen so far."""
        return self._peak_in_flight

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Await fn(*args) once a slot is free."""
        async with self._sem:
            await self._rate_limiter.acquire()
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                return await fn(*args)
            finally:
                self._in_flight -= 1


async def gather_all(
    aws: Iterable[Awaitable[T]],
    *,
    return_exceptions: bool = False,
) -> list[Any]:
    """
    Run awaitables concurrently and return results in input order.

    With return_exceptions=False the first exception propagates after every
    sibling has been cancelled and settled. With return_exceptions=True
    exceptions are returned in place of results.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks, return_exceptions=return_exceptions))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
