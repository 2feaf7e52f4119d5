"""Concurrency gate — bounds the number of simultaneous in-flight calls."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ConcurrencyGate:
    """Fixed-capacity counting semaphore shared by both API protocols.

    Use :meth:`slot` so the permit is released on every exit path, including
    errors and task cancellation.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        """Permits currently held."""
        return self._in_use

    async def acquire(self) -> None:
        """Block until a permit is free, then hold it."""
        await self._semaphore.acquire()
        self._in_use += 1

    def release(self) -> None:
        if self._in_use == 0:
            raise RuntimeError("ConcurrencyGate.release() called without a held permit")
        self._in_use -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one permit for the duration of the ``async with`` block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()
