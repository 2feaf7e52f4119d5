"""Token-bucket rate limiter for client-side pacing.

Tokens are replenished at a fixed *rate* (tokens per second) up to a *burst*
ceiling.  A caller that finds the bucket empty sleeps until the next token is
due and then competes for it again; tokens are only ever deducted when one is
actually available, so a caller that is cancelled or times out while waiting
consumes nothing.
"""

from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable


class TokenBucket:
    """Async token bucket whose bookkeeping is safe across tasks and threads.

    Parameters
    ----------
    rate:
        Sustained token-refill rate in tokens per second.
    burst:
        Maximum number of tokens the bucket can hold (burst ceiling).  The
        bucket starts full.
    clock:
        Monotonic time source, replaceable in tests.
    """

    __slots__ = ("_burst", "_clock", "_last_refill", "_lock", "_rate", "_tokens")

    def __init__(
        self,
        rate: float,
        burst: int = 10,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be > 0, got {rate}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")

        self._rate = float(rate)
        self._burst = burst
        self._tokens = float(burst)
        self._clock = clock
        self._last_refill = clock()
        self._lock = threading.Lock()

    # ── Introspection ───────────────────────────────────────────────────

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def burst(self) -> int:
        return self._burst

    @property
    def tokens(self) -> float:
        """Tokens currently available (after refilling up to now)."""
        with self._lock:
            self._refill()
            return self._tokens

    # ── Acquisition ─────────────────────────────────────────────────────

    def try_acquire(self) -> bool:
        """Take a token without waiting; ``False`` if the bucket is empty."""
        with self._lock:
            return self._take() is None

    async def acquire(self, timeout: float | None = None) -> None:
        """Wait until a token is available and take it.

        Raises :class:`TimeoutError` (without taking a token) as soon as it
        is clear that no token will be due within *timeout* seconds.
        Cancelling the awaiting task likewise leaves the bucket untouched.
        """
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            with self._lock:
                wait = self._take()
            if wait is None:
                return
            if deadline is not None and self._clock() + wait > deadline:
                raise TimeoutError(
                    f"rate limiter would wait {wait:.2f}s, exceeding the deadline"
                )
            await asyncio.sleep(wait)

    # ── Internals (caller holds the lock) ───────────────────────────────

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self._burst), self._tokens + elapsed * self._rate)
        self._last_refill = now

    def _take(self) -> float | None:
        """Deduct one token, or return the seconds until one is due."""
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return None
        return (1.0 - self._tokens) / self._rate
