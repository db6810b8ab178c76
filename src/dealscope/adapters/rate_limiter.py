# src/dealscope/adapters/rate_limiter.py
from __future__ import annotations

import asyncio
import threading
import time
from typing import Callable

# refill arithmetic can land a hair under a whole token after the exact wait
_EPS = 1e-9


class TokenBucketRateLimiter:
    """
    Token bucket: at most `max_requests` admissions per `per_s` seconds,
    refilled continuously instead of in fixed windows.

    One instance is shared by every caller of an API client. The
    refill/check/deduct step runs under a lock; sleeping never holds it.
    A token is only deducted once the caller actually passes the gate, so a
    waiter that times out (or an async waiter that gets cancelled) leaves the
    bucket untouched.
    """

    def __init__(
        self,
        max_requests: int,
        per_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if per_s <= 0:
            raise ValueError("per_s must be > 0")

        self.max_tokens = float(max_requests)
        self.refill_rate = max_requests / per_s  # tokens per second
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

        self._tokens = self.max_tokens
        self._last_refill = clock()

    def _refill(self) -> None:
        # caller holds the lock
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.max_tokens, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    def _take_or_wait_time(self) -> float:
        """Consume a token and return 0, or return seconds until one is available."""
        with self._lock:
            self._refill()
            if self._tokens >= 1 - _EPS:
                self._tokens = max(0.0, self._tokens - 1)
                return 0.0
            return (1 - self._tokens) / self.refill_rate

    @property
    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def try_acquire(self) -> bool:
        return self._take_or_wait_time() == 0.0

    def wait_for_token(self, timeout_s: float | None = None) -> bool:
        """
        Block until a token is available and consume it.

        Returns False (without consuming) if `timeout_s` is given and a token
        cannot be had before it runs out.
        """
        deadline = None if timeout_s is None else self._clock() + timeout_s
        while True:
            wait = self._take_or_wait_time()
            if wait == 0.0:
                return True
            if deadline is not None and self._clock() + wait > deadline:
                return False
            self._sleep(wait)

    async def wait_for_token_async(self) -> None:
        while True:
            wait = self._take_or_wait_time()
            if wait == 0.0:
                return
            await asyncio.sleep(wait)
