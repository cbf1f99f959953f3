"""Request throttle for the token data API (one request per second by default)."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable


class TokenBucket:
    """Token bucket: `rate` tokens per second, bursts up to `capacity`.

    wait_for_token sleeps exactly until the next token is due, so sequential
    calls in one cycle are spaced by 1/rate seconds.
    """

    def __init__(
        self,
        rate: float = 1.0,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.capacity = max(1, capacity)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.capacity)
        self._updated = clock()
        self._lock = Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def consume(self, n: int = 1) -> bool:
        """Take n tokens if available; never blocks."""
        with self._lock:
            self._refill()
            if self._tokens >= n:
                self._tokens -= n
                return True
            return False

    def delay_for(self, n: int = 1) -> float:
        """Seconds until n tokens are available (0 if they already are)."""
        with self._lock:
            self._refill()
            return max(0.0, (n - self._tokens) / self.rate)

    def wait_for_token(self, n: int = 1) -> float:
        """Block until n tokens are taken. Returns seconds waited."""
        waited = 0.0
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= n:
                    self._tokens -= n
                    return waited
                delay = (n - self._tokens) / self.rate
            self._sleep(delay)
            waited += delay


_shared: dict[float, TokenBucket] = {}
_shared_lock = Lock()


def shared_bucket(rate: float = 1.0) -> TokenBucket:
    """Process-wide bucket for a rate. Clients built with the same rate draw from it."""
    with _shared_lock:
        bucket = _shared.get(rate)
        if bucket is None:
            bucket = _shared[rate] = TokenBucket(rate=rate, capacity=1)
        return bucket
