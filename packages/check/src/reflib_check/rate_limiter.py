"""Token bucket rate limiter for remote metadata providers.

Crossref asks polite clients to stay under 50 requests/second; PubMed
E-utilities allows 3 requests/second, or 10 with an API key.

Example:
    >>> limiter = RateLimiter(requests_per_second=3.0)
    >>> await limiter.acquire()  # waits if the bucket is empty
"""

import asyncio
import time
from typing import Optional

CROSSREF_RPS = 50.0
PUBMED_RPS = 3.0
PUBMED_RPS_WITH_KEY = 10.0


class RateLimiter:
    """Async token bucket.

    Tokens refill continuously at ``requests_per_second`` up to
    ``burst_size``. ``acquire`` takes one token, sleeping until one is
    available.
    """

    def __init__(self, requests_per_second: float = 10.0, burst_size: Optional[int] = None):
        self.requests_per_second = requests_per_second
        self.burst_size = burst_size if burst_size is not None else max(1, int(requests_per_second))
        self._tokens = float(self.burst_size)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(
            float(self.burst_size), self._tokens + elapsed * self.requests_per_second
        )
        self._last_refill = now

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self.requests_per_second
                await asyncio.sleep(wait)
                self._refill()
            self._tokens = max(0.0, self._tokens - 1.0)
