import logging
import time
from typing import Callable, Optional

import redis

from ...application.ports.rate_limiter import RateLimiter
from .memory_rate_limiter import InMemoryRateLimiter

logger = logging.getLogger(__name__)


class RedisRateLimiter(RateLimiter):
    """Fixed-window counter shared by every process that talks to the same Redis.

    While Redis is unreachable, requests are counted per process instead.
    """

    def __init__(self, url: str, prefix: str = "rl:", client=None, clock: Callable[[], float] = time.time) -> None:
        self.client = client if client is not None else redis.Redis.from_url(url)
        self.prefix = prefix
        self._clock = clock
        self._fallback: Optional[InMemoryRateLimiter] = None

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        bucket = int(self._clock() // window_seconds)
        rk = f"{self.prefix}{key}:{window_seconds}:{bucket}"
        try:
            pipe = self.client.pipeline()
            pipe.incr(rk, 1)
            pipe.expire(rk, window_seconds)
            count, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis rate limit error, counting in process: {e}")
            if self._fallback is None:
                self._fallback = InMemoryRateLimiter()
            return self._fallback.allow(key, max_requests, window_seconds)
        return int(count) <= int(max_requests)
