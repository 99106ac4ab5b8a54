import asyncio
import time

from adintel.config import MIN_REQUEST_INTERVAL_MS
from adintel.utils.logger import get_logger

logger = get_logger("rate_limiter")


class RateLimiter:
    """Minimum spacing between requests to the same source.

    Each key gets its own lock, so concurrent callers for one source queue
    up while different sources never wait on each other.
    """

    def __init__(self, min_interval_ms: int = None):
        interval = MIN_REQUEST_INTERVAL_MS if min_interval_ms is None else min_interval_ms
        self.min_interval = interval / 1000
        self._last_request: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def wait(self, key: str):
        """Sleep until at least `min_interval` has passed since the last request for `key`."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            last = self._last_request.get(key)
            if last is not None:
                elapsed = time.monotonic() - last
                delay = self.min_interval - elapsed
                if delay > 0:
                    logger.debug("rate_limit_wait", source=key, delay_ms=int(delay * 1000))
                    await asyncio.sleep(delay)
            self._last_request[key] = time.monotonic()

    def reset(self, key: str = None):
        if key is None:
            self._last_request.clear()
        else:
            self._last_request.pop(key, None)
