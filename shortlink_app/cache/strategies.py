"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory).

The cache holds three kinds of keys:
- url:{code}     -> original URL, TTL = url_cache_ttl
- views:{code}   -> pending view count, no TTL (drained by the aggregator)
- verify:{email} -> verification code, TTL = verification_code_ttl
"""

import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from redis.exceptions import RedisError

from shortlink_app.exceptions import TransientIOError

logger = logging.getLogger(__name__)

URL_KEY_PREFIX = "url:"
VIEWS_KEY_PREFIX = "views:"
VERIFY_KEY_PREFIX = "verify:"

# Subtract the flushed amount and drop the counter once nothing is pending.
# Runs atomically inside Redis, so INCRs racing with a sweep are never lost.
DRAIN_VIEWS_SCRIPT = """
local remaining = redis.call('DECRBY', KEYS[1], ARGV[1])
if remaining <= 0 then
    redis.call('DEL', KEYS[1])
end
return remaining
"""


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    This is the Strategy Pattern interface - allows multiple cache implementations
    without changing the service layer code.

    All methods are async because cache operations involve I/O (network for Redis).
    A missing key is never an error: URL lookups return None and view
    counters read as 0.
    """

    def __init__(self, url_ttl: int = 3600, verification_ttl: int = 300):
        self.url_ttl = url_ttl
        self.verification_ttl = verification_ttl

    @abstractmethod
    async def set_url(self, short_code: str, original_url: str) -> None:
        """Upsert the short code -> URL mapping with the URL TTL."""
        pass

    @abstractmethod
    async def get_url(self, short_code: str) -> Optional[str]:
        """
        Get the cached URL for a short code.

        Returns:
            The original URL, or None when the mapping is not cached
        """
        pass

    @abstractmethod
    async def del_url(self, short_code: str) -> None:
        """Remove the mapping. No-op when absent."""
        pass

    @abstractmethod
    async def incr_views(self, short_code: str) -> int:
        """
        Atomically add one view to the pending counter.

        Returns:
            The counter value after the increment
        """
        pass

    @abstractmethod
    async def get_views(self, short_code: str) -> int:
        """Get the pending view count (0 when absent)."""
        pass

    @abstractmethod
    async def del_views(self, short_code: str) -> None:
        """Remove the pending counter. No-op when absent."""
        pass

    @abstractmethod
    async def drain_views(self, short_code: str, amount: int) -> int:
        """
        Atomically subtract a flushed amount from the pending counter.

        The counter is deleted once it reaches zero. Views added after the
        amount was read stay in the counter for the next sweep.

        Returns:
            The remaining pending count
        """
        pass

    @abstractmethod
    async def scan_views(self, cursor: int, batch_size: int) -> Tuple[List[str], int]:
        """
        Resumable scan over pending counters.

        Args:
            cursor: 0 to start a sweep, otherwise the cursor returned by the previous call
            batch_size: Hint for how many counters to return

        Returns:
            (short codes, next cursor); a next cursor of 0 ends the sweep.
            Counters created during a sweep may or may not be returned.
        """
        pass

    @abstractmethod
    async def set_verification_code(self, email: str, code: str) -> None:
        """Store a verification code with the verification TTL."""
        pass

    @abstractmethod
    async def get_verification_code(self, email: str) -> Optional[str]:
        """Get a verification code, or None when absent or expired."""
        pass

    async def close(self) -> None:
        """Release backend connections."""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation with async operations.

    Production-ready cache with:
    - Distributed caching (every API process and the aggregator share it)
    - Atomic INCR for view counters
    - TTL support
    - Non-blocking I/O (redis.asyncio)

    Redis failures surface as TransientIOError; callers decide whether
    that fails the request or is only logged.
    """

    def __init__(self, redis_client, url_ttl: int = 3600, verification_ttl: int = 300):
        """
        Initialize Redis cache.

        Args:
            redis_client: redis.asyncio.Redis created with decode_responses=True
            url_ttl: TTL for URL mappings (seconds)
            verification_ttl: TTL for verification codes (seconds)
        """
        super().__init__(url_ttl, verification_ttl)
        self.redis = redis_client
        self._drain_script = redis_client.register_script(DRAIN_VIEWS_SCRIPT)

    async def set_url(self, short_code: str, original_url: str) -> None:
        try:
            await self.redis.set(f"{URL_KEY_PREFIX}{short_code}", original_url, ex=self.url_ttl)
        except RedisError as e:
            raise TransientIOError(f"Redis set_url failed for {short_code}: {e}") from e

    async def get_url(self, short_code: str) -> Optional[str]:
        try:
            return await self.redis.get(f"{URL_KEY_PREFIX}{short_code}")
        except RedisError as e:
            raise TransientIOError(f"Redis get_url failed for {short_code}: {e}") from e

    async def del_url(self, short_code: str) -> None:
        try:
            await self.redis.delete(f"{URL_KEY_PREFIX}{short_code}")
        except RedisError as e:
            raise TransientIOError(f"Redis del_url failed for {short_code}: {e}") from e

    async def incr_views(self, short_code: str) -> int:
        try:
            return await self.redis.incr(f"{VIEWS_KEY_PREFIX}{short_code}")
        except RedisError as e:
            raise TransientIOError(f"Redis incr_views failed for {short_code}: {e}") from e

    async def get_views(self, short_code: str) -> int:
        try:
            value = await self.redis.get(f"{VIEWS_KEY_PREFIX}{short_code}")
        except RedisError as e:
            raise TransientIOError(f"Redis get_views failed for {short_code}: {e}") from e
        return int(value) if value is not None else 0

    async def del_views(self, short_code: str) -> None:
        try:
            await self.redis.delete(f"{VIEWS_KEY_PREFIX}{short_code}")
        except RedisError as e:
            raise TransientIOError(f"Redis del_views failed for {short_code}: {e}") from e

    async def drain_views(self, short_code: str, amount: int) -> int:
        try:
            remaining = await self._drain_script(keys=[f"{VIEWS_KEY_PREFIX}{short_code}"], args=[amount])
        except RedisError as e:
            raise TransientIOError(f"Redis drain_views failed for {short_code}: {e}") from e
        return max(int(remaining), 0)

    async def scan_views(self, cursor: int, batch_size: int) -> Tuple[List[str], int]:
        try:
            next_cursor, keys = await self.redis.scan(
                cursor=cursor,
                match=f"{VIEWS_KEY_PREFIX}*",
                count=batch_size
            )
        except RedisError as e:
            raise TransientIOError(f"Redis scan_views failed at cursor {cursor}: {e}") from e
        codes = [key[len(VIEWS_KEY_PREFIX):] for key in keys]
        return codes, int(next_cursor)

    async def set_verification_code(self, email: str, code: str) -> None:
        try:
            await self.redis.set(f"{VERIFY_KEY_PREFIX}{email}", code, ex=self.verification_ttl)
        except RedisError as e:
            raise TransientIOError(f"Redis set_verification_code failed: {e}") from e

    async def get_verification_code(self, email: str) -> Optional[str]:
        try:
            return await self.redis.get(f"{VERIFY_KEY_PREFIX}{email}")
        except RedisError as e:
            raise TransientIOError(f"Redis get_verification_code failed: {e}") from e

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("Redis cache connection closed")


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dicts.

    Pros:
    - Very fast (no network overhead)
    - Simple (no external dependencies)
    - Good for development and testing

    Cons:
    - Not distributed (each process has its own counters, so the
      aggregator must run in the same process)
    - Lost on restart

    Every method body runs without awaiting, so each operation is atomic
    with respect to other coroutines on the event loop.
    """

    def __init__(self, url_ttl: int = 3600, verification_ttl: int = 300):
        """Initialize in-memory cache"""
        super().__init__(url_ttl, verification_ttl)
        self._values: Dict[str, Tuple[str, Optional[float]]] = {}  # key -> (value, expires_at)
        self._views: Dict[str, int] = {}
        # Creation sequence per counter; the scan cursor is a sequence number,
        # so deleting counters mid-sweep never shifts unvisited ones
        self._view_seq: Dict[str, int] = {}
        self._seq = itertools.count(1)

    def _put(self, key: str, value: str, ttl: int) -> None:
        self._values[key] = (value, time.monotonic() + ttl)

    def _fetch(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._values[key]
            return None
        return value

    async def set_url(self, short_code: str, original_url: str) -> None:
        self._put(f"{URL_KEY_PREFIX}{short_code}", original_url, self.url_ttl)

    async def get_url(self, short_code: str) -> Optional[str]:
        return self._fetch(f"{URL_KEY_PREFIX}{short_code}")

    async def del_url(self, short_code: str) -> None:
        self._values.pop(f"{URL_KEY_PREFIX}{short_code}", None)

    async def incr_views(self, short_code: str) -> int:
        if short_code not in self._views:
            self._views[short_code] = 0
            self._view_seq[short_code] = next(self._seq)
        self._views[short_code] += 1
        return self._views[short_code]

    async def get_views(self, short_code: str) -> int:
        return self._views.get(short_code, 0)

    async def del_views(self, short_code: str) -> None:
        self._views.pop(short_code, None)
        self._view_seq.pop(short_code, None)

    async def drain_views(self, short_code: str, amount: int) -> int:
        remaining = self._views.get(short_code, 0) - amount
        if remaining <= 0:
            await self.del_views(short_code)
            return 0
        self._views[short_code] = remaining
        return remaining

    async def scan_views(self, cursor: int, batch_size: int) -> Tuple[List[str], int]:
        pending = sorted(
            (seq, code) for code, seq in self._view_seq.items() if seq >= cursor
        )
        batch = pending[:batch_size]
        if len(pending) <= batch_size:
            return [code for _, code in batch], 0
        return [code for _, code in batch], batch[-1][0] + 1

    async def set_verification_code(self, email: str, code: str) -> None:
        self._put(f"{VERIFY_KEY_PREFIX}{email}", code, self.verification_ttl)

    async def get_verification_code(self, email: str) -> Optional[str]:
        return self._fetch(f"{VERIFY_KEY_PREFIX}{email}")
