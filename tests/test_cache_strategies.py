"""
Tests for cache strategies.

InMemoryCache is exercised directly; RedisCache is checked against a
mocked redis.asyncio client for key layout and error translation.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlink_app.cache.strategies import InMemoryCache, RedisCache
from shortlink_app.exceptions import TransientIOError


def sweep(cache, batch_size=100, between_batches=None):
    """Run a full scan_views sweep, returning (visited codes, number of calls)"""
    async def run():
        visited = []
        calls = 0
        cursor = 0
        while True:
            codes, cursor = await cache.scan_views(cursor, batch_size)
            calls += 1
            visited.extend(codes)
            if between_batches:
                await between_batches(codes)
            if cursor == 0:
                return visited, calls
    return asyncio.run(run())


class TestInMemoryCache:
    """Test in-memory cache behaviour"""

    def test_missing_url_is_none(self, cache):
        assert asyncio.run(cache.get_url("nope")) is None

    def test_set_and_get_url(self, cache):
        asyncio.run(cache.set_url("abc123", "https://example.com/"))

        assert asyncio.run(cache.get_url("abc123")) == "https://example.com/"

    def test_set_url_overwrites(self, cache):
        asyncio.run(cache.set_url("abc123", "https://old.example.com/"))
        asyncio.run(cache.set_url("abc123", "https://new.example.com/"))

        assert asyncio.run(cache.get_url("abc123")) == "https://new.example.com/"

    def test_url_ttl_expires_mapping(self):
        cache = InMemoryCache(url_ttl=0)

        asyncio.run(cache.set_url("abc123", "https://example.com/"))

        assert asyncio.run(cache.get_url("abc123")) is None

    def test_deletes_are_idempotent(self, cache):
        asyncio.run(cache.set_url("abc123", "https://example.com/"))
        asyncio.run(cache.incr_views("abc123"))

        asyncio.run(cache.del_url("abc123"))
        asyncio.run(cache.del_url("abc123"))
        asyncio.run(cache.del_views("abc123"))
        asyncio.run(cache.del_views("abc123"))

        assert asyncio.run(cache.get_url("abc123")) is None
        assert asyncio.run(cache.get_views("abc123")) == 0

    def test_missing_counter_reads_zero(self, cache):
        assert asyncio.run(cache.get_views("nope")) == 0

    def test_concurrent_increments_are_not_lost(self, cache):
        async def hammer():
            await asyncio.gather(*(cache.incr_views("hot") for _ in range(500)))

        asyncio.run(hammer())

        assert asyncio.run(cache.get_views("hot")) == 500

    def test_drain_keeps_views_added_after_read(self, cache):
        for _ in range(5):
            asyncio.run(cache.incr_views("abc123"))

        remaining = asyncio.run(cache.drain_views("abc123", 3))

        assert remaining == 2
        assert asyncio.run(cache.get_views("abc123")) == 2

    def test_drain_to_zero_removes_counter(self, cache):
        for _ in range(3):
            asyncio.run(cache.incr_views("abc123"))

        assert asyncio.run(cache.drain_views("abc123", 3)) == 0
        visited, _ = sweep(cache)

        assert "abc123" not in visited

    def test_scan_visits_every_counter(self, cache):
        """250 counters, batches of 100: three calls, full coverage, cursor ends at 0"""
        codes = {f"code{i}" for i in range(250)}
        for code in codes:
            asyncio.run(cache.incr_views(code))

        visited, calls = sweep(cache, batch_size=100)

        assert set(visited) == codes
        assert calls == 3

    def test_scan_survives_deletes_mid_sweep(self, cache):
        """Draining visited counters does not make the sweep skip unvisited ones"""
        codes = {f"code{i}" for i in range(250)}
        for code in codes:
            asyncio.run(cache.incr_views(code))

        async def drain(batch):
            for code in batch:
                await cache.del_views(code)

        visited, _ = sweep(cache, batch_size=100, between_batches=drain)

        assert set(visited) == codes

    def test_scan_empty(self, cache):
        assert asyncio.run(cache.scan_views(0, 100)) == ([], 0)

    def test_verification_codes_use_their_own_ttl(self):
        cache = InMemoryCache(url_ttl=3600, verification_ttl=0)

        asyncio.run(cache.set_verification_code("a@example.com", "123456"))
        asyncio.run(cache.set_url("abc123", "https://example.com/"))

        assert asyncio.run(cache.get_verification_code("a@example.com")) is None
        assert asyncio.run(cache.get_url("abc123")) == "https://example.com/"


@pytest.fixture
def redis_client():
    """Mocked redis.asyncio client"""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.incr = AsyncMock(return_value=1)
    client.scan = AsyncMock(return_value=(0, []))
    client.aclose = AsyncMock()
    client.register_script.return_value = AsyncMock(return_value=0)
    return client


@pytest.fixture
def redis_cache(redis_client):
    return RedisCache(redis_client, url_ttl=3600, verification_ttl=300)


class TestRedisCache:
    """Test Redis cache adapter"""

    def test_set_url_uses_prefix_and_ttl(self, redis_cache, redis_client):
        asyncio.run(redis_cache.set_url("abc123", "https://example.com/"))

        redis_client.set.assert_awaited_once_with("url:abc123", "https://example.com/", ex=3600)

    def test_verification_code_uses_separate_ttl(self, redis_cache, redis_client):
        asyncio.run(redis_cache.set_verification_code("a@example.com", "123456"))

        redis_client.set.assert_awaited_once_with("verify:a@example.com", "123456", ex=300)

    def test_incr_views_uses_atomic_incr(self, redis_cache, redis_client):
        redis_client.incr.return_value = 4

        assert asyncio.run(redis_cache.incr_views("abc123")) == 4
        redis_client.incr.assert_awaited_once_with("views:abc123")

    def test_get_views_defaults_to_zero(self, redis_cache, redis_client):
        assert asyncio.run(redis_cache.get_views("abc123")) == 0

        redis_client.get.return_value = "17"
        assert asyncio.run(redis_cache.get_views("abc123")) == 17

    def test_scan_strips_prefix(self, redis_cache, redis_client):
        redis_client.scan.return_value = (42, ["views:abc", "views:def"])

        codes, cursor = asyncio.run(redis_cache.scan_views(0, 100))

        assert codes == ["abc", "def"]
        assert cursor == 42
        redis_client.scan.assert_awaited_once_with(cursor=0, match="views:*", count=100)

    def test_drain_runs_script(self, redis_cache, redis_client):
        script = redis_client.register_script.return_value
        script.return_value = 2

        assert asyncio.run(redis_cache.drain_views("abc123", 5)) == 2
        script.assert_awaited_once_with(keys=["views:abc123"], args=[5])

    def test_redis_errors_become_transient(self, redis_cache, redis_client):
        redis_client.get.side_effect = RedisConnectionError("down")

        with pytest.raises(TransientIOError):
            asyncio.run(redis_cache.get_url("abc123"))

    def test_close_releases_client(self, redis_cache, redis_client):
        asyncio.run(redis_cache.close())

        redis_client.aclose.assert_awaited_once()
