"""Tests for dependency-driven invalidation."""

from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from querycache.cache.invalidation import CacheInvalidator
from querycache.cache.store import DistributedQueryCache
from querycache.config import Settings


@pytest.fixture
def cache(client: fakeredis.aioredis.FakeRedis) -> DistributedQueryCache:
    settings = Settings(invalidation_aliases=[("ResultEntity", "Result_Result")])
    return DistributedQueryCache(client, settings=settings, database=0)


@pytest.fixture
def invalidator(cache: DistributedQueryCache) -> CacheInvalidator:
    return CacheInvalidator(cache)


class TestInvalidateSets:
    """Test invalidation by dependency tag."""

    def test_cache_required(self) -> None:
        with pytest.raises(ValueError):
            CacheInvalidator(None)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_removes_dependent_entries(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        await cache.put_item("users", 1, ["Users"])
        await cache.put_item("orders", 2, ["Orders"])
        await cache.drain()

        assert await invalidator.invalidate_sets(["Users"]) == 1
        await cache.drain()

        assert await cache.get_item("users") is None
        assert await cache.get_item("orders") is not None
        assert await client.exists("qc:deps.Users") == 0

    @pytest.mark.asyncio
    async def test_expired_member_skipped(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        """Index members whose entry already expired are not counted."""
        await cache.put_item("a", 1, ["Users"])
        await cache.put_item("b", 2, ["Users"])
        await cache.drain()
        await client.delete("qc:b")

        assert await invalidator.invalidate_sets(["Users"]) == 1
        await cache.drain()

        assert await cache.get_item("a") is None
        assert await client.exists("qc:deps.Users") == 0

    @pytest.mark.asyncio
    async def test_other_tag_memberships_removed(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        await cache.put_item("join", 1, ["Users", "Orders"])
        await cache.put_item("orders", 2, ["Orders"])
        await cache.drain()

        await invalidator.invalidate_sets(["Users"])
        await cache.drain()

        assert await client.smembers("qc:deps.Orders") == {b"qc:orders"}

    @pytest.mark.asyncio
    async def test_aliases_expanded(
        self, cache: DistributedQueryCache, invalidator: CacheInvalidator
    ) -> None:
        """Legacy table names invalidate entries cached under the current name."""
        await cache.put_item("legacy", 1, ["Result_Result"])
        await cache.put_item("current", 2, ["ResultEntity"])
        await cache.drain()

        assert await invalidator.invalidate_sets(["ResultEntity"]) == 2

    @pytest.mark.asyncio
    async def test_empty_tag_list_is_noop(
        self, cache: DistributedQueryCache, invalidator: CacheInvalidator
    ) -> None:
        await cache.put_item("users", 1, ["Users"])
        await cache.drain()

        assert await invalidator.invalidate_sets([]) == 0
        assert await cache.get_item("users") is not None

    @pytest.mark.asyncio
    async def test_long_keys_invalidated(
        self, cache: DistributedQueryCache, invalidator: CacheInvalidator
    ) -> None:
        key = "SELECT * FROM Users WHERE " + "x" * 150
        await cache.put_item(key, 1, ["Users"])
        await cache.drain()

        assert await invalidator.invalidate_sets(["Users"]) == 1
        assert await cache.get_item(key) is None

    @pytest.mark.asyncio
    async def test_foreign_entry_does_not_stop_invalidation(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        """A member holding a non-entry value is removed and the rest still are."""
        await cache.put_item("good", 1, ["Users"])
        await cache.drain()
        await client.set("qc:bad", b'{"value": 1, "entity_sets": 5}')
        await client.sadd("qc:deps.Users", "qc:bad")

        assert await invalidator.invalidate_sets(["Users"]) == 2
        await cache.drain()

        assert await client.exists("qc:good", "qc:bad") == 0

    @pytest.mark.asyncio
    async def test_unreachable_redis_removes_nothing(self) -> None:
        client = AsyncMock()
        client.smembers.side_effect = RedisConnectionError("Connection refused")
        cache = DistributedQueryCache(client, settings=Settings(), database=0)

        assert await CacheInvalidator(cache).invalidate_sets(["Users"]) == 0
        client.delete.assert_not_called()


class TestInvalidateItem:
    """Test invalidation of a single key."""

    @pytest.mark.asyncio
    async def test_removes_entry_and_memberships(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        await cache.put_item("users", 1, ["Users"])
        await cache.put_item("users-2", 2, ["Users"])
        await cache.drain()

        assert await invalidator.invalidate_item("users") is True
        await cache.drain()

        assert await client.smembers("qc:deps.Users") == {b"qc:users-2"}

    @pytest.mark.asyncio
    async def test_missing_entry(self, invalidator: CacheInvalidator) -> None:
        assert await invalidator.invalidate_item("missing") is False

    @pytest.mark.asyncio
    async def test_undecodable_entry_deleted(
        self, invalidator: CacheInvalidator, client: fakeredis.aioredis.FakeRedis
    ) -> None:
        await client.set("qc:broken", b"{")

        assert await invalidator.invalidate_item("broken") is True
        assert await client.exists("qc:broken") == 0


    @pytest.mark.asyncio
    async def test_failed_delete_reported(self) -> None:
        client = AsyncMock()
        client.get.return_value = b'{"value": 1, "entity_sets": ["Users"]}'
        client.delete.side_effect = RedisConnectionError("Connection refused")
        cache = DistributedQueryCache(client, settings=Settings(), database=0)

        assert await CacheInvalidator(cache).invalidate_item("users") is False
        await cache.drain()
        client.srem.assert_not_called()


class TestClearAll:
    """Test wholesale removal."""

    @pytest.mark.asyncio
    async def test_database_zero_deletes_own_keys(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        await cache.put_item("users", 1, ["Users"])
        await client.set("session:42", b"keep")
        await cache.drain()

        await invalidator.clear_all()
        await cache.drain()

        assert await client.keys("qc:*") == []
        assert await client.get("session:42") == b"keep"

    @pytest.mark.asyncio
    async def test_pattern(
        self,
        cache: DistributedQueryCache,
        invalidator: CacheInvalidator,
        client: fakeredis.aioredis.FakeRedis,
    ) -> None:
        await cache.set("orders:1", b"1")
        await cache.set("users:1", b"2")

        await invalidator.clear_all("qc:orders:*")
        await cache.drain()

        assert await client.exists("qc:orders:1") == 0
        assert await client.exists("qc:users:1") == 1

    @pytest.mark.asyncio
    async def test_other_database_flushed(self, client: fakeredis.aioredis.FakeRedis) -> None:
        cache = DistributedQueryCache(client, settings=Settings(), database=3)
        await cache.set("k", b"1")
        await client.set("session:42", b"gone")

        await CacheInvalidator(cache).clear_all()
        await cache.drain()

        assert await client.dbsize() == 0

    @pytest.mark.asyncio
    async def test_scan_failure_swallowed(self) -> None:
        client = AsyncMock()
        client.scan_iter = MagicMock(side_effect=RedisConnectionError("Connection refused"))
        cache = DistributedQueryCache(client, settings=Settings(), database=0)

        await CacheInvalidator(cache).clear_all()
        await cache.drain()

        client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_flush_failure_swallowed(self) -> None:
        client = AsyncMock()
        client.flushdb.side_effect = RedisConnectionError("Connection refused")
        cache = DistributedQueryCache(client, settings=Settings(), database=3)

        await CacheInvalidator(cache).clear_all()
        await cache.drain()

        client.flushdb.assert_called_once()
