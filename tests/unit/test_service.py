"""Tests for the query cache facade."""

import logging
from datetime import timedelta

import fakeredis
import pytest

from querycache.cache.entry import ExpirationOptions
from querycache.cache.store import DistributedQueryCache
from querycache.config import CacheAllQueriesOptions, Settings
from querycache.enums import CacheExpirationMode
from querycache.observability.logging import cache_key_var, statement_id_var
from querycache.policy.extractor import EntityDescriptor
from querycache.policy.models import CachePolicy
from querycache.service import (
    QueryCacheService,
    build_cache_key,
    expiration_options_for,
    statement_id_for,
)

TAGGED = "-- EFCoreCachePolicy => Absolute|00:30:00||Users,Orders\n\nSELECT * FROM Users"


@pytest.fixture
def service(client: fakeredis.aioredis.FakeRedis) -> QueryCacheService:
    settings = Settings(
        cache_all_queries=CacheAllQueriesOptions(is_active=True, timeout=timedelta(minutes=5))
    )
    return QueryCacheService(DistributedQueryCache(client, settings=settings, database=0))


class TestHelpers:
    """Test key and expiration helpers."""

    def test_expiration_options(self) -> None:
        sliding = CachePolicy(CacheExpirationMode.SLIDING, timedelta(minutes=10))
        absolute = CachePolicy(CacheExpirationMode.ABSOLUTE, timedelta(minutes=30))

        assert expiration_options_for(sliding) == ExpirationOptions(
            sliding_expiration=timedelta(minutes=10)
        )
        assert expiration_options_for(absolute) == ExpirationOptions(
            absolute_expiration_relative_to_now=timedelta(minutes=30)
        )

    def test_cache_key_ignores_directive(self) -> None:
        assert build_cache_key(TAGGED) == build_cache_key("SELECT * FROM Users")

    def test_statement_id_ignores_directive(self) -> None:
        assert statement_id_for(TAGGED) == statement_id_for("SELECT * FROM Users")
        assert statement_id_for(TAGGED) != statement_id_for("SELECT * FROM Orders")
        assert len(statement_id_for(TAGGED)) == 12

    def test_cache_key_depends_on_parameters_and_salt(self) -> None:
        base = build_cache_key("SELECT * FROM Users WHERE Id = @p0", {"p0": 1})

        assert base == build_cache_key("SELECT * FROM Users WHERE Id = @p0", {"p0": 1})
        assert base != build_cache_key("SELECT * FROM Users WHERE Id = @p0", {"p0": 2})
        assert base != build_cache_key("SELECT * FROM Users WHERE Id = @p0", {"p0": 1}, "t1")


class ContextCapture(logging.Handler):
    """Records the log context active when each record is emitted."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.contexts: list[tuple[str, str]] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.contexts.append((statement_id_var.get(), cache_key_var.get()))


class TestQueryCacheService:
    """Test the read-through and invalidation flow."""

    @pytest.mark.asyncio
    async def test_miss_store_hit(self, service: QueryCacheService) -> None:
        lookup = await service.lookup("SELECT * FROM Users", {"p0": 1})
        assert lookup.cacheable
        assert not lookup.hit

        assert await service.store_result(lookup, [{"Id": 1}])
        await service.cache.drain()

        again = await service.lookup("SELECT * FROM Users", {"p0": 1})
        assert again.hit
        assert again.entry is not None
        assert again.entry.value == [{"Id": 1}]
        assert again.entry.entity_sets == ("Users",)

    @pytest.mark.asyncio
    async def test_not_cacheable(self, service: QueryCacheService) -> None:
        lookup = await service.lookup("SELECT NEWID()")

        assert not lookup.cacheable
        assert lookup.key is None
        assert await service.store_result(lookup, 1) is False

    @pytest.mark.asyncio
    async def test_directive_dependencies_used(self, service: QueryCacheService) -> None:
        lookup = await service.lookup(TAGGED)
        await service.store_result(lookup, "rows")
        await service.cache.drain()

        again = await service.lookup(TAGGED)
        assert again.entry is not None
        assert again.entry.entity_sets == ("Users", "Orders")

    def test_dependency_tags_include_entity_tables(self, service: QueryCacheService) -> None:
        entities = [EntityDescriptor("Shop.User", "Users")]
        tags = service.dependency_tags(
            "SELECT * FROM users u JOIN Orders o ON o.UserId = u.Id", None, entities
        )
        assert tags == ["users", "Orders", "Users"]

    @pytest.mark.asyncio
    async def test_mutation_invalidates(self, service: QueryCacheService) -> None:
        lookup = await service.lookup("SELECT * FROM Users")
        await service.store_result(lookup, "rows")
        await service.cache.drain()

        removed = await service.invalidate_for_command("UPDATE Users SET Name = 'x'")
        await service.cache.drain()

        assert removed == 1
        assert not (await service.lookup("SELECT * FROM Users")).hit

    @pytest.mark.asyncio
    async def test_select_does_not_invalidate(self, service: QueryCacheService) -> None:
        assert await service.invalidate_for_command("SELECT * FROM Users") == 0

    @pytest.mark.asyncio
    async def test_lookup_logs_with_statement_context(self, service: QueryCacheService) -> None:
        capture = ContextCapture()
        service_logger = logging.getLogger("querycache.service")
        previous_level = service_logger.level
        service_logger.addHandler(capture)
        service_logger.setLevel(logging.DEBUG)
        try:
            lookup = await service.lookup("SELECT * FROM Users")
        finally:
            service_logger.removeHandler(capture)
            service_logger.setLevel(previous_level)

        assert capture.contexts == [(statement_id_for("SELECT * FROM Users"), lookup.key)]
        assert statement_id_var.get() == ""
