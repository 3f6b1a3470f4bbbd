"""Distributed cache store for query results.

Entries are written as ``CacheEntry`` JSON at their storage key with a TTL,
and every dependency tag of the entry is indexed so the entry can later be
invalidated when one of its tables changes.

No call in this module raises past its own boundary: read failures are
reported as misses and write failures are logged.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Iterable, cast

from querycache.cache.detached import DetachedOperations
from querycache.cache.entry import (
    CacheEntry,
    ExpirationOptions,
    effective_ttl,
    normalize_tags,
)
from querycache.cache.index import DependencyIndex
from querycache.cache.keys import CacheKeys
from querycache.cache.results import attempt
from querycache.config import Settings
from querycache.config import settings as default_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def _milliseconds(value: timedelta) -> int:
    return max(1, int(value.total_seconds() * 1000))


class DistributedQueryCache:
    """Redis-backed store of query results with dependency tracking.

    Example:
        cache = DistributedQueryCache(await get_redis())
        await cache.put_item(key, rows, ["Orders", "Users"])
        entry = await cache.get_item(key)
        await cache.drain()  # on shutdown
    """

    def __init__(
        self,
        client: Redis,
        settings: Settings | None = None,
        default_options: ExpirationOptions | None = None,
        database: int | None = None,
    ):
        if client is None:
            raise ValueError("client is required")

        self.client = client
        self.settings = settings or default_settings
        self.keys = CacheKeys.from_settings(self.settings)
        self.default_options = default_options
        self.database = database if database is not None else self._client_database(client)
        self.detached = DetachedOperations()
        self.index = DependencyIndex(
            client,
            self.keys,
            self.detached,
            aliases=self.settings.invalidation_aliases,
            ttl_margin=self.settings.dependency_ttl_margin,
        )

    @staticmethod
    def _client_database(client: Redis) -> int:
        pool = getattr(client, "connection_pool", None)
        kwargs = getattr(pool, "connection_kwargs", None)
        if not isinstance(kwargs, dict):
            return 0
        return int(kwargs.get("db", 0) or 0)

    def _ttl(self, options: ExpirationOptions | None) -> timedelta | None:
        # Per-call options win over the store defaults.
        return effective_ttl(options or self.default_options, self.settings.default_ttl)

    # -------------------------------------------------------------------------
    # Entries with dependency tags
    # -------------------------------------------------------------------------

    async def get_item(self, key: str) -> CacheEntry | None:
        """Read a cached entry; any failure counts as a miss."""
        storage_key = self.keys.storage_key(key)
        result = await attempt(self.client.get(storage_key))
        if not result.ok:
            logger.error(
                f"Cache read failed (hashed={self.keys.is_hashed(key)}): {result.error}",
                exc_info=result.error,
            )
            return None
        if not result.value:
            return None

        try:
            return CacheEntry.from_bytes(result.value)
        except ValueError as e:
            logger.error(f"Discarding undecodable cache entry {storage_key}: {e}")
            return None

    async def put_item(
        self,
        key: str,
        value: Any,
        dependent_entity_sets: Iterable[str],
        options: ExpirationOptions | None = None,
    ) -> bool:
        """Write an entry and index it under each of its dependency tags.

        Returns False when nothing was written.
        """
        entity_sets = normalize_tags(dependent_entity_sets)
        ttl = self._ttl(options)
        if ttl is None:
            logger.debug("Expiration already passed, entry not cached")
            return False

        storage_key = self.keys.storage_key(key)
        try:
            data = CacheEntry(value, entity_sets).to_bytes()
        except TypeError as e:
            logger.error(f"Cache value for {storage_key} is not serializable: {e}")
            return False

        result = await attempt(self.client.set(storage_key, data, px=_milliseconds(ttl)))
        if not result.ok:
            logger.error(
                f"Cache write failed (hashed={self.keys.is_hashed(key)}): {result.error}",
                exc_info=result.error,
            )
            return False

        self.index.register(storage_key, entity_sets, ttl)
        return True

    async def remove(self, key: str) -> None:
        """Delete an entry; its tag memberships are left for invalidation to clean."""
        result = await attempt(self.client.delete(self.keys.storage_key(key)))
        if not result.ok:
            logger.error(f"Cache delete failed: {result.error}", exc_info=result.error)

    # -------------------------------------------------------------------------
    # Raw byte values
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        """Read raw bytes stored with ``set``."""
        result = await attempt(self.client.get(self.keys.storage_key(key)))
        if not result.ok:
            logger.error(f"Cache read failed: {result.error}", exc_info=result.error)
            return None
        return cast(bytes | None, result.value)

    async def set(self, key: str, value: bytes, options: ExpirationOptions | None = None) -> bool:
        """Write raw bytes without dependency tracking."""
        ttl = self._ttl(options)
        if ttl is None:
            return False

        result = await attempt(
            self.client.set(self.keys.storage_key(key), value, px=_milliseconds(ttl))
        )
        if not result.ok:
            logger.error(f"Cache write failed: {result.error}", exc_info=result.error)
            return False
        return True

    async def refresh(self, key: str, options: ExpirationOptions | None = None) -> bool:
        """Restart the sliding window of an entry.

        Entries without a positive sliding expiration, or without a TTL, are
        left alone.
        """
        options = options or self.default_options
        if options is None or options.sliding_expiration is None:
            return False
        if options.sliding_expiration <= timedelta(0):
            return False

        storage_key = self.keys.storage_key(key)
        current = await attempt(self.client.pttl(storage_key))
        if not current.ok or current.value is None or current.value < 0:
            return False

        result = await attempt(
            self.client.pexpire(storage_key, _milliseconds(options.sliding_expiration))
        )
        return bool(result.ok and result.value)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def get_status(self) -> tuple[bool, str]:
        """Check Redis connectivity."""
        result = await attempt(self.client.ping())
        if not result.ok:
            return False, f"Redis unavailable: {result.error}"
        return True, f"Redis connected (db={self.database})"

    async def drain(self) -> None:
        """Wait for pending fire-and-forget index updates."""
        await self.detached.drain()
