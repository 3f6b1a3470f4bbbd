"""Dependency-driven cache invalidation.

When a statement modifies tables, every entry that lists one of those tables
as a dependency is removed. Tag names are first expanded with the configured
aliases, so renamed tables keep invalidating entries cached under their
legacy names.

Example:
    invalidator = CacheInvalidator(cache)

    # After an UPDATE on Orders
    await invalidator.invalidate_sets(["Orders"])

    # Drop everything the store owns
    await invalidator.clear_all()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from querycache.cache.entry import CacheEntry
from querycache.cache.results import TRANSPORT_ERRORS, attempt

if TYPE_CHECKING:
    from querycache.cache.store import DistributedQueryCache

logger = logging.getLogger(__name__)

# Keys deleted per DEL when clearing by pattern
SCAN_BATCH_SIZE = 1000


class CacheInvalidator:
    """Removes cache entries by dependency tag, by key, or wholesale."""

    def __init__(self, cache: DistributedQueryCache):
        if cache is None:
            raise ValueError("cache is required")
        self.cache = cache
        self.client = cache.client
        self.keys = cache.keys
        self.index = cache.index

    async def invalidate_sets(self, entity_sets: Iterable[str]) -> int:
        """Invalidate every entry depending on any of ``entity_sets``.

        Returns the number of entries removed.
        """
        pending: set[str] = set()
        for tag in self.index.expand(entity_sets):
            members = await self.index.members(tag)
            if members is None:
                # Redis is unreachable; TTL will expire the entries.
                return 0
            pending.update(members)
            self.index.discard(tag)

        removed = 0
        for storage_key in pending:
            if await self._invalidate_storage_key(storage_key):
                removed += 1

        if pending:
            logger.debug(f"Invalidated {removed} of {len(pending)} indexed cache entries")
        return removed

    async def invalidate_item(self, key: str) -> bool:
        """Remove one entry and its dependency-set memberships."""
        return await self._invalidate_storage_key(self.keys.storage_key(key))

    async def _invalidate_storage_key(self, storage_key: str) -> bool:
        result = await attempt(self.client.get(storage_key))
        if not result.ok:
            logger.error(f"Failed to read {storage_key} for invalidation: {result.error}")
            return False
        if not result.value:
            # Expired since it was indexed.
            return False

        try:
            entity_sets: tuple[str, ...] = CacheEntry.from_bytes(result.value).entity_sets
        except ValueError as e:
            logger.warning(f"Removing undecodable cache entry {storage_key}: {e}")
            entity_sets = ()

        deleted = await attempt(self.client.delete(storage_key))
        if not deleted.ok:
            logger.error(f"Failed to delete {storage_key}: {deleted.error}")
            return False

        self.index.unregister(storage_key, entity_sets)
        return True

    async def clear_all(self, pattern: str | None = None) -> None:
        """Best-effort removal of cached data.

        With a pattern, matching keys are deleted. Otherwise the store's own
        keys are deleted on logical database 0, and any other logical database
        is flushed entirely.
        """
        match = pattern or (self.keys.prefix_pattern() if self.cache.database == 0 else None)
        try:
            if match is None:
                self.cache.detached.spawn(self._flush_database(), name="clear:flushdb")
                logger.info(f"Flushing cache database {self.cache.database}")
                return

            batch: list[bytes | str] = []
            async for key in self.client.scan_iter(match=match, count=SCAN_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= SCAN_BATCH_SIZE:
                    self._delete_batch(batch)
                    batch = []
            if batch:
                self._delete_batch(batch)
            logger.info(f"Cleared cache keys matching {match}")
        except TRANSPORT_ERRORS as e:
            logger.error(f"Clear cache failed: {e}", exc_info=e)

    def _delete_batch(self, batch: list[bytes | str]) -> None:
        self.cache.detached.spawn(self._delete_keys(batch), name="clear:delete")

    async def _delete_keys(self, batch: list[bytes | str]) -> None:
        result = await attempt(self.client.delete(*batch))
        if not result.ok:
            logger.error(f"Clear cache delete failed: {result.error}")

    async def _flush_database(self) -> None:
        result = await attempt(self.client.flushdb())
        if not result.ok:
            logger.error(f"Clear cache flush failed: {result.error}")
