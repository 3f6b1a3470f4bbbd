"""Reverse index from dependency tags to the cache entries that depend on them.

Each tag owns a Redis set of storage keys. The index is advisory: entries
expire on their own without touching it, so a set may still list keys that
are gone. Those are skipped when the tag is invalidated.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Awaitable, Iterable, Sequence

from querycache.cache.detached import DetachedOperations
from querycache.cache.keys import CacheKeys
from querycache.cache.results import attempt

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Tag sets outlive the entries they point at by this much
DEFAULT_TTL_MARGIN = timedelta(minutes=5)


def _decode(member: bytes | str) -> str:
    return member.decode("utf-8") if isinstance(member, bytes) else member


def _seconds(value: timedelta) -> int:
    return max(1, math.ceil(value.total_seconds()))


class DependencyIndex:
    """Tag-to-keys sets plus the alias table used to expand invalidations."""

    def __init__(
        self,
        client: Redis,
        keys: CacheKeys,
        detached: DetachedOperations,
        aliases: Sequence[tuple[str, str]] = (),
        ttl_margin: timedelta = DEFAULT_TTL_MARGIN,
    ):
        self.client = client
        self.keys = keys
        self.detached = detached
        self.ttl_margin = ttl_margin
        self._aliases: dict[str, list[str]] = {}
        for name, alias in aliases:
            self._aliases.setdefault(name, []).append(alias)
            self._aliases.setdefault(alias, []).append(name)

    def expand(self, tags: Iterable[str]) -> list[str]:
        """Add the aliases of every tag, keeping order and dropping duplicates."""
        expanded: dict[str, None] = {}
        for tag in tags:
            expanded.setdefault(tag, None)
            for alias in self._aliases.get(tag, ()):
                expanded.setdefault(alias, None)
        return list(expanded)

    def register(self, storage_key: str, tags: Iterable[str], entry_ttl: timedelta) -> None:
        """Add ``storage_key`` to each tag set (fire-and-forget)."""
        set_ttl = _seconds(entry_ttl + self.ttl_margin)
        for tag in tags:
            self.detached.spawn(
                self._add_member(self.keys.dependency_set(tag), storage_key, set_ttl),
                name=f"index-add:{tag}",
            )

    async def _add_member(self, set_key: str, storage_key: str, set_ttl: int) -> None:
        added = await attempt(self.client.sadd(set_key, storage_key))
        if not added.ok:
            logger.warning(f"Failed to index {storage_key} under {set_key}: {added.error}")
            return

        # Only ever extend: the set must outlive its longest-lived member.
        current = await attempt(self.client.ttl(set_key))
        if current.ok and current.value is not None and current.value >= set_ttl:
            return

        expired = await attempt(self.client.expire(set_key, set_ttl))
        if not expired.ok:
            logger.warning(f"Failed to set TTL on {set_key}: {expired.error}")

    async def members(self, tag: str) -> set[str] | None:
        """Storage keys listed under ``tag``; None when Redis is unreachable."""
        result = await attempt(self.client.smembers(self.keys.dependency_set(tag)))
        if not result.ok:
            logger.error(f"Failed to read dependency set {tag}: {result.error}")
            return None
        return {_decode(member) for member in result.value or ()}

    def discard(self, tag: str) -> None:
        """Delete the whole tag set (fire-and-forget)."""
        self.detached.spawn(
            self._log_failure(self.client.delete(self.keys.dependency_set(tag)), tag),
            name=f"index-drop:{tag}",
        )

    def unregister(self, storage_key: str, tags: Iterable[str]) -> None:
        """Remove ``storage_key`` from each tag set (fire-and-forget)."""
        for tag in tags:
            self.detached.spawn(
                self._log_failure(
                    self.client.srem(self.keys.dependency_set(tag), storage_key), tag
                ),
                name=f"index-remove:{tag}",
            )

    async def _log_failure(self, call: Awaitable[Any], tag: str) -> None:
        result = await attempt(call)
        if not result.ok:
            logger.warning(f"Dependency set update for {tag} failed: {result.error}")
