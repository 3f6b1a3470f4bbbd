"""Query cache facade used by statement interceptors.

Reads go through ``lookup`` then, on a miss, ``store_result``; writes call
``invalidate_for_command`` after the statement has executed.

Example:
    service = QueryCacheService(DistributedQueryCache(await get_redis()))

    lookup = await service.lookup(sql, parameters, entities)
    if lookup.entry is not None:
        return lookup.entry.value
    rows = await execute(sql, parameters)
    await service.store_result(lookup, rows)
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import orjson

from querycache.cache.entry import CacheEntry, ExpirationOptions
from querycache.cache.invalidation import CacheInvalidator
from querycache.cache.store import DistributedQueryCache
from querycache.enums import CacheExpirationMode
from querycache.observability.logging import LogContext
from querycache.policy.directive import DirectiveParser
from querycache.policy.extractor import (
    EntityDescriptor,
    RegexSqlCommandsProcessor,
    SqlCommandsProcessor,
)
from querycache.policy.models import CachePolicy
from querycache.policy.resolver import CachePolicyResolver, SkipPredicate

logger = logging.getLogger(__name__)


def expiration_options_for(policy: CachePolicy) -> ExpirationOptions:
    """Map a policy onto store expiration options."""
    if policy.expiration_mode is CacheExpirationMode.SLIDING:
        return ExpirationOptions(sliding_expiration=policy.timeout)
    return ExpirationOptions(absolute_expiration_relative_to_now=policy.timeout)


def statement_id_for(command_text: str) -> str:
    """Short stable id of a statement, used to correlate its log lines."""
    text = DirectiveParser.strip_directive(command_text).strip()
    return hashlib.sha1(text.encode("utf-8"), usedforsecurity=False).hexdigest()[:12]


def build_cache_key(
    command_text: str,
    parameters: Mapping[str, Any] | None = None,
    salt_key: str = "",
) -> str:
    """Deterministic key for a statement, its bound parameters and salt.

    The directive line is not part of the key, so re-tagging a statement
    with a different timeout still hits the same entry.
    """
    text = DirectiveParser.strip_directive(command_text).strip()
    params = orjson.dumps(
        dict(parameters or {}), option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS, default=str
    )
    digest = hashlib.sha256(params + salt_key.encode("utf-8")).hexdigest()[:16]
    return f"{text}|{digest}"


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache lookup for one statement."""

    command_text: str
    policy: CachePolicy | None
    key: str | None
    entry: CacheEntry | None = None

    @property
    def cacheable(self) -> bool:
        return self.policy is not None

    @property
    def hit(self) -> bool:
        return self.entry is not None


class QueryCacheService:
    """Wires policy resolution, the entry store and invalidation together."""

    def __init__(
        self,
        cache: DistributedQueryCache,
        sql_commands_processor: SqlCommandsProcessor | None = None,
        skip_caching_commands: SkipPredicate | None = None,
    ):
        if cache is None:
            raise ValueError("cache is required")
        self.cache = cache
        self.processor: SqlCommandsProcessor = (
            sql_commands_processor or RegexSqlCommandsProcessor()
        )
        self.resolver = CachePolicyResolver(
            self.processor,
            settings=cache.settings,
            skip_caching_commands=skip_caching_commands,
        )
        self.invalidator = CacheInvalidator(cache)

    async def lookup(
        self,
        command_text: str,
        parameters: Mapping[str, Any] | None = None,
        known_entities: Sequence[EntityDescriptor] = (),
    ) -> CacheLookup:
        with LogContext(statement_id=statement_id_for(command_text)):
            policy = self.resolver.resolve(command_text, known_entities)
            if policy is None:
                return CacheLookup(command_text=command_text, policy=None, key=None)

            key = build_cache_key(command_text, parameters, policy.salt_key)
            with LogContext(cache_key=key):
                entry = await self.cache.get_item(key)
                logger.debug(f"Query cache {'hit' if entry is not None else 'miss'}")
        return CacheLookup(command_text=command_text, policy=policy, key=key, entry=entry)

    def dependency_tags(
        self,
        command_text: str,
        policy: CachePolicy | None = None,
        known_entities: Sequence[EntityDescriptor] = (),
    ) -> list[str]:
        """Tags an entry depends on: explicit policy dependencies, else its tables."""
        if policy is not None and policy.dependencies:
            return list(policy.dependencies)

        tags = dict.fromkeys(self.processor.get_table_names(command_text))
        for entity in self.processor.get_entity_types(command_text, known_entities):
            tags.setdefault(entity.table_name, None)
        return list(tags)

    async def store_result(
        self,
        lookup: CacheLookup,
        value: Any,
        known_entities: Sequence[EntityDescriptor] = (),
    ) -> bool:
        """Cache ``value`` for a lookup that resolved to a policy."""
        if lookup.policy is None or lookup.key is None:
            return False

        tags = self.dependency_tags(lookup.command_text, lookup.policy, known_entities)
        return await self.cache.put_item(
            lookup.key, value, tags, expiration_options_for(lookup.policy)
        )

    async def invalidate_for_command(
        self,
        command_text: str,
        known_entities: Sequence[EntityDescriptor] = (),
    ) -> int:
        """Invalidate entries depending on the tables a mutating command touched."""
        if not self.processor.is_crud_command(command_text):
            return 0

        tags = self.dependency_tags(command_text, None, known_entities)
        if not tags:
            return 0
        with LogContext(statement_id=statement_id_for(command_text)):
            return await self.invalidator.invalidate_sets(tags)
