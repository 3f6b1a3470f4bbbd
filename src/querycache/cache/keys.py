"""Cache key schema for querycache.

Entries:          {prefix}{key}              when len(key) <= threshold
                  {prefix}{base64(sha1(key))} otherwise
Dependency sets:  {entity_prefix}.{tag}

Short keys stay readable in redis-cli; long statement keys are hashed so key
comparisons on the server stay cheap.
"""

from __future__ import annotations

import base64
import hashlib

from querycache.config import Settings
from querycache.config import settings as default_settings

DEFAULT_HASH_THRESHOLD = 128


class CacheKeys:
    """Storage key generator for cache entries and dependency sets."""

    def __init__(
        self,
        prefix: str,
        entity_prefix: str,
        hash_threshold: int = DEFAULT_HASH_THRESHOLD,
    ):
        self.prefix = prefix
        self.entity_prefix = entity_prefix
        self.hash_threshold = hash_threshold

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> CacheKeys:
        settings = settings or default_settings
        return cls(
            prefix=settings.cache_key_prefix,
            entity_prefix=settings.entity_cache_prefix,
            hash_threshold=settings.key_hash_threshold,
        )

    def is_hashed(self, key: str) -> bool:
        """Whether ``key`` is stored under its digest."""
        return len(key) > self.hash_threshold

    def storage_key(self, key: str) -> str:
        """Redis key an entry for ``key`` is stored under."""
        if not self.is_hashed(key):
            return key if key.startswith(self.prefix) else f"{self.prefix}{key}"

        digest = hashlib.sha1(key.encode("utf-8"), usedforsecurity=False).digest()
        return f"{self.prefix}{base64.b64encode(digest).decode('ascii')}"

    def dependency_set(self, tag: str) -> str:
        """Redis set holding the storage keys that depend on ``tag``."""
        return f"{self.entity_prefix}.{tag}"

    def prefix_pattern(self) -> str:
        """SCAN pattern matching every entry key."""
        return f"{self.prefix}*"
