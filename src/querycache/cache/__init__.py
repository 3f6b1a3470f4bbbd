"""Cache layer for querycache.

Provides a Redis-backed second-level cache for query results:
- Entries carry the tables/entities they depend on
- A per-tag reverse index enables set-based invalidation
- TTL-based expiration bounds staleness when the index lags
- Long keys are hashed to keep Redis key sizes bounded
"""

from querycache.cache.entry import CacheEntry, ExpirationOptions, effective_ttl
from querycache.cache.index import DependencyIndex
from querycache.cache.invalidation import CacheInvalidator
from querycache.cache.keys import CacheKeys
from querycache.cache.redis import close_redis, get_redis
from querycache.cache.results import StoreResult
from querycache.cache.store import DistributedQueryCache

__all__ = [
    # Core cache
    "CacheEntry",
    "CacheKeys",
    "DistributedQueryCache",
    "ExpirationOptions",
    "effective_ttl",
    "get_redis",
    "close_redis",
    "StoreResult",
    # Dependency tracking
    "CacheInvalidator",
    "DependencyIndex",
]
