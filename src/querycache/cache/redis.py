"""Redis client lifecycle for querycache.

Uses the redis-py async client with connection pooling. Values are stored as
raw bytes, so responses are not decoded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import redis.asyncio as redis

from querycache.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get or create the Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            decode_responses=False,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
