"""Explicit outcomes for calls into the backing store.

Redis calls never raise past the store boundary. Each call is wrapped by
``attempt`` and the caller decides what a failure means: a miss on reads,
log-and-continue on writes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, TypeVar

from redis.exceptions import RedisError

T = TypeVar("T")

# Failures a Redis round trip can end with
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (RedisError, OSError, asyncio.TimeoutError)


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Value of a backing-store call, or the error it failed with."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def attempt(call: Awaitable[T]) -> StoreResult[T]:
    """Await a Redis call and capture transport failures."""
    try:
        return StoreResult(value=await call)
    except TRANSPORT_ERRORS as exc:
        return StoreResult(error=exc)
