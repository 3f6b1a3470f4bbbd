"""Fire-and-forget Redis operations.

Index maintenance does not need to finish before the caller continues: a
late or lost update only makes a future invalidation slower, and TTL is the
backstop. Operations are scheduled as tasks that are tracked until they
finish so they are not garbage-collected mid-flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class DetachedOperations:
    """Tracks background tasks spawned by the cache store."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, operation: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """Schedule ``operation`` without awaiting it."""
        task = asyncio.create_task(operation, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Detached cache operation {task.get_name()} failed: {exc}", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled operation, including ones they schedule."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
