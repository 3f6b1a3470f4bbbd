"""CLI commands operating on the Redis cache store.

Usage:
    querycache invalidate Orders Users
    querycache clear
    querycache clear --pattern "qc:*"
    querycache status
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import typer
from rich.console import Console

from querycache.cache import CacheInvalidator, DistributedQueryCache, close_redis, get_redis

T = TypeVar("T")


def _run(operation: Callable[[DistributedQueryCache], Awaitable[T]]) -> T:
    async def runner() -> T:
        cache = DistributedQueryCache(await get_redis())
        try:
            result = await operation(cache)
            await cache.drain()
            return result
        finally:
            await close_redis()

    return asyncio.run(runner())


def invalidate(
    tables: list[str] = typer.Argument(..., help="Table or entity names to invalidate"),
) -> None:
    """Invalidate every cached result depending on the given tables."""
    console = Console()
    removed = _run(lambda cache: CacheInvalidator(cache).invalidate_sets(tables))
    console.print(f"[green]Invalidated {removed} cached result(s)[/green]")


def clear(
    pattern: str | None = typer.Option(
        None, "--pattern", "-p", help="Only delete keys matching this Redis glob pattern"
    ),
) -> None:
    """Remove cached results (all of the store's keys by default)."""
    console = Console()
    _run(lambda cache: CacheInvalidator(cache).clear_all(pattern))
    console.print("[green]Cache cleared[/green]")


def status() -> None:
    """Check Redis connectivity."""
    console = Console()
    connected, description = _run(lambda cache: cache.get_status())
    if not connected:
        console.print(f"[red]{description}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]{description}[/green]")
