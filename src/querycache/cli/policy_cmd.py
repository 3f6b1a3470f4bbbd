"""CLI commands for inspecting cache policy resolution.

Usage:
    querycache resolve "SELECT * FROM Orders"
    querycache resolve query.sql --file --format json
    querycache strip < tagged.sql
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import typer
from rich.console import Console

from querycache.policy import CachePolicyResolver, DirectiveParser, format_timespan

# Tagged statements start with "--", which click would otherwise read as an option.
STATEMENT_CONTEXT = {"ignore_unknown_options": True}


def _read_statement(statement: str | None, from_file: bool) -> str:
    if statement is None or statement == "-":
        return sys.stdin.read()
    if not from_file:
        return statement
    path = Path(statement)
    if not path.is_file():
        raise typer.BadParameter(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def resolve(
    statement: str | None = typer.Argument(
        None, help="Statement text, a path with --file, or '-' / omitted for stdin"
    ),
    from_file: bool = typer.Option(False, "--file", help="Read the statement from a file"),
    output_format: str = typer.Option("text", "--format", "-f", help="Output format: text, json"),
) -> None:
    """Show the cache policy a statement resolves to."""
    console = Console()
    policy = CachePolicyResolver().resolve(_read_statement(statement, from_file))

    if output_format == "json":
        payload = None
        if policy is not None:
            payload = {
                "expiration_mode": policy.expiration_mode.value,
                "timeout": format_timespan(policy.timeout),
                "salt_key": policy.salt_key,
                "dependencies": list(policy.dependencies),
                "is_default_cacheable": policy.is_default_cacheable,
            }
        typer.echo(json.dumps({"cacheable": policy is not None, "policy": payload}))
        return

    if policy is None:
        console.print("[yellow]Not cacheable[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[green]Cacheable[/green] {policy.expiration_mode.value}")
    console.print(f"  Timeout:      {format_timespan(policy.timeout)}")
    if policy.salt_key:
        console.print(f"  Salt key:     {policy.salt_key}")
    if policy.dependencies:
        console.print(f"  Dependencies: {', '.join(policy.dependencies)}")


def strip(
    statement: str | None = typer.Argument(
        None, help="Statement text, a path with --file, or '-' / omitted for stdin"
    ),
    from_file: bool = typer.Option(False, "--file", help="Read the statement from a file"),
) -> None:
    """Print a statement without its cache policy directive."""
    typer.echo(DirectiveParser.strip_directive(_read_statement(statement, from_file)), nl=False)
