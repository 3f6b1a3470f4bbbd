"""CLI commands for querycache.

Provides command-line interface using Typer:
- querycache resolve: Show the cache policy a statement resolves to
- querycache strip: Print a statement without its policy directive
- querycache invalidate: Invalidate entries depending on tables
- querycache clear: Remove cached entries
- querycache status: Check Redis connectivity

Usage:
    querycache --help
    querycache resolve "SELECT * FROM Orders"
    querycache invalidate Orders Users
    querycache clear --pattern "qc:*Orders*"
"""

import typer

from querycache.cli.cache_cmd import clear, invalidate, status
from querycache.cli.policy_cmd import STATEMENT_CONTEXT, resolve, strip
from querycache.config import settings
from querycache.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="querycache",
    help="querycache: second-level query cache with dependency-tracked invalidation",
    no_args_is_help=True,
)

# Add commands
app.command("resolve", context_settings=STATEMENT_CONTEXT)(resolve)
app.command("strip", context_settings=STATEMENT_CONTEXT)(strip)
app.command("invalidate")(invalidate)
app.command("clear")(clear)
app.command("status")(status)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """querycache: second-level query cache with dependency-tracked invalidation."""
    configure_logging(
        json_format=settings.log_json,
        level="DEBUG" if verbose else settings.log_level,
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
