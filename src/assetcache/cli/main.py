"""
CLI for the asset cache.

Commands:
    assetcache stats - Show cache statistics
    assetcache clear - Purge the whole cache
    assetcache put HASH EXT FILE - Store a file as a cache entry
    assetcache get HASH EXT - Print a cached payload
    assetcache config - Show current configuration
    assetcache version - Print version
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from assetcache import __version__
from assetcache.cache import AssetCache
from assetcache.config import Settings, clear_settings_cache, get_settings
from assetcache.exceptions import CacheWriteError
from assetcache.logging import setup_logging

app = typer.Typer(
    name="assetcache",
    help="Disk cache for optimized CSS/JS assets",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

DEFAULT_MIME_TYPES = {
    "js": "text/javascript",
    "css": "text/css",
    "txt": "text/plain",
}


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _run_inline(task: Callable[[], None]) -> None:
    task()


def _open_cache() -> AssetCache:
    """Build the cache from settings or exit with an error."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'assetcache config' to see the current values."
        )
        raise typer.Exit(1)
    if not settings.cache_configured:
        error_console.print("[red]Error:[/red] CACHE_DIR is not set.")
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL)
    # The process exits right after the command, so purge fan-out runs inline
    return AssetCache(settings, spawn=_run_inline)


@app.command()
def stats(
    refresh: Annotated[
        bool,
        typer.Option("--refresh", "-r", help="Ignore the memo and scan now"),
    ] = False,
) -> None:
    """Show number and total size of cached files."""
    cache = _open_cache()

    if refresh:
        if not cache.ensure_available():
            error_console.print("[red]Cache directory is not available.[/red]")
            raise typer.Exit(1)
        snapshot = cache.scan()
    else:
        snapshot = cache.stats()
        if not snapshot.is_available:
            error_console.print("[red]Cache directory is not available.[/red]")
            raise typer.Exit(1)

    table = Table(title="Cache statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Entries", str(snapshot.count))
    table.add_row("Size (bytes)", str(snapshot.total_bytes))
    scanned = snapshot.scanned_at_datetime
    table.add_row("Scanned at", scanned.isoformat() if scanned else "-")
    console.print(table)


@app.command()
def clear() -> None:
    """Delete every cached file and flush page caches."""
    cache = _open_cache()
    if not cache.clear_all():
        error_console.print("[red]Cache directory is not available; nothing cleared.[/red]")
        raise typer.Exit(1)
    console.print("[green]Cache cleared.[/green]")


@app.command()
def put(
    content_hash: Annotated[str, typer.Argument(help="Content hash of the asset")],
    extension: Annotated[str, typer.Argument(help="Asset extension (js, css, ...)")],
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Asset file"),
    ],
    mime: Annotated[
        Optional[str],
        typer.Option("--mime", "-m", help="MIME type (guessed from extension)"),
    ] = None,
) -> None:
    """Store FILE as the cache entry for HASH and EXT."""
    cache = _open_cache()
    if not cache.ensure_available():
        error_console.print("[red]Cache directory is not available.[/red]")
        raise typer.Exit(1)

    entry = cache.entry(content_hash, extension)
    mime_type = mime or DEFAULT_MIME_TYPES.get(extension, "text/plain")
    try:
        entry.cache(file.read_bytes(), mime_type)
    except CacheWriteError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[dim]Stored:[/dim] {entry.get_name()}")
    console.print(f"[dim]URL:[/dim] {entry.url}")


@app.command()
def get(
    content_hash: Annotated[str, typer.Argument(help="Content hash of the asset")],
    extension: Annotated[str, typer.Argument(help="Asset extension (js, css, ...)")],
) -> None:
    """Write the cached payload for HASH and EXT to stdout."""
    cache = _open_cache()
    payload = cache.entry(content_hash, extension).retrieve()
    if payload is None:
        error_console.print("[yellow]Not cached.[/yellow]")
        raise typer.Exit(1)
    typer.echo(payload, nl=False)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print("Check the environment variables or the .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"assetcache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
