"""CLI interface for depocleaner."""

from pathlib import Path
from typing import Optional

import typer

from depocleaner import __version__
from depocleaner.cache import CacheStore
from depocleaner.categories import TARGET_DIRECTORIES
from depocleaner.cleaner import Cleaner
from depocleaner.config import ScannerConfig, load_config, reset_config, set_config_value
from depocleaner.display import (
    confirm_action,
    console,
    select_folders,
    show_cache_info,
    show_clean_results,
    show_config,
    show_scan_results,
    show_scanning_progress,
)
from depocleaner.errors import DepocleanerError
from depocleaner.logging_setup import configure_logging
from depocleaner.models import ScanResult
from depocleaner.scanner import Scanner

app = typer.Typer(
    name="depocleaner",
    help="Clean up large dependency folders (node_modules, vendor, venv, target)",
    add_completion=False,
    no_args_is_help=True,
)
cache_app = typer.Typer(help="Manage the scan cache.", no_args_is_help=True)
config_app = typer.Typer(help="Manage configuration settings.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"depocleaner version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help="Config file (default: ~/.depocleaner/config.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """depocleaner - find and remove regenerable dependency folders."""
    ctx.obj = {"config_file": config_file, "verbose": verbose}


def _load(ctx: typer.Context, with_log_file: bool = True) -> ScannerConfig:
    """Load configuration and set up logging, exiting on config errors."""
    options = ctx.obj or {}
    try:
        config = load_config(options.get("config_file"))
    except DepocleanerError as e:
        configure_logging(options.get("verbose", False))
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    configure_logging(
        options.get("verbose", False),
        config.log_file if with_log_file else None,
    )
    return config


def _open_cache(config: ScannerConfig, no_cache: bool) -> Optional[CacheStore]:
    if no_cache:
        return None
    try:
        return CacheStore.load(config.cache_file)
    except DepocleanerError as e:
        console.print(f"[yellow]Cache unavailable, continuing without it: {e}[/yellow]")
        return None


def _run_scan(
    config: ScannerConfig,
    path: Optional[str],
    no_cache: bool,
    timeout: Optional[float],
    quiet: bool = False,
) -> ScanResult:
    root = path or config.scan_path
    scanner = Scanner(config, _open_cache(config, no_cache))

    try:
        if quiet:
            return scanner.scan(root, timeout=timeout)
        with show_scanning_progress() as progress:
            task = progress.add_task(f"Scanning {root}...", total=None)
            return scanner.scan(
                root,
                timeout=timeout,
                progress_callback=lambda folder: progress.advance(task),
            )
    except DepocleanerError as e:
        console.print(f"[red]Scan failed: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(130)


def _apply_overrides(config: ScannerConfig, workers: Optional[int], max_depth: Optional[int]) -> ScannerConfig:
    updates = {}
    if workers is not None:
        updates["workers"] = workers
    if max_depth is not None:
        updates["max_depth"] = max_depth
    return config.model_copy(update=updates) if updates else config


@app.command()
def scan(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(None, help="Path to scan (default: scan_path from config)"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable cache"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Number of concurrent workers"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=0, help="Maximum depth (0 = unlimited)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Stop scanning after this many seconds"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Scan for dependency folders."""
    config = _apply_overrides(_load(ctx), workers, max_depth)
    result = _run_scan(config, path, no_cache, timeout, quiet=as_json)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    show_scan_results(result)


@app.command()
def clean(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(None, help="Path to scan (default: scan_path from config)"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable cache"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
    select_all: bool = typer.Option(False, "--all", help="Select every folder found"),
    min_size: int = typer.Option(0, "--min-size", min=0, help="Only offer folders of at least this many bytes"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Number of concurrent workers"),
) -> None:
    """Interactive clean (scan + select + delete)."""
    config = _apply_overrides(_load(ctx), workers, None)
    result = _run_scan(config, path, no_cache, None)

    candidates = [f for f in result.sorted_by_size() if f.size_bytes >= min_size]
    if not candidates:
        console.print("[yellow]No dependency folders found to clean.[/yellow]")
        raise typer.Exit(0)

    selected = candidates if select_all else select_folders(candidates)
    if not selected:
        console.print("[yellow]No folders selected for deletion.[/yellow]")
        raise typer.Exit(0)

    if not yes and not dry_run:
        if not confirm_action(f"Delete {len(selected)} selected folders?"):
            console.print("[yellow]Aborting deletion.[/yellow]")
            raise typer.Exit(0)

    cleanup = Cleaner(dry_run=dry_run, max_workers=config.workers).clean(selected)
    show_clean_results(cleanup)


@app.command(name="list")
def list_targets() -> None:
    """List the directory names treated as cleanup targets."""
    console.print("[bold]Target Directories[/bold]\n")
    for name, label in sorted(TARGET_DIRECTORIES.items(), key=lambda item: (item[1], item[0])):
        console.print(f"  • [bold]{name}[/bold] - {label}")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Clear cache."""
    config = _load(ctx)
    try:
        cache = CacheStore.load(config.cache_file)
        cache.clear()
    except DepocleanerError as e:
        console.print(f"[red]Failed to clear cache: {e}[/red]")
        raise typer.Exit(1)
    console.print("Cache cleared successfully.")


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """Show cache location and entry count."""
    config = _load(ctx)
    try:
        cache = CacheStore.load(config.cache_file)
    except DepocleanerError as e:
        console.print(f"[red]Failed to load cache: {e}[/red]")
        raise typer.Exit(1)
    show_cache_info(cache)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show current configuration."""
    show_config(_load(ctx, with_log_file=False))


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Configuration key"),
    value: str = typer.Argument(..., help="New value (lists are comma-separated)"),
) -> None:
    """Set a configuration value."""
    options = ctx.obj or {}
    try:
        set_config_value(key, value, options.get("config_file"))
    except DepocleanerError as e:
        console.print(f"[red]Error setting config: {e.message}[/red]")
        raise typer.Exit(1)
    console.print(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to default values."""
    options = ctx.obj or {}
    try:
        reset_config(options.get("config_file"))
    except DepocleanerError as e:
        console.print(f"[red]Error restoring defaults: {e.message}[/red]")
        raise typer.Exit(1)
    console.print("Configuration reset to default values.")


if __name__ == "__main__":
    app()
