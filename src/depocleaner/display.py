"""Rich terminal display for depocleaner."""

from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table

from depocleaner.cache import CacheStore
from depocleaner.config import ScannerConfig
from depocleaner.models import CleanupResult, DependencyFolder, ScanResult, format_size, utc_now

console = Console()


def format_age(moment: datetime, now: Optional[datetime] = None) -> str:
    """Relative age such as '3 days ago'."""
    now = now or utc_now()
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("year", 365 * 86400), ("month", 30 * 86400), ("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"


def build_folder_table(folders: list[DependencyFolder], numbered: bool = False, title: Optional[str] = None) -> Table:
    """Table of folders: size, last access, type, path."""
    table = Table(title=title, show_header=True, header_style="bold")
    if numbered:
        table.add_column("#", justify="right", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Last Accessed")
    table.add_column("Type", style="cyan")
    table.add_column("Path")

    for i, folder in enumerate(folders, 1):
        row = [
            format_size(folder.size_bytes),
            format_age(folder.access_time),
            folder.type,
            folder.path,
        ]
        if numbered:
            row.insert(0, str(i))
        table.add_row(*row)
    return table


def show_scan_results(result: ScanResult) -> None:
    """Display folders found by a scan, largest first, and a summary."""
    if result.folders:
        console.print(build_folder_table(result.sorted_by_size(), title="Scan Results"))
    else:
        console.print("[yellow]No dependency folders found.[/yellow]")

    lines = [
        f"[bold]Total folders:[/bold] {result.total_count}",
        f"[bold]Total size:[/bold] {format_size(result.total_size)}",
        f"[bold]Scan duration:[/bold] {result.duration_seconds:.2f}s",
    ]
    if result.cache_hits > 0:
        lines.append(f"[bold]Cache hits:[/bold] {result.cache_hits} ({result.hit_rate:.1f}%)")
    if result.errors:
        lines.append(f"[red]Errors:[/red] {len(result.errors)} (see log for details)")
    if result.cancelled:
        lines.append("[yellow]Scan was cancelled; results are partial[/yellow]")

    console.print(Panel("\n".join(lines), title="Summary", border_style="blue"))


def parse_selection(text: str, count: int) -> list[int]:
    """
    Parse a selection such as ``1,3,5-7`` or ``all`` into 0-based indices.

    Raises:
        ValueError: on malformed input or out-of-range numbers
    """
    text = text.strip().lower()
    if not text:
        return []
    if text in ("all", "a", "*"):
        return list(range(count))

    chosen: set[int] = set()
    for part in text.replace(" ", ",").split(","):
        if not part:
            continue
        if "-" in part:
            start_str, end_str = part.split("-", 1)
            start, end = int(start_str), int(end_str)
            if start > end:
                start, end = end, start
            numbers = range(start, end + 1)
        else:
            numbers = range(int(part), int(part) + 1)
        for n in numbers:
            if n < 1 or n > count:
                raise ValueError(f"{n} is out of range (1-{count})")
            chosen.add(n - 1)
    return sorted(chosen)


def select_folders(folders: list[DependencyFolder]) -> list[DependencyFolder]:
    """Let the operator choose which folders to delete."""
    if not folders:
        return []

    console.print(build_folder_table(folders, numbered=True, title="Select folders to delete"))
    while True:
        answer = Prompt.ask(
            "Folders to delete ([bold]1,3,5-7[/bold], [bold]all[/bold], or blank for none)",
            default="",
            console=console,
        )
        try:
            indices = parse_selection(answer, len(folders))
        except ValueError as e:
            console.print(f"[red]Invalid selection: {e}[/red]")
            continue
        selected = [folders[i] for i in indices]
        if selected:
            total = sum(f.size_bytes for f in selected)
            console.print(f"Selected {len(selected)} folders ({format_size(total)})")
        return selected


def show_clean_results(result: CleanupResult) -> None:
    """Display the outcome of a cleanup."""
    console.print()
    if result.dry_run:
        console.print("[yellow]DRY RUN - no files were deleted[/yellow]")
        verb = "Would reclaim"
    else:
        console.print("[bold green]Cleanup Complete![/bold green]")
        verb = "Space reclaimed"

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row(verb, format_size(result.space_reclaimed))
    table.add_row("Folders removed" if not result.dry_run else "Folders", str(result.success_count))
    if result.failure_count > 0:
        table.add_row("[red]Failed[/red]", str(result.failure_count))
    console.print(table)

    for failed in result.failed:
        console.print(f"  [red]✗[/red] {failed.path}: {failed.reason}")


def show_cache_info(cache: CacheStore) -> None:
    """Display cache location and size."""
    console.print(f"Cache file: {cache.path}")
    console.print(f"  Entries: {len(cache)}")
    updated = cache.updated_at
    console.print(f"  Updated: {format_age(updated) if updated else 'never'}")


def show_config(config: ScannerConfig) -> None:
    """Display current configuration settings."""
    table = Table(title="Current Configuration", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in sorted(config.model_dump().items()):
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, str(value))
    console.print(table)


def show_scanning_progress() -> Progress:
    """Create a spinner for scanning (total is unknown up front)."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.completed} found"),
        TimeElapsedColumn(),
        console=console,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    return Confirm.ask(message, console=console)
