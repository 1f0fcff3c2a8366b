"""Main entry point for the tiercache CLI.

Provides a Typer-based CLI for fetching entries through the tiered cache,
pushing files into both tiers, and managing the local tier and config.
"""

import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tiercache import __version__
from tiercache.access import CacheAccess
from tiercache.config import CacheConfig, ensure_config_exists, get_config_path, get_log_dir
from tiercache.entries import FileWriter
from tiercache.errors import BatchError, CacheCloseError
from tiercache.factory import build_cache_access
from tiercache.keys import CacheKey
from tiercache.logging_config import setup_logging
from tiercache.stores.disk import DiskStore

console = Console()

app = typer.Typer(
    name="tiercache",
    help="Two-tier (local disk + R2) content-addressed cache",
    rich_markup_mode="rich",
)
local_app = typer.Typer(help="Local tier operations")
app.add_typer(local_app, name="local", help="Local tier operations")

_state = {"verbose": False}


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"tiercache version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug details"),
) -> None:
    """tiercache: local-first cache with an R2 remote tier.

    ## Commands

    * [bold cyan]get[/bold cyan] - Fetch entries (local first, then R2)
    * [bold cyan]put[/bold cyan] - Store files in both tiers
    * [bold cyan]local[/bold cyan] - Inspect or clear the local tier
    * [bold cyan]config[/bold cyan] - Show or change configuration
    """
    _state["verbose"] = verbose


def _load_config(config_path: Optional[Path]) -> CacheConfig:
    try:
        return CacheConfig.load(config_path) if config_path else ensure_config_exists()
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found: {e}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid config: {e}[/red]")
        raise typer.Exit(1)


def _open_access(config: CacheConfig) -> CacheAccess:
    setup_logging(get_log_dir(), logging.DEBUG if _state["verbose"] else logging.INFO)
    try:
        return build_cache_access(config)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _close_access(access: CacheAccess) -> bool:
    try:
        access.close()
    except CacheCloseError as e:
        console.print(f"[red]Error closing cache: {e}[/red]")
        return False
    return True


def _print_failures(error: BatchError) -> None:
    for failure in error.failures:
        console.print(f"[red]✗ {failure.key}: {failure.error}[/red]")


@app.command()
def get(
    hashes: List[str] = typer.Argument(..., help="Content hashes to fetch"),
    output_dir: Path = typer.Option(
        Path("."), "--output-dir", "-o", help="Directory to write entries to"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file"
    ),
) -> None:
    """Fetch entries, trying the local tier before R2.

    Each entry found is written to OUTPUT_DIR/<hash>.
    """
    try:
        keys = list(dict.fromkeys(CacheKey(h) for h in hashes))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    config = _load_config(config_path)
    output_dir.mkdir(parents=True, exist_ok=True)

    found: dict[CacheKey, int] = {}
    found_lock = threading.Lock()

    def save(key: CacheKey, reader: BinaryIO) -> None:
        dest = output_dir / key.hash_code
        fd, tmp_name = tempfile.mkstemp(
            dir=output_dir, prefix=f".{key.hash_code[:12]}-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                shutil.copyfileobj(reader, f)
                size = f.tell()
            os.replace(tmp_name, dest)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        with found_lock:
            found[key] = size

    access = _open_access(config)
    failed = False
    try:
        access.load(keys, save)
    except BatchError as e:
        _print_failures(e)
        failed = True
    finally:
        failed = not _close_access(access) or failed

    table = Table(title="Fetched Entries")
    table.add_column("Hash", style="cyan")
    table.add_column("Status")
    table.add_column("Size", justify="right")

    for key in keys:
        if key in found:
            table.add_row(key.hash_code, "[green]found[/green]", f"{found[key]:,}")
        else:
            table.add_row(key.hash_code, "[yellow]missing[/yellow]", "-")

    console.print(table)
    if failed:
        raise typer.Exit(1)


@app.command()
def put(
    files: List[Path] = typer.Argument(..., help="Files to store"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file"
    ),
) -> None:
    """Store files in both tiers, keyed by their SHA-256."""
    paths: dict[CacheKey, Path] = {}
    for file_path in files:
        if not file_path.is_file():
            console.print(f"[red]File not found: {file_path}[/red]")
            raise typer.Exit(1)
        paths[CacheKey.of_file(file_path)] = file_path

    config = _load_config(config_path)
    access = _open_access(config)
    failed = False
    try:
        access.store(paths, lambda key: FileWriter(paths[key]))
    except BatchError as e:
        _print_failures(e)
        failed = True
    finally:
        failed = not _close_access(access) or failed

    if failed:
        raise typer.Exit(1)

    for key, file_path in paths.items():
        console.print(f"[green]✓[/green] {key.hash_code}  {file_path}")


@local_app.command("size")
def local_size(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file"
    ),
) -> None:
    """Show the size of the local tier."""
    config = _load_config(config_path)
    store = DiskStore(config.local_dir)
    console.print(
        Panel.fit(
            f"[cyan]Directory:[/cyan] {store.cache_dir}\n"
            f"[cyan]Size:[/cyan] {store.get_cache_size_mb():.2f} MB",
            title="Local Tier",
            border_style="green",
        )
    )


@local_app.command("clear")
def local_clear(
    older_than: Optional[int] = typer.Option(
        None, "--older-than", help="Only remove entries older than this many days"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file"
    ),
) -> None:
    """Remove entries from the local tier."""
    config = _load_config(config_path)
    removed = DiskStore(config.local_dir).clear(older_than_days=older_than)
    console.print(f"[green]Removed {removed} file(s)[/green]")


@app.command()
def config(
    action: str = typer.Argument(
        ...,
        help="Action to perform (show, set, path)",
    ),
    key: str = typer.Argument(
        None,
        help="Configuration key (for set action)",
    ),
    value: str = typer.Argument(
        None,
        help="Configuration value (for set action)",
    ),
) -> None:
    """Manage configuration.

    Examples:
        tiercache config show
        tiercache config set r2.endpoint_url https://<account>.r2.cloudflarestorage.com
        tiercache config path
    """
    if action == "show":
        try:
            cfg = ensure_config_exists()
        except Exception as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            raise typer.Exit(1)

        console.print(
            Panel.fit(
                f"[cyan]Local Dir:[/cyan] {cfg.local_dir}\n"
                f"[cyan]R2 Bucket:[/cyan] {cfg.r2_bucket}\n"
                f"[cyan]R2 Endpoint:[/cyan] {cfg.r2_endpoint_url or '(not set)'}\n"
                f"[cyan]R2 Region:[/cyan] {cfg.r2_region}\n"
                f"[cyan]R2 Prefix:[/cyan] {cfg.r2_prefix}\n"
                f"[cyan]Max Workers:[/cyan] {cfg.max_workers}\n"
                f"[cyan]Buffer Size:[/cyan] {cfg.buffer_size}",
                title="Configuration",
                border_style="green",
            )
        )

    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage: tiercache config set <key> <value>[/red]")
            raise typer.Exit(1)

        try:
            cfg = ensure_config_exists()
            cfg.set(key, value)
            cfg.save()
            console.print(f"[green]Set {key} = {value}[/green]")
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    elif action == "path":
        console.print(str(get_config_path()))

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Valid actions: show, set, path")
        raise typer.Exit(1)


def cli_entry() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli_entry()
