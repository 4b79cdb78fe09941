"""Shared helpers for CLI commands."""

import logging
from datetime import UTC, datetime

import typer
from rich.console import Console
from rich.logging import RichHandler

from legacyvault.config.loader import ConfigError, load_config
from legacyvault.config.schema import LegacyVaultConfig
from legacyvault.ledger.host import VaultLedger
from legacyvault.ledger.models import TransitionResult
from legacyvault.storage.blob import BlobStore, FileBlobStore, MemoryBlobStore

console = Console()


def configure_logging(level: str, verbose: bool = False) -> None:
    """Route log records through Rich at the configured level."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_runtime(config_path: str | None, verbose: bool = False) -> LegacyVaultConfig:
    """Load configuration and set up logging, exiting on bad config."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None
    configure_logging(config.logging.level, verbose)
    return config


def open_ledger(config: LegacyVaultConfig) -> VaultLedger:
    return VaultLedger.from_config(config)


def open_blob_store(config: LegacyVaultConfig) -> BlobStore:
    if config.blobs.backend == "memory":
        return MemoryBlobStore()
    return FileBlobStore(config.blobs.path)


def format_ms(ms: int) -> str:
    """Render a millisecond timestamp as UTC."""
    return datetime.fromtimestamp(ms / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S")


def format_duration(ms: int) -> str:
    """Render a duration in the largest whole unit that fits.

    Args:
        ms: Duration in milliseconds

    Returns:
        Formatted duration
    """
    if ms < 1000:
        return f"{ms}ms"
    seconds = ms // 1000
    for unit, size in (("d", 86_400), ("h", 3_600), ("m", 60)):
        if seconds >= size:
            return f"{seconds / size:.1f}{unit}"
    return f"{seconds}s"


def report(result: TransitionResult, success_message: str) -> None:
    """Print a transition outcome; exit non-zero on rejection."""
    if not result.success:
        console.print(f"[red]Rejected ({result.error}): {result.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {success_message}")
