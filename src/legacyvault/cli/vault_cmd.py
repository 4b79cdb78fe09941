"""Vault ledger commands.

Identities are taken from ``--as`` as if already authenticated by the
ledger host; ``--now`` overrides the host clock for simulations.
"""

import json
from collections.abc import Callable
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.table import Table

from legacyvault.cli.common import (
    console,
    format_duration,
    format_ms,
    load_runtime,
    open_ledger,
    report,
)
from legacyvault.engine.flows import PublishedLegacy
from legacyvault.ledger.host import VaultLedger
from legacyvault.ledger.models import TransitionResult, Vault, VaultStatus
from legacyvault.ledger.transitions import is_claimable, time_until_claimable


def _run(
    config_path: str | None,
    verbose: bool,
    action: Callable[[VaultLedger], TransitionResult],
    success_message: Callable[[TransitionResult], str],
) -> None:
    config = load_runtime(config_path, verbose)
    ledger = open_ledger(config)
    try:
        result = action(ledger)
    finally:
        ledger.close()
    report(result, success_message(result) if result.success else "")


def create_command(
    actor: str,
    beneficiary: str,
    unlock_duration: int,
    bundle: Path,
    deposit: int = 0,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    """Create a vault from a bundle written by ``legacyvault seal``."""
    try:
        published = PublishedLegacy.model_validate_json(bundle.read_text())
    except (OSError, ValidationError) as e:
        console.print(f"[red]Cannot read bundle {bundle}: {e}[/red]")
        raise typer.Exit(1) from None

    _run(
        config_path,
        verbose,
        lambda ledger: ledger.create_vault(
            actor,
            beneficiary,
            unlock_duration,
            published.payload_reference,
            published.share_records,
            deposit=deposit,
            now=now,
        ),
        lambda result: f"Created vault {result.vault.vault_id}",
    )


def heartbeat_command(
    vault_id: str,
    actor: str,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    _run(
        config_path,
        verbose,
        lambda ledger: ledger.heartbeat(vault_id, actor, now=now),
        lambda result: f"Heartbeat recorded at {format_ms(result.vault.last_heartbeat)}",
    )


def fund_command(
    vault_id: str,
    actor: str,
    amount: int,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    _run(
        config_path,
        verbose,
        lambda ledger: ledger.add_funds(vault_id, actor, amount, now=now),
        lambda result: f"Balance is now {result.vault.balance}",
    )


def claim_command(
    vault_id: str,
    actor: str,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    _run(
        config_path,
        verbose,
        lambda ledger: ledger.claim(vault_id, actor, now=now),
        lambda result: f"Claimed {result.payout.amount}; share records released",
    )


def cancel_command(
    vault_id: str,
    actor: str,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    _run(
        config_path,
        verbose,
        lambda ledger: ledger.cancel(vault_id, actor, now=now),
        lambda result: f"Cancelled vault; {result.payout.amount} returned to {actor}",
    )


def set_beneficiary_command(
    vault_id: str,
    actor: str,
    beneficiary: str,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    _run(
        config_path,
        verbose,
        lambda ledger: ledger.update_beneficiary(vault_id, actor, beneficiary, now=now),
        lambda result: f"Beneficiary is now {result.vault.beneficiary}",
    )


def set_duration_command(
    vault_id: str,
    actor: str,
    unlock_duration: int,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    _run(
        config_path,
        verbose,
        lambda ledger: ledger.update_unlock_duration(vault_id, actor, unlock_duration, now=now),
        lambda result: f"Unlock duration is now {format_duration(result.vault.unlock_duration)}",
    )


def _status(vault: Vault, now: int) -> str:
    if vault.status != VaultStatus.ACTIVE:
        return vault.status.value
    if is_claimable(vault, now):
        return "[bold red]claimable[/bold red]"
    return f"locked ({format_duration(time_until_claimable(vault, now))} left)"


def show_command(
    vault_id: str, now: int | None = None, config_path: str | None = None, verbose: bool = False
) -> None:
    """Show one vault."""
    config = load_runtime(config_path, verbose)
    ledger = open_ledger(config)
    try:
        vault = ledger.get_vault(vault_id)
        now = ledger.now() if now is None else now
    finally:
        ledger.close()

    if vault is None:
        console.print(f"[yellow]Vault {vault_id} not found (never created or cancelled)[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Vault {vault.vault_id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Owner", vault.owner)
    table.add_row("Beneficiary", vault.beneficiary)
    table.add_row("Status", _status(vault, now))
    table.add_row("Balance", str(vault.balance))
    table.add_row("Unlock duration", format_duration(vault.unlock_duration))
    table.add_row("Last heartbeat", format_ms(vault.last_heartbeat))
    table.add_row("Payload", vault.payload_reference)
    table.add_row("Share records", str(len(vault.share_records)))
    table.add_row("Version", str(vault.version))
    console.print(table)


def list_command(
    owner: str | None = None,
    beneficiary: str | None = None,
    now: int | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    """List vaults by owner or beneficiary."""
    config = load_runtime(config_path, verbose)
    ledger = open_ledger(config)
    try:
        vaults = ledger.store.list_vaults(owner=owner, beneficiary=beneficiary)
        now = ledger.now() if now is None else now
    finally:
        ledger.close()

    if not vaults:
        console.print("[yellow]No vaults found[/yellow]")
        return

    table = Table(title=f"Vaults ({len(vaults)})")
    table.add_column("Vault", style="cyan")
    table.add_column("Owner", style="green")
    table.add_column("Beneficiary", style="magenta")
    table.add_column("Balance", justify="right")
    table.add_column("Status")
    for vault in vaults:
        table.add_row(
            vault.vault_id, vault.owner, vault.beneficiary, str(vault.balance), _status(vault, now)
        )
    console.print(table)


def events_command(
    vault_id: str,
    output_format: str = "table",
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    """Print a vault's audit trail."""
    config = load_runtime(config_path, verbose)
    ledger = open_ledger(config)
    try:
        events = ledger.events_for(vault_id)
    finally:
        ledger.close()

    if not events:
        console.print("[yellow]No events found[/yellow]")
        return

    if output_format == "json":
        console.print_json(json.dumps([event.model_dump(mode="json") for event in events]))
        return

    table = Table(title=f"Audit trail of {vault_id} ({len(events)} records)")
    table.add_column("#", justify="right")
    table.add_column("Time", style="cyan")
    table.add_column("Event", style="magenta")
    table.add_column("Actor", style="green")
    table.add_column("Amount", justify="right")
    for event in events:
        table.add_row(
            str(event.sequence),
            format_ms(event.timestamp),
            event.kind.value,
            event.actor,
            "" if event.amount is None else str(event.amount),
        )
    console.print(table)
