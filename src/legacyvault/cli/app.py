"""Main CLI application using Typer."""

import sys
from pathlib import Path

import typer
from rich.console import Console

from legacyvault import __version__

app = typer.Typer(
    name="legacyvault",
    help="LegacyVault - dead man's switch inheritance with threshold secret recovery",
    no_args_is_help=True,
)

console = Console()

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config file (default: ~/.legacyvault/legacyvault.yaml)",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
NOW_OPTION = typer.Option(None, "--now", help="Override the clock (milliseconds since epoch)")
ACTOR_OPTION = typer.Option(..., "--as", help="Identity submitting the transaction")


@app.command()
def version():
    """Show legacyvault version."""
    console.print(f"legacyvault version {__version__}")


@app.command()
def keygen(
    output: Path = typer.Option(None, "--output", "-o", help="Write the keypair to a file"),
):
    """Generate a beneficiary keypair."""
    from legacyvault.cli.secret_cmd import keygen_command

    keygen_command(output=output)


@app.command()
def seal(
    heir_public_key: str = typer.Option(..., "--heir-key", "-k", help="Heir public key (base64)"),
    secret: str = typer.Option(None, "--secret", "-s", help="Secret text to seal"),
    secret_file: Path = typer.Option(None, "--secret-file", help="File holding the secret"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the bundle to a file"),
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Encrypt a secret, split its key and publish the blob."""
    from legacyvault.cli.secret_cmd import seal_command

    seal_command(
        heir_public_key=heir_public_key,
        secret=secret,
        secret_file=secret_file,
        output=output,
        config_path=config_path,
        verbose=verbose,
    )


@app.command()
def recover(
    vault_id: str = typer.Argument(..., help="Claimed vault ID"),
    heir_share: str = typer.Option(..., "--heir-share", help="Share held by the heir"),
    secret_key: str = typer.Option(..., "--secret-key", "-k", help="Heir secret key (base64)"),
    public_share_id: str = typer.Option(
        None, "--public-share", help="Blob id of the public safety-net share"
    ),
    output: Path = typer.Option(None, "--output", "-o", help="Write the secret to a file"),
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Recover the secret of a claimed vault."""
    from legacyvault.cli.secret_cmd import recover_command

    recover_command(
        vault_id=vault_id,
        heir_share=heir_share,
        secret_key=secret_key,
        public_share_id=public_share_id,
        output=output,
        config_path=config_path,
        verbose=verbose,
    )


# Vault commands
vault_app = typer.Typer(help="Create and operate inheritance vaults")
app.add_typer(vault_app, name="vault")


@vault_app.command("create")
def vault_create(
    bundle: Path = typer.Argument(..., help="Bundle written by 'legacyvault seal'"),
    actor: str = ACTOR_OPTION,
    beneficiary: str = typer.Option(..., "--beneficiary", "-b", help="Beneficiary identity"),
    unlock_duration: int = typer.Option(
        ..., "--duration-ms", "-d", help="Owner silence before the vault opens (ms)"
    ),
    deposit: int = typer.Option(0, "--deposit", help="Initial balance"),
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Create a vault."""
    from legacyvault.cli.vault_cmd import create_command

    create_command(
        actor=actor,
        beneficiary=beneficiary,
        unlock_duration=unlock_duration,
        bundle=bundle,
        deposit=deposit,
        now=now,
        config_path=config_path,
        verbose=verbose,
    )


@vault_app.command("heartbeat")
def vault_heartbeat(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    actor: str = ACTOR_OPTION,
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Prove the owner is alive."""
    from legacyvault.cli.vault_cmd import heartbeat_command

    heartbeat_command(vault_id, actor, now=now, config_path=config_path, verbose=verbose)


@vault_app.command("fund")
def vault_fund(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    amount: int = typer.Argument(..., help="Amount to add"),
    actor: str = ACTOR_OPTION,
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Add funds to a vault."""
    from legacyvault.cli.vault_cmd import fund_command

    fund_command(vault_id, actor, amount, now=now, config_path=config_path, verbose=verbose)


@vault_app.command("claim")
def vault_claim(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    actor: str = ACTOR_OPTION,
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Claim an unlocked vault as its beneficiary."""
    from legacyvault.cli.vault_cmd import claim_command

    claim_command(vault_id, actor, now=now, config_path=config_path, verbose=verbose)


@vault_app.command("cancel")
def vault_cancel(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    actor: str = ACTOR_OPTION,
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Cancel a vault and refund the owner."""
    from legacyvault.cli.vault_cmd import cancel_command

    cancel_command(vault_id, actor, now=now, config_path=config_path, verbose=verbose)


@vault_app.command("set-beneficiary")
def vault_set_beneficiary(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    beneficiary: str = typer.Argument(..., help="New beneficiary identity"),
    actor: str = ACTOR_OPTION,
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Reassign the beneficiary."""
    from legacyvault.cli.vault_cmd import set_beneficiary_command

    set_beneficiary_command(
        vault_id, actor, beneficiary, now=now, config_path=config_path, verbose=verbose
    )


@vault_app.command("set-duration")
def vault_set_duration(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    unlock_duration: int = typer.Argument(..., help="New unlock duration (ms)"),
    actor: str = ACTOR_OPTION,
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Change the unlock duration."""
    from legacyvault.cli.vault_cmd import set_duration_command

    set_duration_command(
        vault_id, actor, unlock_duration, now=now, config_path=config_path, verbose=verbose
    )


@vault_app.command("show")
def vault_show(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show a vault and whether it is claimable."""
    from legacyvault.cli.vault_cmd import show_command

    show_command(vault_id, now=now, config_path=config_path, verbose=verbose)


@vault_app.command("list")
def vault_list(
    owner: str = typer.Option(None, "--owner", help="Filter by owner"),
    beneficiary: str = typer.Option(None, "--beneficiary", help="Filter by beneficiary"),
    now: int = NOW_OPTION,
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """List vaults."""
    from legacyvault.cli.vault_cmd import list_command

    list_command(
        owner=owner, beneficiary=beneficiary, now=now, config_path=config_path, verbose=verbose
    )


@vault_app.command("events")
def vault_events(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    output_format: str = typer.Option(
        "table", "--format", "-f", help="Output format (table, json)"
    ),
    config_path: str = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """Show a vault's audit trail."""
    from legacyvault.cli.vault_cmd import events_command

    events_command(vault_id, output_format=output_format, config_path=config_path, verbose=verbose)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
