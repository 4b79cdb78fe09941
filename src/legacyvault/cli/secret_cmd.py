"""Key generation, sealing and recovery commands."""

import json
from pathlib import Path

import typer

from legacyvault.cli.common import console, load_runtime, open_blob_store, open_ledger
from legacyvault.engine.envelope import generate_recipient_keypair, is_valid_key
from legacyvault.engine.flows import create_legacy_payload, publish_legacy, recover_from_claim
from legacyvault.errors import SecretEngineError
from legacyvault.storage.blob import BlobNotFoundError


def _write(text: str, output: Path | None) -> None:
    if output is None:
        console.print(text, markup=False, highlight=False, soft_wrap=True)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    console.print(f"[green]✓[/green] Wrote {output}")


def keygen_command(output: Path | None = None) -> None:
    """Generate a beneficiary keypair."""
    keypair = generate_recipient_keypair()
    _write(keypair.model_dump_json(indent=2), output)


def seal_command(
    heir_public_key: str,
    secret: str | None = None,
    secret_file: Path | None = None,
    output: Path | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    """Seal a secret, publish its blob and public share, and emit a bundle.

    The bundle holds everything needed to create the vault plus the heir
    share, which must be handed to the heir privately.
    """
    config = load_runtime(config_path, verbose)

    if (secret is None) == (secret_file is None):
        console.print("[red]Provide exactly one of --secret or --secret-file[/red]")
        raise typer.Exit(1)
    if not is_valid_key(heir_public_key):
        console.print("[red]Heir public key must be base64 for 32 bytes[/red]")
        raise typer.Exit(1)

    plaintext = secret.encode("utf-8") if secret is not None else secret_file.read_bytes()
    payload = create_legacy_payload(plaintext, heir_public_key, config.sharing)
    published = publish_legacy(payload, open_blob_store(config))

    _write(published.model_dump_json(indent=2), output)


def recover_command(
    vault_id: str,
    heir_share: str,
    secret_key: str,
    public_share_id: str | None = None,
    output: Path | None = None,
    config_path: str | None = None,
    verbose: bool = False,
) -> None:
    """Recover the secret of a claimed vault."""
    config = load_runtime(config_path, verbose)
    ledger = open_ledger(config)

    try:
        claims = ledger.claimed_events(vault_id)
        if not claims:
            console.print(f"[yellow]Vault {vault_id} has not been claimed[/yellow]")
            raise typer.Exit(1)

        try:
            secret = recover_from_claim(
                claims[-1],
                heir_share,
                secret_key,
                open_blob_store(config),
                public_share_id,
                prime=config.sharing.prime,
            )
        except (SecretEngineError, BlobNotFoundError) as e:
            console.print(f"[red]Recovery failed: {e}[/red]")
            raise typer.Exit(1) from None
    finally:
        ledger.close()

    if output is not None:
        output.write_bytes(secret)
        console.print(f"[green]✓[/green] Wrote {output}")
        return
    try:
        console.print(secret.decode("utf-8"), markup=False, highlight=False, soft_wrap=True)
    except UnicodeDecodeError:
        console.print(json.dumps({"secret_hex": secret.hex()}))
