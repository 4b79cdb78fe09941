"""Pytest configuration and shared fixtures."""

import pytest

from legacyvault.config.schema import LegacyVaultConfig
from legacyvault.engine.envelope import generate_recipient_keypair
from legacyvault.ledger.host import VaultLedger
from legacyvault.storage.blob import MemoryBlobStore

OWNER = "0xowner"
HEIR = "0xheir"
STRANGER = "0xstranger"
SHARE_RECORDS = ["wrapped-3", "wrapped-4", "wrapped-5"]


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def default_config() -> LegacyVaultConfig:
    """Provide a default configuration for tests."""
    return LegacyVaultConfig()


@pytest.fixture
def heir_keys():
    """Beneficiary X25519 keypair."""
    return generate_recipient_keypair()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock):
    """In-memory ledger driven by the fake clock."""
    ledger = VaultLedger(clock=clock)
    yield ledger
    ledger.close()


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def vault(ledger):
    """Vault created at t=1000 with a one-day unlock duration."""
    result = ledger.create_vault(
        OWNER, HEIR, 86_400_000, "payload-blob", SHARE_RECORDS, deposit=1_000_000_000
    )
    assert result.success
    return result.vault
