"""Vault ledger: lifecycle state machine, audit log and transaction host.

- :mod:`.models` - Vault, audit event, payout and transition result records
- :mod:`.transitions` - Pure transition and query functions
- :mod:`.store` - SQLite persistence
- :mod:`.host` - Serialized, compare-and-swap transaction host
"""

from .host import VaultLedger, wall_clock_ms
from .models import EventKind, Payout, TransitionResult, Vault, VaultEvent, VaultStatus
from .store import LedgerStore, StaleWriteError
from .transitions import is_claimable, time_until_claimable

__all__ = [
    "EventKind",
    "LedgerStore",
    "Payout",
    "StaleWriteError",
    "TransitionResult",
    "Vault",
    "VaultEvent",
    "VaultLedger",
    "VaultStatus",
    "is_claimable",
    "time_until_claimable",
    "wall_clock_ms",
]
