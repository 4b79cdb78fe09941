"""Serialized transaction host for vaults.

:class:`VaultLedger` plays the role of the ledger: it supplies the clock,
takes the caller identity as already authenticated, and totally orders
transitions on each vault.  Each call reads the stored vault, evaluates
the pure transition and commits the successor, audit event and payout
together, conditional on the version it read.  Of two racing calls (say a
late heartbeat and a claim) exactly the first to commit is applied; the
second is evaluated against the state the first left behind.

Callers holding a snapshot may pass ``expected_version`` for an explicit
compare-and-swap; a mismatch is rejected with ``version_conflict``.

Example:
    >>> from legacyvault.ledger.host import VaultLedger
    >>>
    >>> ledger = VaultLedger(clock=lambda: 1_000)
    >>> created = ledger.create_vault(
    ...     "alice", "bob", 60_000, "blob-id", ["s3", "s4", "s5"], deposit=10
    ... )
    >>> vault_id = created.vault.vault_id
    >>> assert ledger.heartbeat(vault_id, "alice").success
    >>> assert not ledger.claim(vault_id, "bob").success
"""

import logging
import threading
import time
from collections.abc import Callable

from legacyvault.config.defaults import ON_LEDGER_SHARES
from legacyvault.config.schema import LegacyVaultConfig
from legacyvault.errors import VaultErrorCode
from legacyvault.ledger import transitions
from legacyvault.ledger.models import EventKind, Payout, TransitionResult, Vault, VaultEvent
from legacyvault.ledger.store import LedgerStore, StaleWriteError

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


class VaultLedger:
    """Host executing vault transitions one at a time."""

    def __init__(
        self,
        store: LedgerStore | None = None,
        clock: Callable[[], int] | None = None,
        required_share_records: int = ON_LEDGER_SHARES,
    ) -> None:
        """Initialize the ledger.

        Args:
            store: Persistence backend.  Defaults to an in-memory database.
            clock: Millisecond time source.  Defaults to the wall clock.
            required_share_records: Share records every new vault must carry.
        """
        self.store = store or LedgerStore()
        self._clock = clock or wall_clock_ms
        self.required_share_records = required_share_records
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls, config: LegacyVaultConfig, clock: Callable[[], int] | None = None
    ) -> "VaultLedger":
        """Build a ledger from configuration."""
        return cls(
            store=LedgerStore(config.ledger.db_path),
            clock=clock,
            required_share_records=config.required_share_records,
        )

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create_vault(
        self,
        caller: str,
        beneficiary: str,
        unlock_duration: int,
        payload_reference: str,
        share_records: list[str],
        deposit: int = 0,
        now: int | None = None,
    ) -> TransitionResult:
        """Create a vault owned by *caller*."""
        with self._lock:
            now = self.now() if now is None else now
            result = transitions.create_vault(
                caller,
                beneficiary,
                unlock_duration,
                payload_reference,
                share_records,
                deposit,
                now,
                required_share_records=self.required_share_records,
            )
            return self._commit("create", caller, result, expected_version=0)

    def heartbeat(
        self,
        vault_id: str,
        caller: str,
        now: int | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Owner liveness signal; resets the unlock clock."""
        return self._apply(
            "heartbeat",
            vault_id,
            caller,
            now,
            expected_version,
            lambda vault, t: transitions.heartbeat(vault, caller, t),
        )

    def add_funds(
        self,
        vault_id: str,
        caller: str,
        amount: int,
        now: int | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Add *amount* to the locked balance."""
        return self._apply(
            "add_funds",
            vault_id,
            caller,
            now,
            expected_version,
            lambda vault, t: transitions.add_funds(vault, caller, amount, t),
        )

    def update_beneficiary(
        self,
        vault_id: str,
        caller: str,
        beneficiary: str,
        now: int | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Reassign the beneficiary."""
        return self._apply(
            "update_beneficiary",
            vault_id,
            caller,
            now,
            expected_version,
            lambda vault, t: transitions.update_beneficiary(vault, caller, beneficiary, t),
        )

    def update_unlock_duration(
        self,
        vault_id: str,
        caller: str,
        unlock_duration: int,
        now: int | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Change the unlock duration."""
        return self._apply(
            "update_unlock_duration",
            vault_id,
            caller,
            now,
            expected_version,
            lambda vault, t: transitions.update_unlock_duration(vault, caller, unlock_duration, t),
        )

    def claim(
        self,
        vault_id: str,
        caller: str,
        now: int | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Beneficiary claim of balance and share records."""
        return self._apply(
            "claim",
            vault_id,
            caller,
            now,
            expected_version,
            lambda vault, t: transitions.claim(vault, caller, t),
        )

    def cancel(
        self,
        vault_id: str,
        caller: str,
        now: int | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Owner cancellation; refunds and removes the vault."""
        return self._apply(
            "cancel",
            vault_id,
            caller,
            now,
            expected_version,
            lambda vault, t: transitions.cancel(vault, caller, t),
        )

    def _apply(
        self,
        action: str,
        vault_id: str,
        caller: str,
        now: int | None,
        expected_version: int | None,
        transition: Callable[[Vault, int], TransitionResult],
    ) -> TransitionResult:
        with self._lock:
            vault = self.store.get_vault(vault_id)
            if vault is None:
                result = TransitionResult.rejected(
                    VaultErrorCode.VAULT_NOT_FOUND, f"Vault {vault_id} does not exist"
                )
                return self._commit(action, caller, result, expected_version=0)

            if expected_version is not None and expected_version != vault.version:
                result = TransitionResult.rejected(
                    VaultErrorCode.VERSION_CONFLICT,
                    f"Vault {vault_id} is at version {vault.version}, expected {expected_version}",
                )
                return self._commit(action, caller, result, expected_version=vault.version)

            now = self.now() if now is None else now
            return self._commit(action, caller, transition(vault, now), vault.version)

    def _commit(
        self, action: str, caller: str, result: TransitionResult, expected_version: int
    ) -> TransitionResult:
        if not result.success:
            logger.warning(
                "Rejected %s by %s: %s (%s)", action, caller, result.error, result.message
            )
            return result

        try:
            event = self.store.commit(result, expected_version)
        except StaleWriteError as e:
            logger.warning("Rejected %s by %s: %s", action, caller, e)
            return TransitionResult.rejected(VaultErrorCode.VERSION_CONFLICT, str(e))

        logger.info(
            "Committed %s on vault %s by %s (version=%d)",
            action,
            result.vault.vault_id,
            caller,
            result.vault.version,
        )
        return result.model_copy(update={"event": event})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_vault(self, vault_id: str) -> Vault | None:
        """Current state of a vault, or None once cancelled."""
        return self.store.get_vault(vault_id)

    def is_claimable(self, vault_id: str, now: int | None = None) -> bool:
        vault = self.store.get_vault(vault_id)
        if vault is None:
            return False
        return transitions.is_claimable(vault, self.now() if now is None else now)

    def time_until_claimable(self, vault_id: str, now: int | None = None) -> int | None:
        """Milliseconds until the vault opens, or None if it does not exist."""
        vault = self.store.get_vault(vault_id)
        if vault is None:
            return None
        return transitions.time_until_claimable(vault, self.now() if now is None else now)

    def vaults_owned_by(self, identity: str) -> list[Vault]:
        return self.store.list_vaults(owner=identity)

    def vaults_for_beneficiary(self, identity: str) -> list[Vault]:
        return self.store.list_vaults(beneficiary=identity)

    def events_for(self, vault_id: str) -> list[VaultEvent]:
        """Full audit trail of a vault, including after cancellation."""
        return self.store.get_events(vault_id=vault_id)

    def claimed_events(self, vault_id: str | None = None) -> list[VaultEvent]:
        """Claim records, which carry the released share records."""
        return self.store.get_events(vault_id=vault_id, kind=EventKind.CLAIMED)

    def payouts(self, recipient: str | None = None) -> list[Payout]:
        return self.store.get_payouts(recipient)

    def credited(self, identity: str) -> int:
        """Total funds released to *identity* by claims and cancellations."""
        return self.store.credited(identity)

    def close(self) -> None:
        self.store.close()
