"""Vault lifecycle state machine.

Every transition is a pure function of the current vault, the caller's
host-verified identity and the host clock.  A transition either returns a
successful :class:`TransitionResult` carrying the successor vault, the audit
event and any payout, or a rejected result with no successor at all, so a
rejection can never leave a partial mutation behind.

States::

    ACTIVE --heartbeat/fund/update--> ACTIVE
    ACTIVE --claim (beneficiary, now > last_heartbeat + unlock_duration)--> CLAIMED
    ACTIVE --cancel (owner)--> CANCELLED (removed from the ledger)

``Claimable`` is the derived predicate :func:`is_claimable`.
"""

import logging

from legacyvault.config.defaults import ON_LEDGER_SHARES
from legacyvault.errors import VaultErrorCode
from legacyvault.ledger.models import (
    EventKind,
    Payout,
    TransitionResult,
    Vault,
    VaultEvent,
    VaultStatus,
)

logger = logging.getLogger(__name__)


def _successor(vault: Vault, **update) -> Vault:
    return vault.model_copy(update={**update, "version": vault.version + 1})


def _check_live(vault: Vault) -> TransitionResult | None:
    if vault.status == VaultStatus.CLAIMED:
        return TransitionResult.rejected(
            VaultErrorCode.ALREADY_CLAIMED, f"Vault {vault.vault_id} was already claimed"
        )
    if vault.status == VaultStatus.CANCELLED:
        return TransitionResult.rejected(
            VaultErrorCode.VAULT_NOT_FOUND, f"Vault {vault.vault_id} was cancelled"
        )
    return None


def _check_owner(vault: Vault, caller: str) -> TransitionResult | None:
    rejected = _check_live(vault)
    if rejected is None and caller != vault.owner:
        rejected = TransitionResult.rejected(
            VaultErrorCode.NOT_OWNER, f"{caller} is not the owner of vault {vault.vault_id}"
        )
    return rejected


# ----------------------------------------------------------------------
# Derived queries
# ----------------------------------------------------------------------


def is_claimable(vault: Vault, now: int) -> bool:
    """True once *now* is strictly past ``last_heartbeat + unlock_duration``."""
    return vault.status == VaultStatus.ACTIVE and now > vault.unlock_at


def time_until_claimable(vault: Vault, now: int) -> int:
    """Milliseconds left until ``last_heartbeat + unlock_duration`` (0 once reached)."""
    return max(0, vault.unlock_at - now)


# ----------------------------------------------------------------------
# Transitions
# ----------------------------------------------------------------------


def create_vault(
    owner: str,
    beneficiary: str,
    unlock_duration: int,
    payload_reference: str,
    share_records: list[str] | tuple[str, ...],
    deposit: int,
    now: int,
    required_share_records: int = ON_LEDGER_SHARES,
) -> TransitionResult:
    """Create an active vault whose clock starts at *now*.

    Args:
        owner: Identity of the creator.
        beneficiary: Identity allowed to claim.
        unlock_duration: Milliseconds of silence before a claim opens (> 0).
        payload_reference: Blob id of the encrypted payload.
        share_records: Shares wrapped for the beneficiary.
        deposit: Initial balance (may be zero).
        now: Host clock in milliseconds.
        required_share_records: Exact number of share records expected.

    Returns:
        A result carrying the new vault and its ``created`` event.
    """
    if len(share_records) != required_share_records:
        return TransitionResult.rejected(
            VaultErrorCode.INVALID_SHARES_COUNT,
            f"Expected {required_share_records} share records, got {len(share_records)}",
        )
    if unlock_duration <= 0:
        return TransitionResult.rejected(
            VaultErrorCode.INVALID_UNLOCK_DURATION, "Unlock duration must be positive"
        )
    if deposit < 0:
        return TransitionResult.rejected(
            VaultErrorCode.INVALID_AMOUNT, "Deposit must not be negative"
        )

    vault = Vault(
        owner=owner,
        beneficiary=beneficiary,
        unlock_duration=unlock_duration,
        last_heartbeat=now,
        payload_reference=payload_reference,
        share_records=tuple(share_records),
        balance=deposit,
        created_at=now,
        version=1,
    )
    event = VaultEvent(
        vault_id=vault.vault_id,
        kind=EventKind.CREATED,
        actor=owner,
        timestamp=now,
        owner=owner,
        beneficiary=beneficiary,
        amount=deposit,
        unlock_duration=unlock_duration,
    )
    return TransitionResult(success=True, vault=vault, event=event)


def heartbeat(vault: Vault, caller: str, now: int) -> TransitionResult:
    """Reset the unlock clock.  Owner only.

    ``last_heartbeat`` never moves backwards: a heartbeat stamped earlier
    than the stored value is recorded but leaves the clock where it is.
    """
    rejected = _check_owner(vault, caller)
    if rejected is not None:
        return rejected

    successor = _successor(vault, last_heartbeat=max(vault.last_heartbeat, now))
    event = VaultEvent(
        vault_id=vault.vault_id, kind=EventKind.HEARTBEAT, actor=caller, timestamp=now
    )
    return TransitionResult(success=True, vault=successor, event=event)


def add_funds(vault: Vault, caller: str, amount: int, now: int) -> TransitionResult:
    """Increase the locked balance by *amount*.  Owner only."""
    rejected = _check_owner(vault, caller)
    if rejected is not None:
        return rejected
    if amount < 0:
        return TransitionResult.rejected(
            VaultErrorCode.INVALID_AMOUNT, "Amount must not be negative"
        )

    successor = _successor(vault, balance=vault.balance + amount)
    event = VaultEvent(
        vault_id=vault.vault_id, kind=EventKind.FUNDED, actor=caller, timestamp=now, amount=amount
    )
    return TransitionResult(success=True, vault=successor, event=event)


def update_beneficiary(vault: Vault, caller: str, beneficiary: str, now: int) -> TransitionResult:
    """Reassign the beneficiary.  Owner only.

    Previously wrapped shares are not re-issued.
    """
    rejected = _check_owner(vault, caller)
    if rejected is not None:
        return rejected

    successor = _successor(vault, beneficiary=beneficiary)
    event = VaultEvent(
        vault_id=vault.vault_id,
        kind=EventKind.BENEFICIARY_UPDATED,
        actor=caller,
        timestamp=now,
        beneficiary=beneficiary,
        metadata={"previous_beneficiary": vault.beneficiary},
    )
    return TransitionResult(success=True, vault=successor, event=event)


def update_unlock_duration(
    vault: Vault, caller: str, unlock_duration: int, now: int
) -> TransitionResult:
    """Change the unlock duration.  Owner only.

    Any positive value is accepted, including one that makes the vault
    claimable at once.
    """
    rejected = _check_owner(vault, caller)
    if rejected is not None:
        return rejected
    if unlock_duration <= 0:
        return TransitionResult.rejected(
            VaultErrorCode.INVALID_UNLOCK_DURATION, "Unlock duration must be positive"
        )

    successor = _successor(vault, unlock_duration=unlock_duration)
    event = VaultEvent(
        vault_id=vault.vault_id,
        kind=EventKind.UNLOCK_DURATION_UPDATED,
        actor=caller,
        timestamp=now,
        unlock_duration=unlock_duration,
        metadata={"previous_unlock_duration": vault.unlock_duration},
    )
    return TransitionResult(success=True, vault=successor, event=event)


def claim(vault: Vault, caller: str, now: int) -> TransitionResult:
    """Release the balance and the share records to the beneficiary.

    The caller check runs before the time guard, so a non-beneficiary is
    rejected as such at any time.  A zero balance still claims.
    """
    rejected = _check_live(vault)
    if rejected is not None:
        return rejected
    if caller != vault.beneficiary:
        return TransitionResult.rejected(
            VaultErrorCode.NOT_BENEFICIARY,
            f"{caller} is not the beneficiary of vault {vault.vault_id}",
        )
    if not is_claimable(vault, now):
        return TransitionResult.rejected(
            VaultErrorCode.UNLOCK_TIME_NOT_REACHED,
            f"Vault {vault.vault_id} unlocks after {vault.unlock_at} "
            f"({time_until_claimable(vault, now)}ms remaining)",
        )

    successor = _successor(vault, balance=0, status=VaultStatus.CLAIMED)
    event = VaultEvent(
        vault_id=vault.vault_id,
        kind=EventKind.CLAIMED,
        actor=caller,
        timestamp=now,
        beneficiary=caller,
        amount=vault.balance,
        payload_reference=vault.payload_reference,
        share_records=vault.share_records,
    )
    payout = Payout(vault_id=vault.vault_id, recipient=caller, amount=vault.balance, timestamp=now)
    logger.info("Vault %s claimed by %s (%d released)", vault.vault_id, caller, vault.balance)
    return TransitionResult(success=True, vault=successor, event=event, payout=payout)


def cancel(vault: Vault, caller: str, now: int) -> TransitionResult:
    """Return the balance to the owner and retire the vault.  Owner only."""
    rejected = _check_owner(vault, caller)
    if rejected is not None:
        return rejected

    successor = _successor(vault, balance=0, status=VaultStatus.CANCELLED)
    event = VaultEvent(
        vault_id=vault.vault_id,
        kind=EventKind.CANCELLED,
        actor=caller,
        timestamp=now,
        amount=vault.balance,
    )
    payout = Payout(vault_id=vault.vault_id, recipient=caller, amount=vault.balance, timestamp=now)
    return TransitionResult(success=True, vault=successor, event=event, payout=payout)
