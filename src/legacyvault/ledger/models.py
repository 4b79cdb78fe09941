"""Vault ledger records.

Vaults are frozen models: a transition never edits a vault in place, it
produces a successor value that the ledger host commits as a whole.  That
keeps every transition all-or-nothing.
"""

import uuid
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from legacyvault.errors import UNAUTHORIZED_CODES, VaultErrorCode


class VaultStatus(StrEnum):
    """Stored lifecycle state of a vault.

    ``Claimable`` is derived from the clock and never stored.  Cancelled
    vaults are removed from the ledger, so ``CANCELLED`` only appears on
    the successor value handed back by the cancel transition.
    """

    ACTIVE = "active"
    CLAIMED = "claimed"
    CANCELLED = "cancelled"


class EventKind(StrEnum):
    """Audit event types."""

    CREATED = "created"
    HEARTBEAT = "heartbeat"
    FUNDED = "funded"
    BENEFICIARY_UPDATED = "beneficiary_updated"
    UNLOCK_DURATION_UPDATED = "unlock_duration_updated"
    CLAIMED = "claimed"
    CANCELLED = "cancelled"


class Vault(BaseModel):
    """Ledger-resident inheritance vault.

    Attributes:
        vault_id: Opaque identifier assigned at creation.
        owner: Identity allowed to heartbeat, fund, reconfigure and cancel.
        beneficiary: Identity allowed to claim.
        unlock_duration: Milliseconds of owner silence before a claim opens.
        last_heartbeat: Millisecond timestamp of the last heartbeat.
        payload_reference: Blob id of the encrypted payload.
        share_records: Shares wrapped for the beneficiary.
        balance: Locked funds.
        status: Stored lifecycle state.
        created_at: Millisecond timestamp of creation.
        version: Commit counter used for compare-and-swap.
    """

    model_config = ConfigDict(frozen=True)

    vault_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner: str
    beneficiary: str
    unlock_duration: int = Field(gt=0)
    last_heartbeat: int = Field(ge=0)
    payload_reference: str
    share_records: tuple[str, ...]
    balance: int = Field(default=0, ge=0)
    status: VaultStatus = VaultStatus.ACTIVE
    created_at: int = Field(ge=0)
    version: int = 0

    @property
    def unlock_at(self) -> int:
        """Last instant at which the vault is still locked."""
        return self.last_heartbeat + self.unlock_duration


class VaultEvent(BaseModel):
    """Append-only audit record emitted by a committed transition.

    Claim records additionally carry the wrapped shares and the payload
    reference; this is the only channel through which they leave the vault.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sequence: int | None = None
    vault_id: str
    kind: EventKind
    actor: str
    timestamp: int
    owner: str | None = None
    beneficiary: str | None = None
    amount: int | None = None
    unlock_duration: int | None = None
    payload_reference: str | None = None
    share_records: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)


class Payout(BaseModel):
    """Balance leaving a vault."""

    model_config = ConfigDict(frozen=True)

    vault_id: str
    recipient: str
    amount: int = Field(ge=0)
    timestamp: int


class TransitionResult(BaseModel):
    """Outcome of a vault transition.

    Attributes:
        success: Whether the transition applies.
        error: Rejection reason when ``success`` is False.
        message: Human-readable detail for rejections.
        vault: Successor vault state (None when rejected).
        event: Audit record to append (None when rejected).
        payout: Funds released by the transition, if any.
    """

    success: bool
    error: VaultErrorCode | None = None
    message: str | None = None
    vault: Vault | None = None
    event: VaultEvent | None = None
    payout: Payout | None = None

    @property
    def is_unauthorized(self) -> bool:
        """True when rejected because the caller lacks authority."""
        return self.error in UNAUTHORIZED_CODES

    @classmethod
    def rejected(cls, error: VaultErrorCode, message: str) -> "TransitionResult":
        return cls(success=False, error=error, message=message)
