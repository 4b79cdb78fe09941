"""Error taxonomy shared by the secret engine and the vault ledger.

Engine operations are pure functions and signal failure by raising one of
the :class:`SecretEngineError` subclasses.  Ledger transitions never raise
for business failures; they return a result carrying a :class:`VaultErrorCode`
so that every rejected transition is visible at the effect boundary.
"""

from enum import StrEnum


class SecretEngineError(ValueError):
    """Base class for secret engine failures."""


class DecryptionFailedError(SecretEngineError):
    """Authentication failed while decrypting a payload or a wrapped share.

    Raised for wrong keys, tampered ciphertext and malformed envelopes.
    No partial plaintext is ever returned alongside this error.
    """


class InsufficientSharesError(SecretEngineError):
    """Fewer shares than the threshold were supplied for reconstruction."""


class InvalidShareError(SecretEngineError):
    """A share is malformed, duplicated, or from an incompatible split."""


class InvalidKeyError(SecretEngineError):
    """Key material has the wrong length or cannot be decoded."""


class VaultErrorCode(StrEnum):
    """Reasons a vault transition can be rejected.

    Attributes:
        NOT_OWNER: Caller is not the vault owner (Unauthorized).
        NOT_BENEFICIARY: Caller is not the beneficiary (Unauthorized).
        UNLOCK_TIME_NOT_REACHED: Claim attempted before the unlock instant.
        ALREADY_CLAIMED: Vault reached its claimed terminal state.
        INVALID_SHARES_COUNT: Creation supplied the wrong number of share records.
        INVALID_UNLOCK_DURATION: Unlock duration is not strictly positive.
        INVALID_AMOUNT: Deposit or funding amount is negative.
        VAULT_NOT_FOUND: Vault does not exist or was cancelled.
        VERSION_CONFLICT: Vault changed since the caller's expected version.
    """

    NOT_OWNER = "not_owner"
    NOT_BENEFICIARY = "not_beneficiary"
    UNLOCK_TIME_NOT_REACHED = "unlock_time_not_reached"
    ALREADY_CLAIMED = "already_claimed"
    INVALID_SHARES_COUNT = "invalid_shares_count"
    INVALID_UNLOCK_DURATION = "invalid_unlock_duration"
    INVALID_AMOUNT = "invalid_amount"
    VAULT_NOT_FOUND = "vault_not_found"
    VERSION_CONFLICT = "version_conflict"


UNAUTHORIZED_CODES = frozenset({VaultErrorCode.NOT_OWNER, VaultErrorCode.NOT_BENEFICIARY})
