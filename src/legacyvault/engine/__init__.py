"""Threshold secret engine.

Stateless cryptographic building blocks for sealing a secret and
distributing its key:

- AES-256-GCM payload encryption
- Shamir's Secret Sharing of the payload key
- X25519 ephemeral-key wrapping of shares for the beneficiary
- Orchestrated creation and recovery flows
"""

from .envelope import (
    RecipientKeyPair,
    WrappedShare,
    generate_recipient_keypair,
    is_valid_key,
    public_key_for,
    unwrap_share,
    wrap_share,
)
from .flows import (
    LegacyPayload,
    PublishedLegacy,
    create_legacy_payload,
    publish_legacy,
    recover_from_claim,
    recover_legacy,
)
from .shamir import ShamirSecretSharing, Share, is_valid_share, recover_key, split_key
from .symmetric import decrypt_payload, encrypt_payload, generate_symmetric_key

__all__ = [
    "LegacyPayload",
    "PublishedLegacy",
    "RecipientKeyPair",
    "ShamirSecretSharing",
    "Share",
    "WrappedShare",
    "create_legacy_payload",
    "decrypt_payload",
    "encrypt_payload",
    "generate_recipient_keypair",
    "generate_symmetric_key",
    "is_valid_key",
    "is_valid_share",
    "public_key_for",
    "publish_legacy",
    "recover_from_claim",
    "recover_key",
    "recover_legacy",
    "split_key",
    "unwrap_share",
    "wrap_share",
]
