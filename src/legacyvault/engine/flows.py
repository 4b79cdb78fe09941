"""Orchestrated creation and recovery flows.

Creation seals the secret under a fresh symmetric key and distributes the
key across independent custodians:

- share 1 goes to the heir directly, out of band
- share 2 is published in plaintext to the blob store as a safety net
- the remaining shares are wrapped for the heir and stored on the vault

Recovery gathers the heir share, the optional public share and the wrapped
shares exposed by the vault's claim record, unwraps what it can and
rebuilds the key from any quorum.

Example:
    >>> from legacyvault.engine.envelope import generate_recipient_keypair
    >>> from legacyvault.engine.flows import create_legacy_payload, recover_legacy
    >>>
    >>> heir = generate_recipient_keypair()
    >>> payload = create_legacy_payload("the safe code is 1234", heir.public_key)
    >>> secret = recover_legacy(
    ...     payload.heir_share,
    ...     None,
    ...     payload.contract_shares,
    ...     heir.secret_key,
    ...     payload.encrypted_blob,
    ... )
    >>> assert secret == b"the safe code is 1234"
"""

import logging
from itertools import combinations

from pydantic import BaseModel

from legacyvault.config.defaults import SYMMETRIC_KEY_BYTES
from legacyvault.config.schema import SharingConfig
from legacyvault.engine.envelope import unwrap_share, wrap_share
from legacyvault.engine.shamir import Share, recover_key, split_key
from legacyvault.engine.symmetric import decrypt_payload, encrypt_payload, generate_symmetric_key
from legacyvault.errors import DecryptionFailedError, InsufficientSharesError, InvalidShareError
from legacyvault.ledger.models import EventKind, VaultEvent
from legacyvault.storage.blob import BlobStore

logger = logging.getLogger(__name__)


class LegacyPayload(BaseModel):
    """Everything produced when sealing a secret.

    Attributes:
        heir_share: Plaintext share handed privately to the heir.
        public_share: Plaintext share destined for public blob storage.
        contract_shares: Shares wrapped for the heir, stored on the vault.
        encrypted_blob: ``nonce || ciphertext || tag`` of the secret.
    """

    heir_share: str
    public_share: str
    contract_shares: list[str]
    encrypted_blob: bytes


class PublishedLegacy(BaseModel):
    """Result of publishing a payload to a blob store.

    Attributes:
        payload_reference: Blob id of the encrypted secret.
        public_share_id: Blob id of the plaintext safety-net share.
        share_records: Wrapped shares to pass to vault creation.
        heir_share: Share to hand to the heir out of band.
    """

    payload_reference: str
    public_share_id: str
    share_records: list[str]
    heir_share: str


def create_legacy_payload(
    secret: str | bytes,
    heir_public_key: str,
    sharing: SharingConfig | None = None,
) -> LegacyPayload:
    """Seal *secret* and split its key for the heir.

    Args:
        secret: Secret note to protect.
        heir_public_key: Base64 X25519 public key of the heir.
        sharing: Share layout.  Defaults to 3-of-5 with three shares on the vault.

    Returns:
        The sealed :class:`LegacyPayload`.
    """
    sharing = sharing or SharingConfig()

    key = generate_symmetric_key()
    encrypted_blob = encrypt_payload(secret, key)
    shares = split_key(key, sharing.total_shares, sharing.threshold, sharing.prime)

    on_ledger = shares[sharing.total_shares - sharing.on_ledger_shares :]
    contract_shares = [wrap_share(share.encode(), heir_public_key) for share in on_ledger]

    logger.info(
        "Sealed legacy payload (%d-of-%d, %d wrapped shares)",
        sharing.threshold,
        sharing.total_shares,
        len(contract_shares),
    )
    return LegacyPayload(
        heir_share=shares[0].encode(),
        public_share=shares[1].encode(),
        contract_shares=contract_shares,
        encrypted_blob=encrypted_blob,
    )


def publish_legacy(payload: LegacyPayload, store: BlobStore) -> PublishedLegacy:
    """Place the ciphertext and the public share in *store*."""
    payload_reference = store.put(payload.encrypted_blob)
    public_share_id = store.put(payload.public_share.encode("utf-8"))

    logger.info("Published legacy payload %s", payload_reference[:12])
    return PublishedLegacy(
        payload_reference=payload_reference,
        public_share_id=public_share_id,
        share_records=list(payload.contract_shares),
        heir_share=payload.heir_share,
    )


def recover_legacy(
    heir_share: str,
    public_share: str | None,
    wrapped_shares: list[str],
    heir_secret_key: str,
    encrypted_blob: bytes,
    prime: int | None = None,
) -> bytes:
    """Rebuild the key from available shares and decrypt the secret.

    Wrapped shares that fail to unwrap are skipped as long as a quorum
    remains.  When more shares than the threshold are on hand, every quorum
    is tried in turn until one opens the blob.

    Args:
        heir_share: Share held privately by the heir.
        public_share: Share fetched from the blob store, if available.
        wrapped_shares: Share records exposed by the vault's claim record.
        heir_secret_key: Base64 X25519 secret key of the heir.
        encrypted_blob: Ciphertext fetched from the blob store.
        prime: Field modulus the key was split over (``SharingConfig.prime``).

    Returns:
        The original secret bytes.

    Raises:
        DecryptionFailedError: If too few wrapped shares unwrap to reach the
            threshold, or if no quorum yields a key that opens the blob.
        InsufficientSharesError: If the shares on hand cannot reach the threshold.
    """
    candidates = [heir_share]
    if public_share:
        candidates.append(public_share)

    unwrap_error: DecryptionFailedError | None = None
    for index, package in enumerate(wrapped_shares):
        try:
            candidates.append(unwrap_share(package, heir_secret_key))
        except DecryptionFailedError as e:
            logger.warning("Skipping wrapped share %d: %s", index, e)
            unwrap_error = e

    distinct: dict[int, Share] = {}
    for token in candidates:
        share = Share.decode(token)
        distinct.setdefault(share.share_id, share)

    threshold = Share.decode(heir_share).threshold
    if len(distinct) < threshold:
        if unwrap_error is not None:
            raise DecryptionFailedError(
                f"Only {len(distinct)} of {threshold} shares usable after unwrapping"
            ) from unwrap_error
        raise InsufficientSharesError(f"Need at least {threshold} shares, got {len(distinct)}")

    for quorum in combinations(distinct.values(), threshold):
        share_ids = [s.share_id for s in quorum]
        try:
            key = recover_key(quorum, prime)
        except InvalidShareError as e:
            logger.debug("Shares %s do not combine: %s", share_ids, e)
            continue
        if len(key) != SYMMETRIC_KEY_BYTES:
            logger.debug("Shares %s rebuild a %dB key", share_ids, len(key))
            continue
        try:
            secret = decrypt_payload(encrypted_blob, key)
        except DecryptionFailedError:
            logger.debug("Key from shares %s does not open the blob", share_ids)
            continue

        logger.info("Recovered key from shares %s", share_ids)
        return secret

    raise DecryptionFailedError("No quorum of the supplied shares opens the payload")


def recover_from_claim(
    claim_event: VaultEvent,
    heir_share: str,
    heir_secret_key: str,
    store: BlobStore,
    public_share_id: str | None = None,
    prime: int | None = None,
) -> bytes:
    """Run :func:`recover_legacy` using a vault's claim audit record.

    Raises:
        ValueError: If *claim_event* is not a claim record.
    """
    if claim_event.kind != EventKind.CLAIMED:
        raise ValueError(f"Expected a claim record, got {claim_event.kind}")

    public_share = None
    if public_share_id is not None:
        public_share = store.get(public_share_id).decode("utf-8")

    return recover_legacy(
        heir_share,
        public_share,
        list(claim_event.share_records),
        heir_secret_key,
        store.get(claim_event.payload_reference),
        prime=prime,
    )
