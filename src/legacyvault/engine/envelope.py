"""Asymmetric wrapping of key shares for the beneficiary.

Each wrap generates a fresh ephemeral X25519 keypair, derives a one-time
AES-256-GCM key from the Diffie-Hellman secret with HKDF-SHA256, and seals
the share.  The ephemeral secret is discarded after the call, so every
wrapped share stands alone: exposing one package's key says nothing about
the others.

The package is a JSON document holding base64 ``ciphertext``, ``nonce`` and
``ephemeral_public_key``.  Recipient keys are base64 encoded raw 32-byte
X25519 keys.

Example:
    >>> from legacyvault.engine.envelope import (
    ...     generate_recipient_keypair,
    ...     unwrap_share,
    ...     wrap_share,
    ... )
    >>>
    >>> heir = generate_recipient_keypair()
    >>> package = wrap_share("lvs1:3:3:5:abc", heir.public_key)
    >>> assert unwrap_share(package, heir.secret_key) == "lvs1:3:3:5:abc"
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from pydantic import BaseModel, ValidationError

from legacyvault.errors import DecryptionFailedError, InvalidKeyError

logger = logging.getLogger(__name__)

_KEY_SIZE = 32
_NONCE_SIZE = 12
_HKDF_INFO = b"legacyvault/share-wrap/v1"


class RecipientKeyPair(BaseModel):
    """Base64 encoded X25519 keypair of a share recipient."""

    public_key: str
    secret_key: str


class WrappedShare(BaseModel):
    """Serialized envelope around a single share.

    Attributes:
        ciphertext: Base64 AES-GCM ciphertext and tag.
        nonce: Base64 96-bit GCM nonce.
        ephemeral_public_key: Base64 raw X25519 public key of the sender.
    """

    ciphertext: str
    nonce: str
    ephemeral_public_key: str


def _raw(key: X25519PublicKey) -> bytes:
    return key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)


def _decode_key(key: str) -> bytes:
    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidKeyError("Key is not valid base64") from e
    if len(raw) != _KEY_SIZE:
        raise InvalidKeyError(f"Key must decode to {_KEY_SIZE} bytes, got {len(raw)}")
    return raw


def is_valid_key(key: str) -> bool:
    """Return ``True`` if *key* is base64 for exactly 32 bytes."""
    try:
        _decode_key(key)
    except InvalidKeyError:
        return False
    return True


def generate_recipient_keypair() -> RecipientKeyPair:
    """Generate a new X25519 keypair for a beneficiary."""
    private_key = X25519PrivateKey.generate()
    secret = private_key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )
    return RecipientKeyPair(
        public_key=base64.b64encode(_raw(private_key.public_key())).decode("ascii"),
        secret_key=base64.b64encode(secret).decode("ascii"),
    )


def public_key_for(secret_key: str) -> str:
    """Derive the base64 public key matching *secret_key*."""
    private_key = X25519PrivateKey.from_private_bytes(_decode_key(secret_key))
    return base64.b64encode(_raw(private_key.public_key())).decode("ascii")


def _derive_key(shared_secret: bytes, ephemeral_public: bytes, recipient_public: bytes) -> bytes:
    # Both public keys are bound into the derivation so an envelope cannot be
    # re-targeted at another recipient.
    return HKDF(
        algorithm=hashes.SHA256(),
        length=_KEY_SIZE,
        salt=None,
        info=_HKDF_INFO + ephemeral_public + recipient_public,
    ).derive(shared_secret)


def wrap_share(share: str | bytes, recipient_public_key: str) -> str:
    """Encrypt *share* for the holder of *recipient_public_key*.

    Args:
        share: Share token (or raw bytes) to protect.
        recipient_public_key: Base64 X25519 public key of the recipient.

    Returns:
        JSON encoded :class:`WrappedShare`.

    Raises:
        InvalidKeyError: If the public key is malformed.
    """
    recipient_raw = _decode_key(recipient_public_key)
    if isinstance(share, str):
        share = share.encode("utf-8")

    ephemeral = X25519PrivateKey.generate()
    ephemeral_raw = _raw(ephemeral.public_key())
    shared = ephemeral.exchange(X25519PublicKey.from_public_bytes(recipient_raw))
    key = _derive_key(shared, ephemeral_raw, recipient_raw)

    nonce = os.urandom(_NONCE_SIZE)
    ciphertext = AESGCM(key).encrypt(nonce, share, ephemeral_raw)

    package = WrappedShare(
        ciphertext=base64.b64encode(ciphertext).decode("ascii"),
        nonce=base64.b64encode(nonce).decode("ascii"),
        ephemeral_public_key=base64.b64encode(ephemeral_raw).decode("ascii"),
    )
    logger.debug("Wrapped %dB share for recipient", len(share))
    return package.model_dump_json()


def unwrap_share(package: str, recipient_secret_key: str) -> str:
    """Decrypt a package produced by :func:`wrap_share`.

    Args:
        package: JSON encoded :class:`WrappedShare`.
        recipient_secret_key: Base64 X25519 secret key of the recipient.

    Returns:
        The original share as text.

    Raises:
        InvalidKeyError: If the secret key is malformed.
        DecryptionFailedError: If the package is malformed, tampered with,
            or was wrapped for a different recipient.
    """
    private_key = X25519PrivateKey.from_private_bytes(_decode_key(recipient_secret_key))

    try:
        envelope = WrappedShare.model_validate_json(package)
        ciphertext = base64.b64decode(envelope.ciphertext, validate=True)
        nonce = base64.b64decode(envelope.nonce, validate=True)
        ephemeral_raw = base64.b64decode(envelope.ephemeral_public_key, validate=True)
    except (ValidationError, binascii.Error, ValueError) as e:
        raise DecryptionFailedError("Malformed share package") from e

    if len(ephemeral_raw) != _KEY_SIZE or len(nonce) != _NONCE_SIZE:
        raise DecryptionFailedError("Malformed share package")

    try:
        shared = private_key.exchange(X25519PublicKey.from_public_bytes(ephemeral_raw))
    except ValueError as e:
        # Low-order ephemeral points produce an all-zero secret
        raise DecryptionFailedError("Invalid ephemeral public key") from e

    key = _derive_key(shared, ephemeral_raw, _raw(private_key.public_key()))
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, ephemeral_raw)
    except InvalidTag as e:
        logger.warning("Share package failed authentication")
        raise DecryptionFailedError(
            "Failed to decrypt share - invalid key or corrupted data"
        ) from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionFailedError("Share is not valid text") from e
