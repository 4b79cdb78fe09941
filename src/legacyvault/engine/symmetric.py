"""Authenticated symmetric encryption of the vault payload.

Payloads are sealed with AES-256-GCM.  The ciphertext blob is the random
96-bit nonce followed by the GCM ciphertext and its 128-bit tag, so a blob
is self-contained and can be parked in a content-addressed store.

Example:
    >>> from legacyvault.engine.symmetric import (
    ...     decrypt_payload,
    ...     encrypt_payload,
    ...     generate_symmetric_key,
    ... )
    >>>
    >>> key = generate_symmetric_key()
    >>> blob = encrypt_payload(b"seed phrase", key)
    >>> assert decrypt_payload(blob, key) == b"seed phrase"
"""

import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from legacyvault.config.defaults import SYMMETRIC_KEY_BYTES
from legacyvault.errors import DecryptionFailedError, InvalidKeyError

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16


def generate_symmetric_key() -> bytes:
    """Generate a fresh 256-bit key from the OS CSPRNG."""
    return AESGCM.generate_key(bit_length=SYMMETRIC_KEY_BYTES * 8)


def _check_key(key: bytes) -> None:
    if not isinstance(key, bytes | bytearray) or len(key) != SYMMETRIC_KEY_BYTES:
        raise InvalidKeyError(f"Symmetric key must be {SYMMETRIC_KEY_BYTES} bytes")


def encrypt_payload(plaintext: bytes | str, key: bytes) -> bytes:
    """Encrypt *plaintext* under *key*.

    Args:
        plaintext: Payload to seal.  ``str`` values are UTF-8 encoded.
        key: 32-byte symmetric key.

    Returns:
        ``nonce || ciphertext || tag``.

    Raises:
        InvalidKeyError: If *key* is not 32 bytes.
    """
    _check_key(key)
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    nonce = os.urandom(NONCE_SIZE)
    blob = nonce + AESGCM(bytes(key)).encrypt(nonce, plaintext, None)

    logger.debug("Encrypted %dB payload (blob=%dB)", len(plaintext), len(blob))
    return blob


def decrypt_payload(blob: bytes, key: bytes) -> bytes:
    """Decrypt a blob produced by :func:`encrypt_payload`.

    Args:
        blob: ``nonce || ciphertext || tag``.
        key: 32-byte symmetric key.

    Returns:
        The original plaintext bytes.

    Raises:
        InvalidKeyError: If *key* is not 32 bytes.
        DecryptionFailedError: If the blob is truncated, altered, or was
            sealed under a different key.
    """
    _check_key(key)
    if len(blob) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionFailedError("Ciphertext blob is truncated")

    nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        return AESGCM(bytes(key)).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        logger.warning("Payload authentication failed (blob=%dB)", len(blob))
        raise DecryptionFailedError("Decryption failed - invalid key or corrupted data") from e
