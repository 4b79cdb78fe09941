"""Tests for AES-GCM payload encryption."""

import pytest

from legacyvault.engine.symmetric import (
    NONCE_SIZE,
    TAG_SIZE,
    decrypt_payload,
    encrypt_payload,
    generate_symmetric_key,
)
from legacyvault.errors import DecryptionFailedError, InvalidKeyError


@pytest.fixture
def key():
    return generate_symmetric_key()


class TestGenerateKey:
    def test_key_is_32_bytes(self, key):
        assert isinstance(key, bytes)
        assert len(key) == 32

    def test_keys_are_unique(self):
        assert len({generate_symmetric_key() for _ in range(20)}) == 20


class TestEncryptDecrypt:
    @pytest.mark.parametrize(
        "plaintext",
        [b"", b"x", b"my seed phrase: abandon abandon ...", bytes(range(256)) * 40],
    )
    def test_round_trip(self, key, plaintext):
        assert decrypt_payload(encrypt_payload(plaintext, key), key) == plaintext

    def test_str_is_utf8_encoded(self, key):
        blob = encrypt_payload("héritage ✓", key)
        assert decrypt_payload(blob, key) == "héritage ✓".encode()

    def test_blob_layout(self, key):
        blob = encrypt_payload(b"hello", key)
        assert len(blob) == NONCE_SIZE + len(b"hello") + TAG_SIZE

    def test_fresh_nonce_per_call(self, key):
        first = encrypt_payload(b"same", key)
        second = encrypt_payload(b"same", key)
        assert first[:NONCE_SIZE] != second[:NONCE_SIZE]
        assert first != second

    def test_wrong_key_fails_closed(self, key):
        blob = encrypt_payload(b"secret", key)
        with pytest.raises(DecryptionFailedError):
            decrypt_payload(blob, generate_symmetric_key())

    @pytest.mark.parametrize("position", [0, NONCE_SIZE, -1])
    def test_tampered_blob_fails_closed(self, key, position):
        blob = bytearray(encrypt_payload(b"secret", key))
        blob[position] ^= 0x01
        with pytest.raises(DecryptionFailedError):
            decrypt_payload(bytes(blob), key)

    def test_truncated_blob_fails_closed(self, key):
        with pytest.raises(DecryptionFailedError, match="truncated"):
            decrypt_payload(b"\x00" * (NONCE_SIZE + TAG_SIZE - 1), key)

    @pytest.mark.parametrize("bad_key", [b"", b"short", b"\x00" * 31, b"\x00" * 33])
    def test_invalid_key_length(self, bad_key):
        with pytest.raises(InvalidKeyError):
            encrypt_payload(b"data", bad_key)
        with pytest.raises(InvalidKeyError):
            decrypt_payload(b"\x00" * 40, bad_key)
