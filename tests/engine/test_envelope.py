"""Tests for X25519 share wrapping."""

import base64
import json

import pytest

from legacyvault.engine.envelope import (
    WrappedShare,
    generate_recipient_keypair,
    is_valid_key,
    public_key_for,
    unwrap_share,
    wrap_share,
)
from legacyvault.errors import DecryptionFailedError, InvalidKeyError

SHARE = "lvs1:3:3:5:1f2e3d4c5b6a"


class TestKeyPairs:
    def test_keypair_is_base64_32_bytes(self, heir_keys):
        assert len(base64.b64decode(heir_keys.public_key)) == 32
        assert len(base64.b64decode(heir_keys.secret_key)) == 32
        assert heir_keys.public_key != heir_keys.secret_key

    def test_public_key_for(self, heir_keys):
        assert public_key_for(heir_keys.secret_key) == heir_keys.public_key

    @pytest.mark.parametrize(
        "key,expected",
        [
            (base64.b64encode(b"\x01" * 32).decode(), True),
            (base64.b64encode(b"\x01" * 31).decode(), False),
            ("not base64!!", False),
            ("", False),
        ],
    )
    def test_is_valid_key(self, key, expected):
        assert is_valid_key(key) is expected


class TestWrapUnwrap:
    def test_round_trip(self, heir_keys):
        package = wrap_share(SHARE, heir_keys.public_key)
        assert unwrap_share(package, heir_keys.secret_key) == SHARE

    def test_bytes_input(self, heir_keys):
        package = wrap_share(SHARE.encode(), heir_keys.public_key)
        assert unwrap_share(package, heir_keys.secret_key) == SHARE

    def test_package_fields(self, heir_keys):
        package = json.loads(wrap_share(SHARE, heir_keys.public_key))
        assert set(package) == {"ciphertext", "nonce", "ephemeral_public_key"}
        assert SHARE not in json.dumps(package)

    def test_ephemeral_key_per_wrap(self, heir_keys):
        packages = [
            WrappedShare.model_validate_json(wrap_share(SHARE, heir_keys.public_key))
            for _ in range(3)
        ]
        assert len({p.ephemeral_public_key for p in packages}) == 3
        assert len({p.nonce for p in packages}) == 3
        assert heir_keys.public_key not in {p.ephemeral_public_key for p in packages}

    def test_mismatched_keypair_fails_closed(self, heir_keys):
        package = wrap_share(SHARE, heir_keys.public_key)
        other = generate_recipient_keypair()
        with pytest.raises(DecryptionFailedError):
            unwrap_share(package, other.secret_key)

    @pytest.mark.parametrize("field", ["ciphertext", "nonce", "ephemeral_public_key"])
    def test_tampered_package_fails_closed(self, heir_keys, field):
        package = json.loads(wrap_share(SHARE, heir_keys.public_key))
        raw = bytearray(base64.b64decode(package[field]))
        raw[0] ^= 0x01
        package[field] = base64.b64encode(bytes(raw)).decode()
        with pytest.raises(DecryptionFailedError):
            unwrap_share(json.dumps(package), heir_keys.secret_key)

    @pytest.mark.parametrize(
        "package",
        [
            "",
            "not json",
            "{}",
            '{"ciphertext": "!!", "nonce": "AAAA", "ephemeral_public_key": "AAAA"}',
            json.dumps({"ciphertext": "AAAA", "nonce": "AAAA", "ephemeral_public_key": "AAAA"}),
        ],
    )
    def test_malformed_package(self, heir_keys, package):
        with pytest.raises(DecryptionFailedError):
            unwrap_share(package, heir_keys.secret_key)

    def test_invalid_recipient_public_key(self):
        with pytest.raises(InvalidKeyError):
            wrap_share(SHARE, "c2hvcnQ=")

    def test_invalid_recipient_secret_key(self, heir_keys):
        package = wrap_share(SHARE, heir_keys.public_key)
        with pytest.raises(InvalidKeyError):
            unwrap_share(package, "c2hvcnQ=")
