"""Shamir's Secret Sharing over a large prime field.

Implements threshold secret sharing where a secret is split into *n* shares
such that any *k* (threshold) shares can reconstruct the original secret,
but fewer than *k* shares reveal no information about the secret.

Polynomial coefficients are drawn uniformly from ``GF(q)`` and no public
commitments are published, so the guarantee for sub-threshold share sets
is information-theoretic.  ``q`` is the 2047-bit Sophie Germain prime
derived from the RFC 3526 Group 14 safe prime, comfortably larger than a
256-bit symmetric key plus its length sentinel.

Every share carries its evaluation point (``share_id``) together with the
split parameters, and serializes to a compact text token so that shares
can travel through blob stores, envelopes and command lines.

Example:
    >>> from legacyvault.engine.shamir import recover_key, split_key
    >>>
    >>> shares = split_key(b"\\x00" * 32)
    >>> assert recover_key([shares[0], shares[3], shares[4]]) == b"\\x00" * 32
"""

import logging
import secrets
from collections.abc import Iterable

from pydantic import BaseModel

from legacyvault.config.defaults import THRESHOLD, TOTAL_SHARES
from legacyvault.errors import InsufficientSharesError, InvalidShareError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# RFC 3526 Group 14 (2048-bit MODP safe prime)
# p is prime and q = (p - 1) / 2 is also prime; q is the polynomial field.
# ---------------------------------------------------------------------------
_RFC3526_PRIME_HEX = (
    "FFFFFFFFFFFFFFFF"
    "C90FDAA22168C234"
    "C4C6628B80DC1CD1"
    "29024E088A67CC74"
    "020BBEA63B139B22"
    "514A08798E3404DD"
    "EF9519B3CD3A431B"
    "302B0A6DF25F1437"
    "4FE1356D6D51C245"
    "E485B576625E7EC6"
    "F44C42E9A637ED6B"
    "0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5"
    "AE9F24117C4B1FE6"
    "49286651ECE45B3D"
    "C2007CB8A163BF05"
    "98DA48361C55D39A"
    "69163FA8FD24CF5F"
    "83655D23DCA3AD96"
    "1C62F356208552BB"
    "9ED529077096966D"
    "670C354E4ABC9804"
    "F1746C08CA18217C"
    "32905E462E36CE3B"
    "E39E772C180E8603"
    "9B2783A2EC07A28F"
    "B5C55DF06F4C52C9"
    "DE2BCBF695581718"
    "3995497CEA956AE5"
    "15D2261898FA0510"
    "15728E5A8AACAA68"
    "FFFFFFFFFFFFFFFF"
)

_GROUP_PRIME: int = int(_RFC3526_PRIME_HEX, 16)
FIELD_PRIME: int = (_GROUP_PRIME - 1) // 2

SHARE_TOKEN_PREFIX = "lvs1"


class Share(BaseModel):
    """A single share from Shamir's Secret Sharing.

    Attributes:
        share_id: 1-indexed share number (evaluation point).
        value: Polynomial evaluated at *share_id* mod *q*.
        threshold: Minimum number of shares needed to reconstruct.
        total_shares: Total number of shares that were created.
    """

    share_id: int
    value: int
    threshold: int
    total_shares: int

    def encode(self) -> str:
        """Serialize to ``lvs1:<id>:<threshold>:<total>:<hex value>``."""
        return (
            f"{SHARE_TOKEN_PREFIX}:{self.share_id}:{self.threshold}:"
            f"{self.total_shares}:{self.value:x}"
        )

    @classmethod
    def decode(cls, token: str) -> "Share":
        """Parse a token produced by :meth:`encode`.

        Raises:
            InvalidShareError: If the token is malformed.
        """
        parts = token.strip().split(":")
        if len(parts) != 5 or parts[0] != SHARE_TOKEN_PREFIX:
            raise InvalidShareError("Not a share token")
        try:
            share_id, threshold, total = (int(p) for p in parts[1:4])
            value = int(parts[4], 16)
        except ValueError as e:
            raise InvalidShareError(f"Malformed share token: {e}") from e
        if not 1 <= share_id <= total or not 2 <= threshold <= total:
            raise InvalidShareError("Share token parameters out of range")
        return cls(share_id=share_id, value=value, threshold=threshold, total_shares=total)


def is_valid_share(token: str) -> bool:
    """Return ``True`` if *token* parses as a share."""
    try:
        Share.decode(token)
    except InvalidShareError:
        return False
    return True


class ShamirSecretSharing:
    """Core (k, n) Shamir's Secret Sharing.

    Example:
        >>> sss = ShamirSecretSharing(threshold=3, total_shares=5)
        >>> shares = sss.split(b"secret")
        >>> assert sss.combine(shares[2:]) == b"secret"
    """

    def __init__(
        self,
        threshold: int = THRESHOLD,
        total_shares: int = TOTAL_SHARES,
        prime: int | None = None,
    ) -> None:
        """Initialise the scheme.

        Args:
            threshold: Minimum shares to reconstruct (k).
            total_shares: Total shares to create (n).
            prime: Prime field modulus; defaults to :data:`FIELD_PRIME`.

        Raises:
            ValueError: If threshold < 2 or total_shares < threshold.
        """
        if threshold < 2:
            raise ValueError("Threshold must be at least 2")
        if total_shares < threshold:
            raise ValueError("total_shares must be >= threshold")

        self.threshold = threshold
        self.total_shares = total_shares
        self.prime = prime or FIELD_PRIME

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, secret: bytes) -> list[Share]:
        """Split *secret* into ``total_shares`` shares.

        A ``0x01`` sentinel byte is prepended internally so that leading
        zero bytes survive the integer round-trip.

        Raises:
            ValueError: If the secret is too large for the prime field.
        """
        secret_int = self._bytes_to_int(secret)
        if secret_int >= self.prime:
            raise ValueError("Secret is too large for the configured prime field")

        coefficients = [secret_int]
        coefficients.extend(secrets.randbelow(self.prime) for _ in range(self.threshold - 1))

        shares = [
            Share(
                share_id=x,
                value=self._evaluate_polynomial(coefficients, x),
                threshold=self.threshold,
                total_shares=self.total_shares,
            )
            for x in range(1, self.total_shares + 1)
        ]

        logger.info(
            "Split secret into %d shares (threshold=%d)", self.total_shares, self.threshold
        )
        return shares

    def combine(self, shares: Iterable[Share | str]) -> bytes:
        """Reconstruct the secret from at least ``threshold`` shares.

        Any subset of the right size yields the same secret; extra shares
        beyond the threshold are accepted.

        Raises:
            InsufficientSharesError: If fewer than ``threshold`` distinct
                shares are supplied.
            InvalidShareError: If shares are malformed, duplicated, or come
                from a split with different parameters.
        """
        parsed = [Share.decode(s) if isinstance(s, str) else s for s in shares]
        if len(parsed) < self.threshold:
            raise InsufficientSharesError(
                f"Need at least {self.threshold} shares, got {len(parsed)}"
            )

        seen: set[int] = set()
        for share in parsed:
            if (share.threshold, share.total_shares) != (self.threshold, self.total_shares):
                raise InvalidShareError(
                    f"Share {share.share_id} belongs to a "
                    f"{share.threshold}-of-{share.total_shares} split"
                )
            if not 1 <= share.share_id <= self.total_shares or not 0 <= share.value < self.prime:
                raise InvalidShareError(f"Share {share.share_id} is out of range")
            if share.share_id in seen:
                raise InvalidShareError(f"Duplicate share {share.share_id}")
            seen.add(share.share_id)

        points = [(s.share_id, s.value) for s in parsed]
        secret_int = self._lagrange_interpolation(points)

        logger.info(
            "Reconstructed secret from %d shares (threshold=%d)", len(points), self.threshold
        )
        return self._int_to_bytes(secret_int)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _evaluate_polynomial(self, coefficients: list[int], x: int) -> int:
        """Evaluate polynomial at *x* (Horner's method, mod prime)."""
        p = self.prime
        result = 0
        for coeff in reversed(coefficients):
            result = (result * x + coeff) % p
        return result

    def _lagrange_interpolation(self, points: list[tuple[int, int]]) -> int:
        """Lagrange interpolation at ``x = 0`` over ``GF(prime)``."""
        p = self.prime
        secret = 0

        for i, (x_i, y_i) in enumerate(points):
            numerator = 1
            denominator = 1
            for j, (x_j, _) in enumerate(points):
                if i == j:
                    continue
                numerator = (numerator * (-x_j)) % p
                denominator = (denominator * (x_i - x_j)) % p

            lagrange_coeff = (numerator * pow(denominator, -1, p)) % p
            secret = (secret + y_i * lagrange_coeff) % p

        return secret

    @staticmethod
    def _bytes_to_int(data: bytes) -> int:
        """Convert bytes to a sentinel-prefixed integer."""
        return int.from_bytes(b"\x01" + data, byteorder="big")

    @staticmethod
    def _int_to_bytes(value: int) -> bytes:
        """Convert a sentinel-prefixed integer back to bytes.

        Raises:
            InvalidShareError: If the value lacks the sentinel, which means
                the shares did not come from the same split.
        """
        byte_length = (value.bit_length() + 7) // 8
        raw = value.to_bytes(byte_length, byteorder="big")
        if raw[:1] != b"\x01":
            raise InvalidShareError("Shares do not interpolate to a valid secret")
        return raw[1:]


def split_key(
    key: bytes,
    total_shares: int = TOTAL_SHARES,
    threshold: int = THRESHOLD,
    prime: int | None = None,
) -> list[Share]:
    """Split *key* into *total_shares* shares, any *threshold* of which rebuild it."""
    return ShamirSecretSharing(threshold, total_shares, prime).split(key)


def recover_key(shares: Iterable[Share | str], prime: int | None = None) -> bytes:
    """Rebuild a key from shares produced by :func:`split_key`.

    The threshold is read from the shares themselves.

    Raises:
        InsufficientSharesError: If fewer than the threshold are supplied.
        InvalidShareError: If the shares are malformed or inconsistent.
    """
    parsed = [Share.decode(s) if isinstance(s, str) else s for s in shares]
    if not parsed:
        raise InsufficientSharesError("No shares provided")
    first = parsed[0]
    if len(parsed) < first.threshold:
        raise InsufficientSharesError(
            f"Need at least {first.threshold} shares, got {len(parsed)}"
        )
    return ShamirSecretSharing(first.threshold, first.total_shares, prime).combine(parsed)
