"""
Twisted ElGamal encryption for confidential amounts

A ciphertext splits into a Pedersen commitment C = v*H + r*G and a decrypt
handle D = r*P. The key holder recovers v*H as C - s*D and then searches for
v, so decryption only works for amounts known to be small.
"""

import logging
from math import isqrt
from typing import Optional

from .curve import (
    H,
    IDENTITY,
    ZERO_SCALAR,
    base_mult,
    decode_point,
    point_add,
    point_neg,
    point_sub,
    random_scalar,
    reduce_scalar,
    scalar_from_int,
    scalar_mult,
)
from .errors import InvalidInputSize, ValueOutOfRange
from .types import (
    SCALAR_SIZE,
    U64_LIMIT,
    ElGamalCiphertext,
    EncryptionResult,
)

logger = logging.getLogger(__name__)

# Largest bound a DecryptionTable is meant to cover (2^32 - 1)
MAX_DECRYPTABLE_VALUE = 4_294_967_295


def validate_amount(value: int, name: str = "value") -> int:
    """
    Check that an amount fits in an unsigned 64-bit integer

    Raises:
        TypeError: value is not an int
        ValueOutOfRange: value outside [0, 2^64)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value < U64_LIMIT:
        raise ValueOutOfRange(f"{name} must be in [0, 2^64), got {value}")
    return value


def value_point(value: int) -> bytes:
    """v * H (identity for zero)"""
    return scalar_mult(scalar_from_int(value), H)


# =============================================================================
# Encryption
# =============================================================================


def encrypt(public_key: bytes, value: int) -> EncryptionResult:
    """
    Encrypt an amount to a public key with fresh randomness

    Args:
        public_key: Recipient's ElGamal public key (32 bytes)
        value: Amount in [0, 2^64)

    Returns:
        EncryptionResult holding the ciphertext and randomness
    """
    validate_amount(value)
    return encrypt_with_randomness(public_key, value, random_scalar())


def encrypt_with_randomness(
    public_key: bytes, value: int, randomness: bytes
) -> EncryptionResult:
    """
    Encrypt an amount with caller-provided randomness

    Same inputs always produce the same ciphertext bytes.

    Args:
        public_key: Recipient's ElGamal public key (32 bytes)
        value: Amount in [0, 2^64)
        randomness: 32-byte scalar, reduced before use, must be nonzero

    Returns:
        EncryptionResult with the reduced randomness
    """
    validate_amount(value)
    public_key = decode_point(public_key, "public_key")
    if len(randomness) != SCALAR_SIZE:
        raise InvalidInputSize("randomness", SCALAR_SIZE, len(randomness))

    r = reduce_scalar(randomness)
    if r == ZERO_SCALAR:
        raise ValueError("Randomness must be a nonzero scalar")

    commitment = point_add(value_point(value), base_mult(r))
    handle = scalar_mult(r, public_key)

    return EncryptionResult(
        ciphertext=ElGamalCiphertext.from_points(commitment, handle),
        randomness=r,
    )


# =============================================================================
# Decryption
# =============================================================================


def _value_point_of(secret_key: bytes, ciphertext: ElGamalCiphertext) -> bytes:
    # C - s*D = v*H
    if len(secret_key) != SCALAR_SIZE:
        raise InvalidInputSize("secret_key", SCALAR_SIZE, len(secret_key))
    commitment = decode_point(
        ciphertext.commitment.commitment, "commitment", allow_identity=True
    )
    handle = decode_point(ciphertext.handle.handle, "handle", allow_identity=True)
    return point_sub(commitment, scalar_mult(reduce_scalar(secret_key), handle))


def _check_bound(bound: int, name: str) -> None:
    if isinstance(bound, bool) or not isinstance(bound, int) or bound < 0:
        raise ValueError(f"{name} must be a non-negative int")


def decrypt(
    secret_key: bytes, ciphertext: ElGamalCiphertext, max_value: int
) -> Optional[int]:
    """
    Decrypt by bounded linear search

    Walks v = 0..max_value comparing v*H against C - s*D. Running time grows
    with the plaintext and is not constant time, so use it only for amounts
    known to be small (balances capped by supply). See DecryptionTable for
    repeated decryption over larger bounds.

    Args:
        secret_key: ElGamal secret key (32 bytes)
        ciphertext: Ciphertext to decrypt
        max_value: Largest amount to try (inclusive)

    Returns:
        The amount, or None if it is not in [0, max_value]
    """
    _check_bound(max_value, "max_value")
    target = _value_point_of(secret_key, ciphertext)

    candidate = IDENTITY
    for value in range(max_value + 1):
        if candidate == target:
            return value
        candidate = point_add(candidate, H)
    return None


def decrypt_signed(
    secret_key: bytes, ciphertext: ElGamalCiphertext, max_abs: int
) -> Optional[int]:
    """
    Decrypt a value that may be negative

    Subtracting a larger ciphertext wraps modulo the group order; this
    recovers -v for such results as long as |v| <= max_abs.

    Returns:
        Amount in [-max_abs, max_abs], or None
    """
    _check_bound(max_abs, "max_abs")
    target = _value_point_of(secret_key, ciphertext)
    negated = point_neg(target)

    candidate = IDENTITY
    for value in range(max_abs + 1):
        if candidate == target:
            return value
        if candidate == negated:
            return -value
        candidate = point_add(candidate, H)
    return None


class DecryptionTable:
    """
    Baby-step giant-step table for repeated decryption

    Precomputes about sqrt(max_value) multiples of H; each decryption then
    costs about sqrt(max_value) point subtractions.

    Example:
        ```python
        table = DecryptionTable(max_value=10_000_000)
        amount = table.decrypt(keypair.secret_key, ciphertext)
        ```
    """

    def __init__(self, max_value: int):
        _check_bound(max_value, "max_value")
        if max_value > MAX_DECRYPTABLE_VALUE:
            logger.warning(
                "Decryption table bound %d exceeds %d; construction will be slow",
                max_value,
                MAX_DECRYPTABLE_VALUE,
            )
        self.max_value = max_value
        self.step = isqrt(max_value) + 1

        self._baby_steps: dict[bytes, int] = {}
        point = IDENTITY
        for j in range(self.step):
            self._baby_steps[point] = j
            point = point_add(point, H)
        self._giant_step = value_point(self.step)

    def __len__(self) -> int:
        return len(self._baby_steps)

    def decrypt(self, secret_key: bytes, ciphertext: ElGamalCiphertext) -> Optional[int]:
        """Decrypt a ciphertext whose amount is at most max_value"""
        gamma = _value_point_of(secret_key, ciphertext)
        for i in range(self.max_value // self.step + 1):
            j = self._baby_steps.get(gamma)
            if j is not None:
                value = i * self.step + j
                return value if value <= self.max_value else None
            gamma = point_sub(gamma, self._giant_step)
        return None
