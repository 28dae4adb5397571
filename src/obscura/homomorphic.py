"""
Homomorphic operations on twisted ElGamal ciphertexts

Commitments and handles combine independently, so for ciphertexts under the
same public key add() encrypts a + b and subtract() encrypts a - b. The group
has no sign: a negative difference wraps modulo the group order and only
decrypt_signed() recovers it.
"""

from .curve import (
    decode_point,
    point_add,
    point_sub,
    scalar_from_int,
    scalar_mult,
)
from .elgamal import encrypt, validate_amount, value_point
from .errors import InvalidCiphertextSize
from .types import POINT_SIZE, ElGamalCiphertext


def _components(ciphertext: ElGamalCiphertext) -> tuple[bytes, bytes]:
    commitment = ciphertext.commitment.commitment
    handle = ciphertext.handle.handle
    for name, point in (("commitment", commitment), ("handle", handle)):
        if len(point) != POINT_SIZE:
            raise InvalidCiphertextSize(name, POINT_SIZE, len(point))
    return (
        decode_point(commitment, "commitment", allow_identity=True),
        decode_point(handle, "handle", allow_identity=True),
    )


def add(ct1: ElGamalCiphertext, ct2: ElGamalCiphertext) -> ElGamalCiphertext:
    """
    Add two ciphertexts

    Args:
        ct1: First ciphertext
        ct2: Second ciphertext

    Returns:
        Ciphertext of the sum of the two plaintexts
    """
    c1, d1 = _components(ct1)
    c2, d2 = _components(ct2)
    return ElGamalCiphertext.from_points(point_add(c1, c2), point_add(d1, d2))


def subtract(ct1: ElGamalCiphertext, ct2: ElGamalCiphertext) -> ElGamalCiphertext:
    """
    Subtract ct2 from ct1

    Args:
        ct1: Minuend ciphertext
        ct2: Subtrahend ciphertext

    Returns:
        Ciphertext of the difference (wraps modulo the group order if negative)
    """
    c1, d1 = _components(ct1)
    c2, d2 = _components(ct2)
    return ElGamalCiphertext.from_points(point_sub(c1, c2), point_sub(d1, d2))


def scale(ciphertext: ElGamalCiphertext, factor: int) -> ElGamalCiphertext:
    """Multiply the encrypted amount by a public non-negative integer"""
    if isinstance(factor, bool) or not isinstance(factor, int) or factor < 0:
        raise ValueError("factor must be a non-negative int")
    commitment, handle = _components(ciphertext)
    scalar = scalar_from_int(factor)
    return ElGamalCiphertext.from_points(
        scalar_mult(scalar, commitment), scalar_mult(scalar, handle)
    )


def add_amount(ciphertext: ElGamalCiphertext, value: int) -> ElGamalCiphertext:
    """Add a public amount without re-encrypting (handle unchanged)"""
    validate_amount(value)
    commitment, handle = _components(ciphertext)
    return ElGamalCiphertext.from_points(point_add(commitment, value_point(value)), handle)


def subtract_amount(ciphertext: ElGamalCiphertext, value: int) -> ElGamalCiphertext:
    """Subtract a public amount without re-encrypting (handle unchanged)"""
    validate_amount(value)
    commitment, handle = _components(ciphertext)
    return ElGamalCiphertext.from_points(
        point_sub(commitment, value_point(value)), handle
    )


def rerandomize(ciphertext: ElGamalCiphertext, public_key: bytes) -> ElGamalCiphertext:
    """Fresh-looking ciphertext of the same amount (adds an encryption of zero)"""
    return add(ciphertext, encrypt(public_key, 0).ciphertext)
