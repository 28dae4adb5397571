"""
Curve arithmetic for Obscura

Thin wrappers around libsodium's Ed25519 group operations (via PyNaCl):
- Scalar reduction and inversion modulo the group order
- Point addition, subtraction and scalar multiplication
- Point decoding with identity and subgroup checks
- The Pedersen generators G and H
"""

import hashlib
import secrets

import nacl.bindings

from .errors import InvalidInputSize, PointDecodeFailure

POINT_SIZE = 32
SCALAR_SIZE = 32

# Ed25519 prime subgroup order (L)
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

# Compressed encoding of the neutral element (x = 0, y = 1)
IDENTITY = b"\x01" + bytes(31)

ZERO_SCALAR = bytes(SCALAR_SIZE)

# Domain separator for the value generator H
H_GENERATOR_DOMAIN = b"Obscura-Pedersen-Generator-H-v1"


def _check_size(name: str, data: bytes, size: int) -> bytes:
    if len(data) != size:
        raise InvalidInputSize(name, size, len(data))
    return bytes(data)


# =============================================================================
# Scalars
# =============================================================================


def reduce_scalar(data: bytes) -> bytes:
    """
    Reduce a little-endian integer modulo the group order

    Args:
        data: 32 or 64 bytes, little-endian

    Returns:
        Canonical 32-byte scalar
    """
    if len(data) == SCALAR_SIZE:
        data = bytes(data) + bytes(32)
    elif len(data) != 64:
        raise InvalidInputSize("scalar", SCALAR_SIZE, len(data))
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(bytes(data))


def scalar_from_int(value: int) -> bytes:
    """Encode an integer as a reduced 32-byte scalar"""
    return (value % CURVE_ORDER).to_bytes(SCALAR_SIZE, "little")


def scalar_to_int(scalar: bytes) -> int:
    """Decode a 32-byte little-endian scalar"""
    return int.from_bytes(_check_size("scalar", scalar, SCALAR_SIZE), "little")


def is_zero_scalar(scalar: bytes) -> bool:
    return reduce_scalar(scalar) == ZERO_SCALAR


def invert_scalar(scalar: bytes) -> bytes:
    """Multiplicative inverse modulo the group order (scalar must be nonzero)"""
    scalar = reduce_scalar(scalar)
    if scalar == ZERO_SCALAR:
        raise ValueError("Zero scalar has no inverse")
    return nacl.bindings.crypto_core_ed25519_scalar_invert(scalar)


def random_scalar() -> bytes:
    """Uniform nonzero scalar from 32 random bytes, redrawn on zero"""
    while True:
        scalar = reduce_scalar(secrets.token_bytes(SCALAR_SIZE))
        if scalar != ZERO_SCALAR:
            return scalar


def hash_to_scalar(*parts: bytes) -> bytes:
    """SHA-512 of the concatenated parts, reduced modulo the group order"""
    digest = hashlib.sha512(b"".join(parts)).digest()
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(digest)


# =============================================================================
# Points
# =============================================================================


def is_identity(point: bytes) -> bool:
    return bytes(point) == IDENTITY


def is_valid_point(point: bytes) -> bool:
    """True for canonical, non-identity points of the prime-order subgroup"""
    if len(point) != POINT_SIZE:
        return False
    return bool(nacl.bindings.crypto_core_ed25519_is_valid_point(bytes(point)))


def decode_point(data: bytes, name: str = "point", allow_identity: bool = False) -> bytes:
    """
    Check that bytes encode a usable group element

    Args:
        data: 32-byte compressed point
        name: Field name used in error messages
        allow_identity: Accept the neutral element (results of ciphertext algebra)

    Returns:
        The point as immutable bytes

    Raises:
        InvalidInputSize: wrong length
        PointDecodeFailure: not a valid subgroup point
    """
    point = _check_size(name, data, POINT_SIZE)
    if point == IDENTITY:
        if allow_identity:
            return point
        raise PointDecodeFailure(f"{name} is the identity point")
    if not is_valid_point(point):
        raise PointDecodeFailure(f"{name} is not a valid curve point")
    return point


def base_mult(scalar: bytes) -> bytes:
    """scalar * G"""
    scalar = reduce_scalar(scalar)
    if scalar == ZERO_SCALAR:
        return IDENTITY
    return nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(scalar)


def scalar_mult(scalar: bytes, point: bytes) -> bytes:
    """scalar * point"""
    scalar = reduce_scalar(scalar)
    point = _check_size("point", point, POINT_SIZE)
    if scalar == ZERO_SCALAR or point == IDENTITY:
        return IDENTITY
    return nacl.bindings.crypto_scalarmult_ed25519_noclamp(scalar, point)


def point_add(p: bytes, q: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_add(
        _check_size("point", p, POINT_SIZE), _check_size("point", q, POINT_SIZE)
    )


def point_sub(p: bytes, q: bytes) -> bytes:
    return nacl.bindings.crypto_core_ed25519_sub(
        _check_size("point", p, POINT_SIZE), _check_size("point", q, POINT_SIZE)
    )


def point_neg(p: bytes) -> bytes:
    return point_sub(IDENTITY, p)


# =============================================================================
# Generators
# =============================================================================


def _derive_value_generator(base: bytes) -> bytes:
    # Try-and-increment: the first hash output that decodes to a
    # prime-order point is H. Nobody knows log_G(H).
    seed = hashlib.sha256(H_GENERATOR_DOMAIN + base).digest()
    for counter in range(256):
        candidate = hashlib.sha256(seed + bytes([counter])).digest()
        if is_valid_point(candidate):
            return candidate
    raise RuntimeError("Could not derive Pedersen generator H")


# Blinding generator (Ed25519 base point)
G = nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(scalar_from_int(1))

# Value generator
H = _derive_value_generator(G)
