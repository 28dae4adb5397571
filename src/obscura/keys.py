"""
ElGamal key generation and derivation

Secret keys are reduced scalars in [1, L-1]; public keys are s^-1 * G so
that s * (r * P) = r * G during decryption.
"""

import hashlib
import logging
import secrets
from typing import Union

from solders.pubkey import Pubkey

from .curve import (
    IDENTITY,
    SCALAR_SIZE,
    ZERO_SCALAR,
    base_mult,
    hash_to_scalar,
    invert_scalar,
    reduce_scalar,
)
from .errors import InvalidDerivedKey, InvalidSeedLength
from .types import ElGamalKeypair

logger = logging.getLogger(__name__)

SEED_SIZE = 32

# Domain separator mixed into every derived secret
DERIVATION_SALT = b"Obscura-ElGamal-Keypair-v1"

# Attempts before generate() gives up on the random source
MAX_GENERATION_ATTEMPTS = 64


def public_key_from_secret(secret_key: bytes) -> bytes:
    """
    Compute the public key for a secret scalar

    Args:
        secret_key: 32-byte scalar (reduced before use)

    Returns:
        32-byte public key point
    """
    return base_mult(invert_scalar(secret_key))


def generate() -> ElGamalKeypair:
    """
    Generate a random ElGamal keypair

    Draws 32 random bytes and redraws until the reduced scalar is nonzero
    and the public point is not the identity.

    Returns:
        New keypair
    """
    for _ in range(MAX_GENERATION_ATTEMPTS):
        secret_key = reduce_scalar(secrets.token_bytes(SCALAR_SIZE))
        if secret_key == ZERO_SCALAR:
            continue
        public_key = public_key_from_secret(secret_key)
        if public_key == IDENTITY:
            continue
        return ElGamalKeypair(public_key=public_key, secret_key=secret_key)
    raise RuntimeError("Random source failed to produce a valid secret key")


def derive(seed: bytes) -> ElGamalKeypair:
    """
    Deterministically derive a keypair from a 32-byte seed

    Args:
        seed: Seed bytes (32 bytes)

    Returns:
        Keypair; the same seed always yields the same keypair

    Raises:
        InvalidSeedLength: seed is not 32 bytes
        InvalidDerivedKey: seed hashes to a degenerate key
    """
    if len(seed) != SEED_SIZE:
        raise InvalidSeedLength("seed", SEED_SIZE, len(seed))

    secret_key = hash_to_scalar(DERIVATION_SALT, bytes(seed))
    if secret_key == ZERO_SCALAR:
        raise InvalidDerivedKey("Seed derives a zero secret key")

    public_key = public_key_from_secret(secret_key)
    if public_key == IDENTITY:
        raise InvalidDerivedKey("Seed derives an identity public key")

    return ElGamalKeypair(public_key=public_key, secret_key=secret_key)


def derive_for_account(
    signer: Union[str, Pubkey, bytes],
    token_account: Union[str, Pubkey],
) -> ElGamalKeypair:
    """
    Derive the keypair bound to a signer and token account

    One wallet gets a distinct, reproducible ElGamal key per token account.

    Args:
        signer: Signer public key (base58 string, Pubkey or 32 bytes)
        token_account: Token account address (base58 string or Pubkey)

    Returns:
        Derived keypair
    """
    if isinstance(signer, str):
        signer = Pubkey.from_string(signer)
    elif isinstance(signer, (bytes, bytearray)):
        signer = Pubkey.from_bytes(bytes(signer))
    if isinstance(token_account, Pubkey):
        token_account = str(token_account)
    else:
        # Round-trip to reject malformed addresses early
        token_account = str(Pubkey.from_string(token_account))

    message = f"elgamal:{token_account}".encode()
    seed = hashlib.sha256(bytes(signer) + message).digest()
    logger.debug("Deriving ElGamal keypair for token account %s", token_account)
    return derive(seed)
