"""Utility functions"""

import secrets

import base58
from solders.pubkey import Pubkey

from .errors import InvalidInputSize

PUBLIC_KEY_SIZE = 32


def generate_seed(length: int = 32) -> bytes:
    """
    Generate a cryptographically secure derivation seed

    Args:
        length: Length of seed in bytes

    Returns:
        Random bytes
    """
    return secrets.token_bytes(length)


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hex string to bytes

    Args:
        hex_str: Hex string (with or without 0x prefix)

    Returns:
        Bytes
    """
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def public_key_to_address(public_key: bytes) -> str:
    """
    Encode a 32-byte public key as a base58 Solana address

    Args:
        public_key: ElGamal or Ed25519 public key bytes

    Returns:
        Base58 address string
    """
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise InvalidInputSize("public_key", PUBLIC_KEY_SIZE, len(public_key))
    return str(Pubkey.from_bytes(bytes(public_key)))


def address_to_public_key(address: str) -> bytes:
    """
    Decode a base58 Solana address to its 32 public key bytes

    Raises:
        ValueError: address is not valid base58 of 32 bytes
    """
    if not validate_solana_address(address):
        raise ValueError(f"Invalid Solana address: {address!r}")
    return bytes(Pubkey.from_string(address))


def validate_solana_address(address: str) -> bool:
    """
    Validate Solana address

    Args:
        address: Base58-encoded Solana address

    Returns:
        True if valid
    """
    try:
        decoded = base58.b58decode(address)
    except ValueError:
        return False
    return len(decoded) == 32
