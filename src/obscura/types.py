"""Type definitions for Obscura"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from .curve import CURVE_ORDER, base_mult, invert_scalar, is_valid_point
from .errors import InvalidCiphertextSize, InvalidInputSize

POINT_SIZE = 32
SCALAR_SIZE = 32
CIPHERTEXT_SIZE = 64

# Upper bound (exclusive) for encryptable amounts
U64_LIMIT = 2**64

PROOF_SIZES = MappingProxyType(
    {
        "RANGE_PROOF": 674,
        "VALIDITY_PROOF": 160,
        "EQUALITY_PROOF": 192,
        "WITHDRAW_PROOF": 80,
    }
)


class ProofKind(Enum):
    """Proof types and their wire sizes"""

    RANGE = "RANGE_PROOF"
    VALIDITY = "VALIDITY_PROOF"
    EQUALITY = "EQUALITY_PROOF"
    WITHDRAW = "WITHDRAW_PROOF"

    @property
    def size(self) -> int:
        return PROOF_SIZES[self.value]


def _require_size(name: str, data: bytes, size: int, error=InvalidInputSize) -> None:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"{name} must be bytes, got {type(data).__name__}")
    if len(data) != size:
        raise error(name, size, len(data))


@dataclass(frozen=True)
class ElGamalKeypair:
    """ElGamal keypair (public key is s^-1 * G)"""

    public_key: bytes
    secret_key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Validate keypair

        Raises:
            InvalidInputSize: wrong field length
            ValueError: secret not in [1, L-1] or public key does not match it
        """
        _require_size("public_key", self.public_key, POINT_SIZE)
        _require_size("secret_key", self.secret_key, SCALAR_SIZE)

        secret = int.from_bytes(self.secret_key, "little")
        if not 0 < secret < CURVE_ORDER:
            raise ValueError("Secret key must be a reduced nonzero scalar")
        if base_mult(invert_scalar(self.secret_key)) != bytes(self.public_key):
            raise ValueError("Public key does not match secret key")


@dataclass(frozen=True)
class PedersenCommitment:
    """Commitment v*H + r*G"""

    commitment: bytes

    def __post_init__(self) -> None:
        _require_size("commitment", self.commitment, POINT_SIZE, InvalidCiphertextSize)

    def to_hex(self) -> str:
        return self.commitment.hex()


@dataclass(frozen=True)
class DecryptHandle:
    """Handle r*P for recipient key P"""

    handle: bytes

    def __post_init__(self) -> None:
        _require_size("handle", self.handle, POINT_SIZE, InvalidCiphertextSize)


@dataclass(frozen=True)
class ElGamalCiphertext:
    """Twisted ElGamal ciphertext: Pedersen commitment plus decrypt handle"""

    commitment: PedersenCommitment
    handle: DecryptHandle

    @classmethod
    def from_points(cls, commitment: bytes, handle: bytes) -> "ElGamalCiphertext":
        return cls(PedersenCommitment(bytes(commitment)), DecryptHandle(bytes(handle)))

    def to_bytes(self) -> bytes:
        """64-byte wire form: commitment || handle"""
        return self.commitment.commitment + self.handle.handle

    @classmethod
    def from_bytes(cls, data: bytes) -> "ElGamalCiphertext":
        """Parse the 64-byte wire form"""
        _require_size("ciphertext", data, CIPHERTEXT_SIZE, InvalidCiphertextSize)
        return cls.from_points(data[:32], data[32:])

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, hex_str: str) -> "ElGamalCiphertext":
        return cls.from_bytes(bytes.fromhex(hex_str))

    def is_valid(self) -> bool:
        """True if both components decode to non-identity subgroup points"""
        return is_valid_point(self.commitment.commitment) and is_valid_point(
            self.handle.handle
        )


@dataclass(frozen=True)
class EncryptionResult:
    """Ciphertext plus the randomness needed for proofs"""

    ciphertext: ElGamalCiphertext
    randomness: bytes = field(repr=False)

    def __post_init__(self) -> None:
        _require_size("randomness", self.randomness, SCALAR_SIZE)

    def __iter__(self):
        # Allows `ciphertext, randomness = encrypt(...)`
        yield self.ciphertext
        yield self.randomness


@dataclass(frozen=True)
class _Proof:
    proof: bytes
    placeholder: bool = False

    kind = None  # type: Optional[ProofKind]

    def __post_init__(self) -> None:
        _require_size(f"{self.kind.value.lower()}", self.proof, self.kind.size)

    def to_hex(self) -> str:
        return self.proof.hex()


@dataclass(frozen=True)
class RangeProof(_Proof):
    """Proof that a committed value lies in [0, 2^64)"""

    commitment: bytes = b""

    kind = ProofKind.RANGE

    def __post_init__(self) -> None:
        super().__post_init__()
        _require_size("commitment", self.commitment, POINT_SIZE)


@dataclass(frozen=True)
class ValidityProof(_Proof):
    """Proof that a ciphertext is well formed for a public key"""

    kind = ProofKind.VALIDITY


@dataclass(frozen=True)
class EqualityProof(_Proof):
    """Proof that two ciphertexts differ by a known amount"""

    kind = ProofKind.EQUALITY


@dataclass(frozen=True)
class WithdrawProof(_Proof):
    """Proof that a ciphertext holds exactly a stated balance"""

    kind = ProofKind.WITHDRAW


@dataclass(frozen=True)
class TransferProof:
    """Range, validity and equality proofs for one transfer"""

    range_proof: RangeProof
    validity_proof: ValidityProof
    equality_proof: EqualityProof
    source_ciphertext: ElGamalCiphertext
    destination_ciphertext: ElGamalCiphertext

    @property
    def placeholder(self) -> bool:
        """True if any component came from the fallback prover"""
        return (
            self.range_proof.placeholder
            or self.validity_proof.placeholder
            or self.equality_proof.placeholder
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary"""
        return {
            "range_proof": self.range_proof.to_hex(),
            "validity_proof": self.validity_proof.to_hex(),
            "equality_proof": self.equality_proof.to_hex(),
            "source_ciphertext": self.source_ciphertext.to_hex(),
            "destination_ciphertext": self.destination_ciphertext.to_hex(),
            "placeholder": self.placeholder,
        }
