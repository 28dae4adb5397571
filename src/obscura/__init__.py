"""
Obscura - Confidential amount encryption for Solana

Twisted ElGamal over Ed25519 with Pedersen commitments, homomorphic
ciphertext arithmetic and proof generation for hidden-balance transfers.
An optional native module accelerates proof generation when installed.
"""

__version__ = "0.1.0"

from .bridge import AccelerationBridge, BridgeState, default_bridge
from .config import EngineConfig
from .elgamal import (
    MAX_DECRYPTABLE_VALUE,
    DecryptionTable,
    decrypt,
    decrypt_signed,
    encrypt,
    encrypt_with_randomness,
)
from .engine import ConfidentialEngine
from .errors import (
    AccelerationFailure,
    InsufficientBalance,
    InvalidCiphertextSize,
    InvalidDerivedKey,
    InvalidInputSize,
    InvalidSeed,
    InvalidSeedLength,
    ObscuraError,
    PlaceholderProofWarning,
    PointDecodeFailure,
    ValueOutOfRange,
)
from .homomorphic import add, rerandomize, scale, subtract
from .keys import derive, derive_for_account, generate
from .proofs import (
    AcceleratedProver,
    FallbackProver,
    Prover,
    select_prover,
    verify_equality_proof,
    verify_range_proof,
    verify_validity_proof,
    verify_withdraw_proof,
)
from .types import (
    PROOF_SIZES,
    DecryptHandle,
    ElGamalCiphertext,
    ElGamalKeypair,
    EncryptionResult,
    EqualityProof,
    PedersenCommitment,
    RangeProof,
    TransferProof,
    ValidityProof,
    WithdrawProof,
)
from .utils import address_to_public_key, public_key_to_address

__all__ = [
    # Main engine
    "ConfidentialEngine",
    "EngineConfig",
    # Keys and encryption
    "generate",
    "derive",
    "derive_for_account",
    "encrypt",
    "encrypt_with_randomness",
    "decrypt",
    "decrypt_signed",
    "DecryptionTable",
    "MAX_DECRYPTABLE_VALUE",
    # Homomorphic algebra
    "add",
    "subtract",
    "scale",
    "rerandomize",
    # Proofs
    "Prover",
    "AcceleratedProver",
    "FallbackProver",
    "select_prover",
    "verify_range_proof",
    "verify_validity_proof",
    "verify_equality_proof",
    "verify_withdraw_proof",
    # Acceleration
    "AccelerationBridge",
    "BridgeState",
    "default_bridge",
    # Types
    "PROOF_SIZES",
    "ElGamalKeypair",
    "PedersenCommitment",
    "DecryptHandle",
    "ElGamalCiphertext",
    "EncryptionResult",
    "RangeProof",
    "ValidityProof",
    "EqualityProof",
    "WithdrawProof",
    "TransferProof",
    # Errors
    "ObscuraError",
    "InvalidInputSize",
    "InvalidCiphertextSize",
    "InvalidSeedLength",
    "ValueOutOfRange",
    "InvalidSeed",
    "InvalidDerivedKey",
    "InsufficientBalance",
    "AccelerationFailure",
    "PointDecodeFailure",
    "PlaceholderProofWarning",
    # Utilities
    "public_key_to_address",
    "address_to_public_key",
    # Module info
    "__version__",
]
