"""
Proof generation for confidential transfers

Two interchangeable provers:

- AcceleratedProver calls the native module. Expected native functions
  (each may return bytes or an awaitable resolving to bytes):

      generate_range_proof(value, commitment, randomness) -> 674 bytes
      generate_validity_proof(public_key, commitment, handle, randomness) -> 160 bytes
      generate_equality_proof(source_ciphertext, destination_ciphertext,
                              amount, source_randomness, destination_randomness) -> 192 bytes
      generate_withdraw_proof(balance, public_key, secret_key, ciphertext) -> 80 bytes
      batch_generate_range_proofs([(value, commitment, randomness), ...])
          -> sequence of 674-byte proofs, one per request (optional)

  Ciphertexts are passed in their 64-byte wire form.

- FallbackProver expands a hash of the inputs to the right size.

    WARNING: fallback proofs are NOT zero-knowledge proofs and prove nothing.
    They are well-formed placeholders for development and tests. Never submit
    them to a verifier that performs real cryptographic checks. Every proof
    value records which path produced it in its ``placeholder`` flag.

- verify_*_proof functions check the structure of proof bytes received from
  the wire (exact size, not all zero, decodable commitment). They do not
  check the proof mathematics: a placeholder proof passes them and still
  proves nothing.
"""

import asyncio
import hashlib
import inspect
import logging
import secrets
import warnings
from abc import ABC, abstractmethod
from types import ModuleType
from typing import Iterable, Optional, Sequence

from .bridge import AccelerationBridge
from .curve import is_valid_point
from .elgamal import encrypt, validate_amount
from .errors import (
    AccelerationFailure,
    InsufficientBalance,
    InvalidInputSize,
    PlaceholderProofWarning,
)
from .types import (
    CIPHERTEXT_SIZE,
    POINT_SIZE,
    SCALAR_SIZE,
    ElGamalCiphertext,
    ElGamalKeypair,
    EqualityProof,
    ProofKind,
    RangeProof,
    TransferProof,
    ValidityProof,
    WithdrawProof,
)

logger = logging.getLogger(__name__)

NATIVE_FUNCTIONS = {
    ProofKind.RANGE: "generate_range_proof",
    ProofKind.VALIDITY: "generate_validity_proof",
    ProofKind.EQUALITY: "generate_equality_proof",
    ProofKind.WITHDRAW: "generate_withdraw_proof",
}

# Optional native batch entry point for range proofs
NATIVE_BATCH_RANGE_PROOFS = "batch_generate_range_proofs"

FALLBACK_DOMAINS = {
    ProofKind.RANGE: b"obscura/fallback/range-proof/v1",
    ProofKind.VALIDITY: b"obscura/fallback/validity-proof/v1",
    ProofKind.EQUALITY: b"obscura/fallback/equality-proof/v1",
    ProofKind.WITHDRAW: b"obscura/fallback/withdraw-proof/v1",
}


def _check_bytes(name: str, data: bytes, size: int) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes, got {type(data).__name__}")
    if len(data) != size:
        raise InvalidInputSize(name, size, len(data))
    return bytes(data)


def _check_ciphertext(name: str, ciphertext: ElGamalCiphertext) -> bytes:
    return _check_bytes(name, ciphertext.to_bytes(), CIPHERTEXT_SIZE)


def expand_transcript(domain: bytes, size: int, *parts: bytes) -> bytes:
    """
    Expand length-prefixed parts into `size` bytes with counter-mode SHA-256

    Block i is SHA-256(domain || i || transcript).
    """
    transcript = b"".join(len(part).to_bytes(4, "little") + part for part in parts)
    output = bytearray()
    counter = 0
    while len(output) < size:
        output += hashlib.sha256(
            domain + counter.to_bytes(4, "little") + transcript
        ).digest()
        counter += 1
    return bytes(output[:size])


class Prover(ABC):
    """
    Proof generation strategy

    Public methods validate inputs; subclasses only build proof bytes.
    """

    name = "abstract"

    def uses_native(self, kind: ProofKind) -> bool:
        """Whether proofs of this kind are produced by native code"""
        return False

    async def generate_range_proof(
        self, value: int, commitment: bytes, randomness: bytes
    ) -> RangeProof:
        """
        Generate a range proof for a committed amount

        Args:
            value: Committed amount in [0, 2^64)
            commitment: Pedersen commitment (32 bytes)
            randomness: Commitment blinding scalar (32 bytes)

        Returns:
            674-byte RangeProof carrying the commitment
        """
        validate_amount(value)
        commitment = _check_bytes("commitment", commitment, POINT_SIZE)
        randomness = _check_bytes("randomness", randomness, SCALAR_SIZE)
        proof, placeholder = await self._range_proof(value, commitment, randomness)
        return RangeProof(proof=proof, placeholder=placeholder, commitment=commitment)

    def supports_batch(self) -> bool:
        """Whether range proofs can be generated in one native batch call"""
        return False

    async def generate_range_proofs_batch(
        self, requests: Iterable[tuple[int, bytes, bytes]]
    ) -> list[RangeProof]:
        """
        Generate range proofs for (value, commitment, randomness) tuples

        Every request is validated before any proof is generated.

        Returns:
            RangeProofs in request order
        """
        checked = []
        for value, commitment, randomness in requests:
            validate_amount(value)
            checked.append(
                (
                    value,
                    _check_bytes("commitment", commitment, POINT_SIZE),
                    _check_bytes("randomness", randomness, SCALAR_SIZE),
                )
            )
        results = await self._range_proofs_batch(checked)
        return [
            RangeProof(proof=proof, placeholder=placeholder, commitment=request[1])
            for request, (proof, placeholder) in zip(checked, results)
        ]

    async def _range_proofs_batch(self, requests) -> list[tuple[bytes, bool]]:
        return [await self._range_proof(*request) for request in requests]

    async def generate_validity_proof(
        self, public_key: bytes, ciphertext: ElGamalCiphertext, randomness: bytes
    ) -> ValidityProof:
        """
        Generate a proof that a ciphertext is well formed for a public key

        Args:
            public_key: Recipient public key (32 bytes)
            ciphertext: Ciphertext encrypted to public_key
            randomness: Encryption randomness (32 bytes)

        Returns:
            160-byte ValidityProof
        """
        public_key = _check_bytes("public_key", public_key, POINT_SIZE)
        _check_ciphertext("ciphertext", ciphertext)
        randomness = _check_bytes("randomness", randomness, SCALAR_SIZE)
        proof, placeholder = await self._validity_proof(public_key, ciphertext, randomness)
        return ValidityProof(proof=proof, placeholder=placeholder)

    async def generate_equality_proof(
        self,
        source_ciphertext: ElGamalCiphertext,
        destination_ciphertext: ElGamalCiphertext,
        amount: int,
        source_randomness: bytes,
        destination_randomness: bytes,
    ) -> EqualityProof:
        """
        Generate a proof relating two ciphertexts by a public amount

        Returns:
            192-byte EqualityProof
        """
        validate_amount(amount, "amount")
        _check_ciphertext("source_ciphertext", source_ciphertext)
        _check_ciphertext("destination_ciphertext", destination_ciphertext)
        source_randomness = _check_bytes("source_randomness", source_randomness, SCALAR_SIZE)
        destination_randomness = _check_bytes(
            "destination_randomness", destination_randomness, SCALAR_SIZE
        )
        proof, placeholder = await self._equality_proof(
            source_ciphertext,
            destination_ciphertext,
            amount,
            source_randomness,
            destination_randomness,
        )
        return EqualityProof(proof=proof, placeholder=placeholder)

    async def generate_withdraw_proof(
        self, balance: int, keypair: ElGamalKeypair, ciphertext: ElGamalCiphertext
    ) -> WithdrawProof:
        """
        Generate a proof that the holder can account for `balance`

        Args:
            balance: Claimed balance in [0, 2^64)
            keypair: Holder's keypair
            ciphertext: Encrypted balance

        Returns:
            80-byte WithdrawProof
        """
        validate_amount(balance, "balance")
        _check_bytes("public_key", keypair.public_key, POINT_SIZE)
        _check_bytes("secret_key", keypair.secret_key, SCALAR_SIZE)
        _check_ciphertext("ciphertext", ciphertext)
        proof, placeholder = await self._withdraw_proof(balance, keypair, ciphertext)
        return WithdrawProof(proof=proof, placeholder=placeholder)

    @abstractmethod
    async def _range_proof(self, value, commitment, randomness) -> tuple[bytes, bool]:
        ...

    @abstractmethod
    async def _validity_proof(self, public_key, ciphertext, randomness) -> tuple[bytes, bool]:
        ...

    @abstractmethod
    async def _equality_proof(
        self, source, destination, amount, source_randomness, destination_randomness
    ) -> tuple[bytes, bool]:
        ...

    @abstractmethod
    async def _withdraw_proof(self, balance, keypair, ciphertext) -> tuple[bytes, bool]:
        ...


class FallbackProver(Prover):
    """
    Placeholder proofs from a domain-separated hash expansion

    Output has the exact wire size and mixes in 32 fresh random bytes, but
    carries NO soundness. Use only where no real verifier checks it.
    """

    name = "fallback"

    def __init__(self, warn: bool = True):
        if warn:
            warnings.warn(
                "Using placeholder proofs: fallback proofs are not "
                "zero-knowledge proofs and will not pass a real verifier",
                PlaceholderProofWarning,
                stacklevel=2,
            )

    @staticmethod
    def _expand(kind: ProofKind, *parts: bytes) -> tuple[bytes, bool]:
        nonce = secrets.token_bytes(32)
        return expand_transcript(FALLBACK_DOMAINS[kind], kind.size, *parts, nonce), True

    async def _range_proof(self, value, commitment, randomness):
        return self._expand(
            ProofKind.RANGE, value.to_bytes(8, "little"), commitment, randomness
        )

    async def _validity_proof(self, public_key, ciphertext, randomness):
        return self._expand(
            ProofKind.VALIDITY, public_key, ciphertext.to_bytes(), randomness
        )

    async def _equality_proof(
        self, source, destination, amount, source_randomness, destination_randomness
    ):
        return self._expand(
            ProofKind.EQUALITY,
            source.to_bytes(),
            destination.to_bytes(),
            amount.to_bytes(8, "little"),
            source_randomness,
            destination_randomness,
        )

    async def _withdraw_proof(self, balance, keypair, ciphertext):
        return self._expand(
            ProofKind.WITHDRAW,
            balance.to_bytes(8, "little"),
            keypair.public_key,
            keypair.secret_key,
            ciphertext.to_bytes(),
        )


class AcceleratedProver(Prover):
    """
    Proofs from the native module

    Kinds the module does not implement are served by a FallbackProver. Once
    a native call is attempted, errors and wrong-sized results raise
    AccelerationFailure instead of falling through.
    """

    name = "native"

    def __init__(self, module: ModuleType, fallback: Optional[Prover] = None):
        self.module = module
        self._fallback = fallback

    def uses_native(self, kind: ProofKind) -> bool:
        return callable(getattr(self.module, NATIVE_FUNCTIONS[kind], None))

    @property
    def fallback(self) -> Prover:
        if self._fallback is None:
            self._fallback = FallbackProver()
        return self._fallback

    def supports_batch(self) -> bool:
        return callable(getattr(self.module, NATIVE_BATCH_RANGE_PROOFS, None))

    @staticmethod
    def _check_result(fn_name: str, kind: ProofKind, result) -> bytes:
        if not isinstance(result, (bytes, bytearray, memoryview)):
            raise AccelerationFailure(
                f"Native {fn_name} returned {type(result).__name__}, expected bytes"
            )
        result = bytes(result)
        if len(result) != kind.size:
            raise AccelerationFailure(
                f"Native {fn_name} returned {len(result)} bytes, expected {kind.size}"
            )
        return result

    async def _invoke(self, fn_name: str, *args):
        fn = getattr(self.module, fn_name)
        try:
            result = fn(*args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            raise AccelerationFailure(f"Native {fn_name} failed: {e}") from e
        return result

    async def _call_native(self, kind: ProofKind, *args) -> tuple[bytes, bool]:
        fn_name = NATIVE_FUNCTIONS[kind]
        result = await self._invoke(fn_name, *args)
        return self._check_result(fn_name, kind, result), False

    async def _range_proofs_batch(self, requests):
        if not self.supports_batch():
            return await super()._range_proofs_batch(requests)
        results = await self._invoke(NATIVE_BATCH_RANGE_PROOFS, list(requests))
        if not isinstance(results, Sequence) or isinstance(results, (bytes, str)):
            raise AccelerationFailure(
                f"Native {NATIVE_BATCH_RANGE_PROOFS} returned "
                f"{type(results).__name__}, expected a sequence of proofs"
            )
        if len(results) != len(requests):
            raise AccelerationFailure(
                f"Native {NATIVE_BATCH_RANGE_PROOFS} returned {len(results)} proofs "
                f"for {len(requests)} requests"
            )
        return [
            (self._check_result(NATIVE_BATCH_RANGE_PROOFS, ProofKind.RANGE, result), False)
            for result in results
        ]

    async def _range_proof(self, value, commitment, randomness):
        if not self.uses_native(ProofKind.RANGE):
            return await self.fallback._range_proof(value, commitment, randomness)
        return await self._call_native(ProofKind.RANGE, value, commitment, randomness)

    async def _validity_proof(self, public_key, ciphertext, randomness):
        if not self.uses_native(ProofKind.VALIDITY):
            return await self.fallback._validity_proof(public_key, ciphertext, randomness)
        return await self._call_native(
            ProofKind.VALIDITY,
            public_key,
            ciphertext.commitment.commitment,
            ciphertext.handle.handle,
            randomness,
        )

    async def _equality_proof(
        self, source, destination, amount, source_randomness, destination_randomness
    ):
        if not self.uses_native(ProofKind.EQUALITY):
            return await self.fallback._equality_proof(
                source, destination, amount, source_randomness, destination_randomness
            )
        return await self._call_native(
            ProofKind.EQUALITY,
            source.to_bytes(),
            destination.to_bytes(),
            amount,
            source_randomness,
            destination_randomness,
        )

    async def _withdraw_proof(self, balance, keypair, ciphertext):
        if not self.uses_native(ProofKind.WITHDRAW):
            return await self.fallback._withdraw_proof(balance, keypair, ciphertext)
        return await self._call_native(
            ProofKind.WITHDRAW,
            balance,
            keypair.public_key,
            keypair.secret_key,
            ciphertext.to_bytes(),
        )


def select_prover(bridge: AccelerationBridge, force: str = "auto") -> Prover:
    """
    Pick a prover from the bridge's capabilities

    Args:
        bridge: Acceleration bridge (loaded here if needed)
        force: "auto", "native" or "fallback"

    Raises:
        AccelerationFailure: force="native" but the module is unavailable
    """
    if force == "fallback":
        return FallbackProver()
    if force not in ("auto", "native"):
        raise ValueError(f"Unknown implementation: {force!r}")

    if bridge.load():
        logger.debug("Selected native prover from %s", bridge.module_name)
        return AcceleratedProver(bridge.get_module())
    if force == "native":
        raise AccelerationFailure(
            f"Native module {bridge.module_name} requested but unavailable"
        )
    return FallbackProver()


async def generate_transfer_proof(
    prover: Prover,
    source_balance: int,
    transfer_amount: int,
    source_keypair: ElGamalKeypair,
    dest_pubkey: bytes,
) -> TransferProof:
    """
    Generate range, validity and equality proofs for one transfer

    Encrypts the remaining balance to the source key and the transfer amount
    to the destination key, then generates the three proofs concurrently.

    Args:
        prover: Proof strategy
        source_balance: Current plaintext balance of the source
        transfer_amount: Amount to move
        source_keypair: Source ElGamal keypair
        dest_pubkey: Destination ElGamal public key

    Raises:
        InsufficientBalance: transfer_amount > source_balance (checked before
            any encryption or proof work)
    """
    validate_amount(source_balance, "source_balance")
    validate_amount(transfer_amount, "transfer_amount")
    if transfer_amount > source_balance:
        raise InsufficientBalance(source_balance, transfer_amount)

    remaining = source_balance - transfer_amount
    source = encrypt(source_keypair.public_key, remaining)
    destination = encrypt(dest_pubkey, transfer_amount)

    range_proof, validity_proof, equality_proof = await asyncio.gather(
        prover.generate_range_proof(
            remaining, source.ciphertext.commitment.commitment, source.randomness
        ),
        prover.generate_validity_proof(
            dest_pubkey, destination.ciphertext, destination.randomness
        ),
        prover.generate_equality_proof(
            source.ciphertext,
            destination.ciphertext,
            transfer_amount,
            source.randomness,
            destination.randomness,
        ),
    )

    return TransferProof(
        range_proof=range_proof,
        validity_proof=validity_proof,
        equality_proof=equality_proof,
        source_ciphertext=source.ciphertext,
        destination_ciphertext=destination.ciphertext,
    )


# =============================================================================
# Structural verification
# =============================================================================


def _well_formed(data: bytes, kind: ProofKind) -> bool:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return False
    data = bytes(data)
    if len(data) != kind.size:
        logger.debug("%s has %d bytes, expected %d", kind.value, len(data), kind.size)
        return False
    return any(data)


def verify_range_proof(proof: bytes, commitment: bytes) -> bool:
    """
    Check that range proof bytes are well formed

    Structural only: exact size, not all zero, and a commitment that decodes
    to a valid non-identity point. It does not check that the committed
    value is in range; placeholder proofs pass.

    Args:
        proof: Proof bytes as received (674 bytes expected)
        commitment: Pedersen commitment the proof is about

    Returns:
        True if the proof and commitment are well formed
    """
    if not _well_formed(proof, ProofKind.RANGE):
        return False
    return isinstance(commitment, (bytes, bytearray)) and is_valid_point(bytes(commitment))


def verify_validity_proof(proof: bytes) -> bool:
    """Structural check of validity proof bytes (160 bytes, not all zero)"""
    return _well_formed(proof, ProofKind.VALIDITY)


def verify_equality_proof(proof: bytes) -> bool:
    """Structural check of equality proof bytes (192 bytes, not all zero)"""
    return _well_formed(proof, ProofKind.EQUALITY)


def verify_withdraw_proof(proof: bytes) -> bool:
    """Structural check of withdraw proof bytes (80 bytes, not all zero)"""
    return _well_formed(proof, ProofKind.WITHDRAW)
