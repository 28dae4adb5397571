"""
Confidential engine for Obscura

High-level API over keys, encryption, homomorphic algebra and proofs, with
the acceleration bridge and proof strategy injected.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from . import elgamal, keys
from .bridge import AccelerationBridge
from .config import EngineConfig
from .errors import AccelerationFailure
from .proofs import Prover, generate_transfer_proof, select_prover
from .types import (
    ElGamalCiphertext,
    ElGamalKeypair,
    EncryptionResult,
    EqualityProof,
    ProofKind,
    RangeProof,
    TransferProof,
    ValidityProof,
    WithdrawProof,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationRecord:
    """One profiled operation"""

    operation: str
    time_ms: float
    used_native: bool
    timestamp: float


class ConfidentialEngine:
    """
    Main entry point for confidential-amount operations

    Example:
        ```python
        engine = ConfidentialEngine()

        alice = engine.generate_keypair()
        bob = engine.generate_keypair()

        ciphertext, randomness = engine.encrypt(alice.public_key, 10_000)

        bundle = await engine.generate_transfer_proof(
            source_balance=10_000,
            transfer_amount=2_500,
            source_keypair=alice,
            dest_pubkey=bob.public_key,
        )
        ```
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        bridge: Optional[AccelerationBridge] = None,
        prover: Optional[Prover] = None,
    ):
        """
        Initialize engine

        Args:
            config: Engine configuration (defaults to EngineConfig())
            bridge: Acceleration bridge (a new one is built from config if omitted)
            prover: Proof strategy (selected from the bridge on first use if omitted)
        """
        self.config = config or EngineConfig()
        self.config.validate()
        self.bridge = bridge or AccelerationBridge(
            module_name=self.config.native_module,
            enabled=not self.config.disable_native,
        )
        self._prover = prover
        self._history: deque[OperationRecord] = deque(maxlen=self.config.history_limit)

    @property
    def prover(self) -> Prover:
        """Proof strategy, selected from the bridge on first access"""
        if self._prover is None:
            self._prover = select_prover(self.bridge, self.config.force_implementation)
            logger.info("Confidential engine using %s prover", self._prover.name)
        return self._prover

    async def _ensure_prover(self) -> Prover:
        # Import the native module off the event loop before selecting
        if self._prover is None and self.config.force_implementation != "fallback":
            await self.bridge.load_async()
        return self.prover

    # =========================================================================
    # Keys and encryption
    # =========================================================================

    def generate_keypair(self) -> ElGamalKeypair:
        """Generate a random ElGamal keypair"""
        start = time.perf_counter()
        keypair = keys.generate()
        self._record("keypair_generation", start, False)
        return keypair

    def derive_keypair(self, seed: bytes) -> ElGamalKeypair:
        """Derive an ElGamal keypair from a 32-byte seed"""
        return keys.derive(seed)

    def encrypt(self, public_key: bytes, value: int) -> EncryptionResult:
        """Encrypt an amount; returns (ciphertext, randomness)"""
        start = time.perf_counter()
        result = elgamal.encrypt(public_key, value)
        self._record("encryption", start, False)
        return result

    def encrypt_batch(
        self, values: Iterable[int], public_key: bytes
    ) -> list[EncryptionResult]:
        """Encrypt several amounts to one public key"""
        values = list(values)
        start = time.perf_counter()
        results = [elgamal.encrypt(public_key, value) for value in values]
        self._record("batch_encryption", start, False)
        return results

    def decrypt(
        self, secret_key: bytes, ciphertext: ElGamalCiphertext, max_value: int
    ) -> Optional[int]:
        """Decrypt by bounded search over [0, max_value]"""
        start = time.perf_counter()
        value = elgamal.decrypt(secret_key, ciphertext, max_value)
        self._record("decryption", start, False)
        return value

    # =========================================================================
    # Proofs
    # =========================================================================

    async def generate_range_proof(
        self, value: int, commitment: bytes, randomness: bytes
    ) -> RangeProof:
        """Range proof for a committed amount (674 bytes)"""
        prover = await self._ensure_prover()
        start = time.perf_counter()
        proof = await prover.generate_range_proof(value, commitment, randomness)
        elapsed = self._record("range_proof", start, not proof.placeholder)
        if self.config.enable_profiling and elapsed > self.config.range_proof_warn_ms:
            logger.warning(
                "Range proof generation took %.2fms (target: <%.0fms)",
                elapsed,
                self.config.range_proof_warn_ms,
            )
        return proof

    def should_batch(self, batch_size: int) -> bool:
        """Whether a batch this large goes to the native batch call"""
        return batch_size >= max(self.config.preferred_batch_size / 2, 2)

    async def generate_range_proofs_batch(
        self, requests: Iterable[tuple[int, bytes, bytes]]
    ) -> list[RangeProof]:
        """
        Range proofs for (value, commitment, randomness) tuples, in order

        Batches of at least half of config.preferred_batch_size (minimum 2)
        go to the native batch call when the prover supports it. A failing
        native batch is logged and regenerated one proof at a time.
        """
        requests = list(requests)
        prover = await self._ensure_prover()
        start = time.perf_counter()

        proofs = None
        if self.should_batch(len(requests)) and prover.supports_batch():
            try:
                proofs = await prover.generate_range_proofs_batch(requests)
            except AccelerationFailure as e:
                logger.warning(
                    "Native batch range proof generation failed, "
                    "falling back to sequential: %s",
                    e,
                )
        if proofs is None:
            proofs = [
                await prover.generate_range_proof(value, commitment, randomness)
                for value, commitment, randomness in requests
            ]

        used_native = bool(proofs) and not any(p.placeholder for p in proofs)
        self._record("batch_range_proof", start, used_native)
        return proofs

    async def generate_validity_proof(
        self, public_key: bytes, ciphertext: ElGamalCiphertext, randomness: bytes
    ) -> ValidityProof:
        """Validity proof for a ciphertext (160 bytes)"""
        prover = await self._ensure_prover()
        start = time.perf_counter()
        proof = await prover.generate_validity_proof(public_key, ciphertext, randomness)
        self._record("validity_proof", start, not proof.placeholder)
        return proof

    async def generate_equality_proof(
        self,
        source_ciphertext: ElGamalCiphertext,
        destination_ciphertext: ElGamalCiphertext,
        amount: int,
        source_randomness: bytes,
        destination_randomness: bytes,
    ) -> EqualityProof:
        """Equality proof between two ciphertexts (192 bytes)"""
        prover = await self._ensure_prover()
        start = time.perf_counter()
        proof = await prover.generate_equality_proof(
            source_ciphertext,
            destination_ciphertext,
            amount,
            source_randomness,
            destination_randomness,
        )
        self._record("equality_proof", start, not proof.placeholder)
        return proof

    async def generate_withdraw_proof(
        self, balance: int, keypair: ElGamalKeypair, ciphertext: ElGamalCiphertext
    ) -> WithdrawProof:
        """Withdraw proof for an encrypted balance (80 bytes)"""
        prover = await self._ensure_prover()
        start = time.perf_counter()
        proof = await prover.generate_withdraw_proof(balance, keypair, ciphertext)
        self._record("withdraw_proof", start, not proof.placeholder)
        return proof

    async def generate_transfer_proof(
        self,
        source_balance: int,
        transfer_amount: int,
        source_keypair: ElGamalKeypair,
        dest_pubkey: bytes,
    ) -> TransferProof:
        """Range, validity and equality proofs for one transfer, generated concurrently"""
        prover = await self._ensure_prover()
        start = time.perf_counter()
        bundle = await generate_transfer_proof(
            prover, source_balance, transfer_amount, source_keypair, dest_pubkey
        )
        self._record("transfer_proof", start, not bundle.placeholder)
        return bundle

    def uses_native(self, kind: ProofKind) -> bool:
        return self.prover.uses_native(kind)

    # =========================================================================
    # Profiling
    # =========================================================================

    def _record(self, operation: str, start: float, used_native: bool) -> float:
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s completed in %.2fms (native=%s)", operation, elapsed, used_native)
        if self.config.enable_profiling:
            self._history.append(
                OperationRecord(operation, elapsed, used_native, time.time())
            )
        return elapsed

    @property
    def performance_history(self) -> list[OperationRecord]:
        return list(self._history)

    def clear_performance_history(self) -> None:
        self._history.clear()

    def performance_stats(self) -> dict[str, Any]:
        """
        Summarize profiled operations

        Returns:
            Totals, average native/Python times, speedup and a per-operation
            breakdown of count, average time and native usage ratio
        """
        records = list(self._history)
        native = [r.time_ms for r in records if r.used_native]
        python = [r.time_ms for r in records if not r.used_native]

        stats: dict[str, Any] = {
            "total_operations": len(records),
            "native_operations": len(native),
            "python_operations": len(python),
            "average_native_ms": sum(native) / len(native) if native else 0.0,
            "average_python_ms": sum(python) / len(python) if python else 0.0,
            "native_speedup": 1.0,
            "operations": {},
        }
        if stats["average_native_ms"] > 0 and stats["average_python_ms"] > 0:
            stats["native_speedup"] = stats["average_python_ms"] / stats["average_native_ms"]

        groups: dict[str, list[OperationRecord]] = {}
        for record in records:
            groups.setdefault(record.operation, []).append(record)
        for operation, group in groups.items():
            stats["operations"][operation] = {
                "count": len(group),
                "average_ms": sum(r.time_ms for r in group) / len(group),
                "native_usage": sum(1 for r in group if r.used_native) / len(group),
            }
        return stats
