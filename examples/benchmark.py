"""
Benchmark example for Obscura

Measures performance of cryptographic operations and, when the native module
is installed, compares it against the Python fallback.
"""

import asyncio

from obscura import keys
from obscura.bridge import BenchmarkResult, benchmark, default_bridge
from obscura.elgamal import DecryptionTable, decrypt, encrypt
from obscura.homomorphic import add
from obscura.proofs import FallbackProver


def report(result: BenchmarkResult):
    """Print benchmark results"""
    print(f"{result.name}:")
    print(f"  Average: {result.mean_ms:.3f} ms")
    print(f"  Std Dev: {result.stdev_ms:.3f} ms")
    print(f"  Min/Max: {result.min_ms:.3f} / {result.max_ms:.3f} ms")
    print(f"  Ops/sec: {result.ops_per_sec:.1f}")
    print()


def main():
    print("=== Obscura Benchmark ===\n")
    print("Running cryptographic operation benchmarks...\n")

    # Setup
    keypair = keys.generate()
    amount = 1000
    ciphertext, randomness = encrypt(keypair.public_key, amount)
    other, _ = encrypt(keypair.public_key, 1)

    report(benchmark("Keypair Generation", keys.generate))
    report(benchmark("Encryption", lambda: encrypt(keypair.public_key, amount)))
    report(benchmark("Homomorphic Add", lambda: add(ciphertext, other)))
    report(
        benchmark(
            "Linear Decryption (v=1000)",
            lambda: decrypt(keypair.secret_key, ciphertext, 10_000),
            iterations=20,
        )
    )

    table = DecryptionTable(max_value=1_000_000)
    report(
        benchmark(
            "Table Decryption (bound 10^6)",
            lambda: table.decrypt(keypair.secret_key, ciphertext),
        )
    )

    prover = FallbackProver()
    commitment = ciphertext.commitment.commitment
    report(
        benchmark(
            "Range Proof (fallback)",
            lambda: asyncio.run(prover.generate_range_proof(amount, commitment, randomness)),
        )
    )

    bridge = default_bridge()
    if bridge.load():
        module = bridge.get_module()
        comparison = bridge.compare(
            "Range Proof",
            lambda: module.generate_range_proof(amount, commitment, randomness),
            lambda: asyncio.run(prover.generate_range_proof(amount, commitment, randomness)),
            iterations=50,
        )
        report(comparison["native"])
        print(f"Native speedup: {comparison['speedup']:.1f}x\n")
    else:
        print(f"Native module unavailable: {bridge.info()['error']}\n")

    print("=== Benchmark Complete ===")
    print("\nNote: fallback proofs are placeholders, not zero-knowledge proofs.")


if __name__ == "__main__":
    main()
