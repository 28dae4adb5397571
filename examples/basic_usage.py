"""
Basic usage example for Obscura
"""

import asyncio
import logging

from solders.keypair import Keypair

from obscura import ConfidentialEngine, DecryptionTable, add, derive_for_account, subtract


async def main():
    logging.basicConfig(level=logging.INFO)

    # Initialize engine (uses the native module when installed)
    engine = ConfidentialEngine()

    print("=== Obscura Confidential Amounts Demo ===\n")

    # Per-token-account keys for two wallets
    token_account = str(Keypair().pubkey())
    alice = derive_for_account(Keypair().pubkey(), token_account)
    bob = derive_for_account(Keypair().pubkey(), token_account)
    print(f"Alice ElGamal key: {alice.public_key.hex()[:16]}...")
    print(f"Bob ElGamal key:   {bob.public_key.hex()[:16]}...")

    # 1. Encrypt Alice's starting balance
    print("\n1. Encrypting balance...")
    alice_balance, _ = engine.encrypt(alice.public_key, 10_000)
    print(f"   Ciphertext: {alice_balance.to_hex()[:32]}...")

    # 2. Transfer proof
    print("\n2. Generating transfer proof...")
    bundle = await engine.generate_transfer_proof(
        source_balance=10_000,
        transfer_amount=2_500,
        source_keypair=alice,
        dest_pubkey=bob.public_key,
    )
    print(f"   Range proof:    {len(bundle.range_proof.proof)} bytes")
    print(f"   Validity proof: {len(bundle.validity_proof.proof)} bytes")
    print(f"   Equality proof: {len(bundle.equality_proof.proof)} bytes")
    if bundle.placeholder:
        print("   (placeholder proofs: native module not installed)")

    # 3. Homomorphic balance update
    print("\n3. Updating balances homomorphically...")
    sent, _ = engine.encrypt(alice.public_key, 2_500)
    alice_balance = subtract(alice_balance, sent)
    bob_balance = add(engine.encrypt(bob.public_key, 0).ciphertext, bundle.destination_ciphertext)

    table = DecryptionTable(max_value=1_000_000)
    print(f"   Alice: {table.decrypt(alice.secret_key, alice_balance)}")
    print(f"   Bob:   {table.decrypt(bob.secret_key, bob_balance)}")

    # 4. Withdraw proof
    print("\n4. Generating withdraw proof...")
    withdraw = await engine.generate_withdraw_proof(2_500, bob, bob_balance)
    print(f"   Withdraw proof: {len(withdraw.proof)} bytes")

    print("\n=== Demo Complete ===")
    stats = engine.performance_stats()
    print(f"\nOperations: {stats['total_operations']} "
          f"(native: {stats['native_operations']}, python: {stats['python_operations']})")


if __name__ == "__main__":
    asyncio.run(main())
