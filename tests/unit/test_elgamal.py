"""Test twisted ElGamal encryption and decryption"""

import pytest

from obscura import curve, elgamal
from obscura.elgamal import (
    DecryptionTable,
    decrypt,
    decrypt_signed,
    encrypt,
    encrypt_with_randomness,
)
from obscura.errors import InvalidCiphertextSize, PointDecodeFailure, ValueOutOfRange
from obscura.homomorphic import subtract
from obscura.types import ElGamalCiphertext


class TestEncrypt:
    """Test encryption"""

    @pytest.mark.parametrize("value", [0, 1, 42, 1000])
    def test_round_trip(self, keypair, value):
        ciphertext, _ = encrypt(keypair.public_key, value)
        assert decrypt(keypair.secret_key, ciphertext, 1000) == value

    def test_commitment_opens(self, keypair):
        """C = v*H + r*G"""
        ciphertext, randomness = encrypt(keypair.public_key, 25)
        expected = curve.point_add(elgamal.value_point(25), curve.base_mult(randomness))
        assert ciphertext.commitment.commitment == expected

    def test_handle(self, keypair):
        """D = r*P"""
        ciphertext, randomness = encrypt(keypair.public_key, 25)
        assert ciphertext.handle.handle == curve.scalar_mult(randomness, keypair.public_key)

    def test_fresh_randomness(self, keypair):
        first, _ = encrypt(keypair.public_key, 5)
        second, _ = encrypt(keypair.public_key, 5)
        assert first != second

    def test_max_u64_encrypts(self, keypair):
        result = encrypt(keypair.public_key, 2**64 - 1)
        assert result.ciphertext.is_valid()

    @pytest.mark.parametrize("value", [-1, 2**64])
    def test_out_of_range(self, keypair, value):
        with pytest.raises(ValueOutOfRange):
            encrypt(keypair.public_key, value)

    @pytest.mark.parametrize("value", [1.5, "10", True])
    def test_non_int_rejected(self, keypair, value):
        with pytest.raises(TypeError):
            encrypt(keypair.public_key, value)

    def test_identity_public_key_rejected(self):
        with pytest.raises(PointDecodeFailure):
            encrypt(curve.IDENTITY, 1)

    def test_short_public_key_rejected(self, keypair):
        with pytest.raises(ValueError):
            encrypt(keypair.public_key[:31], 1)

    def test_result_unpacks(self, keypair):
        result = encrypt(keypair.public_key, 3)
        ciphertext, randomness = result
        assert ciphertext is result.ciphertext
        assert randomness is result.randomness


class TestEncryptWithRandomness:
    """Test deterministic encryption"""

    def test_reproducible(self, keypair):
        randomness = bytes([9]) * 32
        first = encrypt_with_randomness(keypair.public_key, 77, randomness)
        second = encrypt_with_randomness(keypair.public_key, 77, randomness)
        assert first.ciphertext.to_bytes() == second.ciphertext.to_bytes()

    def test_randomness_reduced(self, keypair):
        unreduced = (curve.CURVE_ORDER + 3).to_bytes(32, "little")
        result = encrypt_with_randomness(keypair.public_key, 1, unreduced)
        assert result.randomness == curve.scalar_from_int(3)

    def test_zero_randomness_rejected(self, keypair):
        with pytest.raises(ValueError, match="nonzero"):
            encrypt_with_randomness(keypair.public_key, 1, bytes(32))

    def test_group_order_randomness_rejected(self, keypair):
        order = curve.CURVE_ORDER.to_bytes(32, "little")
        with pytest.raises(ValueError):
            encrypt_with_randomness(keypair.public_key, 1, order)

    def test_wrong_randomness_size(self, keypair):
        with pytest.raises(ValueError):
            encrypt_with_randomness(keypair.public_key, 1, bytes(16))


class TestDecrypt:
    """Test bounded decryption"""

    def test_above_bound_returns_none(self, keypair):
        ciphertext, _ = encrypt(keypair.public_key, 101)
        assert decrypt(keypair.secret_key, ciphertext, 100) is None

    def test_bound_inclusive(self, keypair):
        ciphertext, _ = encrypt(keypair.public_key, 100)
        assert decrypt(keypair.secret_key, ciphertext, 100) == 100

    def test_wrong_key(self, keypair, other_keypair):
        ciphertext, _ = encrypt(keypair.public_key, 12)
        assert decrypt(other_keypair.secret_key, ciphertext, 200) is None

    def test_max_value_required(self, keypair):
        ciphertext, _ = encrypt(keypair.public_key, 1)
        with pytest.raises(TypeError):
            decrypt(keypair.secret_key, ciphertext)

    @pytest.mark.parametrize("bound", [-1, None, 2.0])
    def test_invalid_bound(self, keypair, bound):
        ciphertext, _ = encrypt(keypair.public_key, 1)
        with pytest.raises(ValueError):
            decrypt(keypair.secret_key, ciphertext, bound)

    def test_identity_ciphertext_is_zero(self, keypair):
        """Subtracting a ciphertext from itself decrypts to 0"""
        ciphertext, _ = encrypt(keypair.public_key, 9)
        difference = subtract(ciphertext, ciphertext)
        assert not difference.is_valid()
        assert decrypt(keypair.secret_key, difference, 10) == 0

    def test_wire_round_trip(self, keypair):
        ciphertext, _ = encrypt(keypair.public_key, 64)
        restored = ElGamalCiphertext.from_hex(ciphertext.to_hex())
        assert restored == ciphertext
        assert decrypt(keypair.secret_key, restored, 100) == 64

    @pytest.mark.parametrize("length", [63, 65])
    def test_wire_wrong_size(self, length):
        with pytest.raises(InvalidCiphertextSize):
            ElGamalCiphertext.from_bytes(bytes(length))


class TestDecryptSigned:
    """Test decryption of possibly-negative differences"""

    def test_negative_difference(self, keypair):
        small, _ = encrypt(keypair.public_key, 3)
        large, _ = encrypt(keypair.public_key, 10)
        difference = subtract(small, large)
        assert decrypt(keypair.secret_key, difference, 100) is None
        assert decrypt_signed(keypair.secret_key, difference, 100) == -7

    def test_positive_difference(self, keypair):
        small, _ = encrypt(keypair.public_key, 3)
        large, _ = encrypt(keypair.public_key, 10)
        assert decrypt_signed(keypair.secret_key, subtract(large, small), 100) == 7

    def test_out_of_bound(self, keypair):
        small, _ = encrypt(keypair.public_key, 0)
        large, _ = encrypt(keypair.public_key, 50)
        assert decrypt_signed(keypair.secret_key, subtract(small, large), 10) is None


class TestDecryptionTable:
    """Test baby-step giant-step decryption"""

    @pytest.mark.parametrize("value", [0, 1, 99, 100, 4321, 10_000])
    def test_decrypt(self, keypair, value):
        table = DecryptionTable(max_value=10_000)
        ciphertext, _ = encrypt(keypair.public_key, value)
        assert table.decrypt(keypair.secret_key, ciphertext) == value

    def test_above_bound(self, keypair):
        table = DecryptionTable(max_value=10_000)
        ciphertext, _ = encrypt(keypair.public_key, 10_001)
        assert table.decrypt(keypair.secret_key, ciphertext) is None

    def test_table_size(self):
        assert len(DecryptionTable(max_value=10_000)) == 101

    def test_reusable_across_keys(self, keypair, other_keypair):
        table = DecryptionTable(max_value=500)
        first, _ = encrypt(keypair.public_key, 123)
        second, _ = encrypt(other_keypair.public_key, 456)
        assert table.decrypt(keypair.secret_key, first) == 123
        assert table.decrypt(other_keypair.secret_key, second) == 456

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            DecryptionTable(max_value=-5)
