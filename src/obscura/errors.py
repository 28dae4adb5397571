"""Exception types for Obscura"""


class ObscuraError(Exception):
    """Base error for the confidential-amount core"""


class InvalidInputSize(ObscuraError, ValueError):
    """A fixed-width byte field has the wrong length"""

    def __init__(self, field: str, expected: int, actual: int):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"{field} must be {expected} bytes, got {actual}")


class InvalidCiphertextSize(InvalidInputSize):
    """A ciphertext component is not 32 bytes"""


class InvalidSeedLength(InvalidInputSize):
    """Derivation seed is not 32 bytes"""


class ValueOutOfRange(ObscuraError, ValueError):
    """Amount outside [0, 2^64)"""


class InvalidSeed(ObscuraError, ValueError):
    """Seed could not produce a keypair"""


class InvalidDerivedKey(InvalidSeed):
    """Derivation produced a zero scalar or identity public key"""


class InsufficientBalance(ObscuraError, ValueError):
    """Transfer or withdrawal exceeds the available balance"""

    def __init__(self, balance: int, amount: int):
        self.balance = balance
        self.amount = amount
        super().__init__(f"Insufficient balance: {amount} requested, {balance} available")


class AccelerationFailure(ObscuraError, RuntimeError):
    """Native module raised or returned a malformed result"""


class PointDecodeFailure(ObscuraError, ValueError):
    """Bytes are not a valid, non-identity curve point"""


class PlaceholderProofWarning(UserWarning):
    """Issued when proofs come from the non-sound fallback construction"""
