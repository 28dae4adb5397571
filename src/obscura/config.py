"""Engine configuration"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_NATIVE_MODULE = "obscura._native"

IMPLEMENTATIONS = ("auto", "native", "fallback")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class EngineConfig:
    """Configuration for ConfidentialEngine"""

    force_implementation: str = "auto"
    native_module: str = DEFAULT_NATIVE_MODULE
    disable_native: bool = False
    enable_profiling: bool = True
    history_limit: int = 1000
    range_proof_warn_ms: float = 50.0
    preferred_batch_size: int = 10

    def validate(self) -> None:
        """Validate configuration"""
        if self.force_implementation not in IMPLEMENTATIONS:
            raise ValueError(
                f"force_implementation must be one of {IMPLEMENTATIONS}, "
                f"got {self.force_implementation!r}"
            )
        if not self.native_module:
            raise ValueError("native_module must not be empty")
        if self.history_limit <= 0:
            raise ValueError("history_limit must be positive")
        if self.preferred_batch_size <= 0:
            raise ValueError("preferred_batch_size must be positive")
        if self.range_proof_warn_ms < 0:
            raise ValueError("range_proof_warn_ms must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build configuration from environment variables

        Reads OBSCURA_FORCE_IMPLEMENTATION, OBSCURA_NATIVE_MODULE,
        OBSCURA_DISABLE_NATIVE and OBSCURA_ENABLE_PROFILING.
        """
        env = os.environ if environ is None else environ
        config = cls()
        if "OBSCURA_FORCE_IMPLEMENTATION" in env:
            config.force_implementation = env["OBSCURA_FORCE_IMPLEMENTATION"].lower()
        if env.get("OBSCURA_NATIVE_MODULE"):
            config.native_module = env["OBSCURA_NATIVE_MODULE"]
        if "OBSCURA_DISABLE_NATIVE" in env:
            config.disable_native = env["OBSCURA_DISABLE_NATIVE"].lower() in _TRUE_VALUES
        if "OBSCURA_ENABLE_PROFILING" in env:
            config.enable_profiling = (
                env["OBSCURA_ENABLE_PROFILING"].lower() in _TRUE_VALUES
            )
        config.validate()
        return config
