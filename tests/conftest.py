"""Shared fixtures"""

import types
from unittest.mock import MagicMock

import pytest

from obscura import keys
from obscura.bridge import AccelerationBridge
from obscura.types import PROOF_SIZES


def make_native_module(name: str = "fake_native", **overrides) -> types.ModuleType:
    """Stand-in for the compiled module with well-behaved proof functions"""
    module = types.ModuleType(name)
    module.__version__ = "9.9.9"
    module.generate_range_proof = MagicMock(
        return_value=bytes([1]) * PROOF_SIZES["RANGE_PROOF"]
    )
    module.generate_validity_proof = MagicMock(
        return_value=bytes([2]) * PROOF_SIZES["VALIDITY_PROOF"]
    )
    module.generate_equality_proof = MagicMock(
        return_value=bytes([3]) * PROOF_SIZES["EQUALITY_PROOF"]
    )
    module.generate_withdraw_proof = MagicMock(
        return_value=bytes([4]) * PROOF_SIZES["WITHDRAW_PROOF"]
    )
    for attr, value in overrides.items():
        if value is None:
            delattr(module, attr)
        else:
            setattr(module, attr, value)
    return module


def bridge_for(module: types.ModuleType) -> AccelerationBridge:
    return AccelerationBridge(module_name=module.__name__, importer=lambda name: module)


@pytest.fixture
def keypair():
    return keys.generate()


@pytest.fixture
def other_keypair():
    return keys.generate()


@pytest.fixture
def native_module():
    return make_native_module()


@pytest.fixture
def native_bridge(native_module):
    bridge = bridge_for(native_module)
    yield bridge
    bridge.reset()


@pytest.fixture
def missing_bridge():
    def importer(name):
        raise ImportError(f"No module named {name!r}")

    bridge = AccelerationBridge(module_name="obscura._missing", importer=importer)
    yield bridge
    bridge.reset()


@pytest.fixture
def module_factory():
    """Build fake native modules with selected functions replaced or removed"""
    return make_native_module


@pytest.fixture
def bridge_factory():
    return bridge_for
