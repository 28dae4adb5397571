"""Test the acceleration bridge"""

import asyncio
import logging
import threading
import time
import types
from unittest.mock import MagicMock

import pytest

from obscura import bridge as bridge_module
from obscura.bridge import AccelerationBridge, BenchmarkResult, BridgeState, benchmark


class CountingImporter:
    """Importer that counts calls and can be slowed down"""

    def __init__(self, module=None, error=None, delay=0.0):
        self.module = module
        self.error = error
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, name):
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.module


class TestLoading:
    """Test module loading states"""

    def test_initial_state(self, native_bridge):
        assert native_bridge.state is BridgeState.UNLOADED
        assert not native_bridge.is_available()
        assert native_bridge.get_module() is None

    def test_load_success(self, native_bridge, native_module):
        assert native_bridge.load()
        assert native_bridge.state is BridgeState.LOADED
        assert native_bridge.get_module() is native_module
        assert native_bridge.load_error is None

    def test_load_missing(self, missing_bridge, caplog):
        with caplog.at_level(logging.INFO, logger="obscura.bridge"):
            assert not missing_bridge.load()
        assert missing_bridge.state is BridgeState.UNAVAILABLE
        assert isinstance(missing_bridge.load_error, ImportError)
        assert "not available" in caplog.text

    def test_failure_not_retried(self):
        importer = CountingImporter(error=ImportError("missing"))
        bridge = AccelerationBridge("fake", importer=importer)
        assert not bridge.load()
        assert not bridge.load()
        assert importer.calls == 1

    def test_reset_allows_retry(self):
        importer = CountingImporter(error=ImportError("missing"))
        bridge = AccelerationBridge("fake", importer=importer)
        bridge.load()

        importer.error = None
        importer.module = types.ModuleType("fake")
        bridge.reset()

        assert bridge.state is BridgeState.UNLOADED
        assert bridge.load()
        assert importer.calls == 2

    @pytest.mark.parametrize(
        "error",
        [OSError("wrong ELF class"), RuntimeError("raised at import time")],
    )
    def test_import_error_other_than_import_error(self, error, caplog):
        """Any import failure resolves to UNAVAILABLE instead of escaping"""
        importer = CountingImporter(error=error)
        bridge = AccelerationBridge("fake", importer=importer)

        with caplog.at_level(logging.WARNING, logger="obscura.bridge"):
            assert not bridge.load()

        assert bridge.state is BridgeState.UNAVAILABLE
        assert bridge.load_error is error
        assert str(error) in caplog.text
        assert not bridge.load()
        assert importer.calls == 1

    def test_import_error_then_fallback_dispatch(self):
        bridge = AccelerationBridge("fake", importer=CountingImporter(error=OSError("bad so")))
        bridge.load()
        assert bridge.with_fallback("anything", lambda: "python") == "python"

    def test_base_exception_does_not_leave_loading(self):
        bridge = AccelerationBridge("fake", importer=CountingImporter(error=KeyboardInterrupt()))
        with pytest.raises(KeyboardInterrupt):
            bridge.load()
        assert bridge.state is BridgeState.UNAVAILABLE

    def test_disabled(self, native_module):
        importer = CountingImporter(module=native_module)
        bridge = AccelerationBridge("fake", importer=importer, enabled=False)
        assert not bridge.load()
        assert bridge.state is BridgeState.UNAVAILABLE
        assert importer.calls == 0

    def test_init_called(self, module_factory, bridge_factory):
        init = MagicMock()
        bridge = bridge_factory(module_factory(init=init))
        assert bridge.load()
        init.assert_called_once_with()

    def test_init_failure(self, module_factory, bridge_factory, caplog):
        def init():
            raise RuntimeError("bad cpu")

        bridge = bridge_factory(module_factory(init=init))
        with caplog.at_level(logging.WARNING, logger="obscura.bridge"):
            assert not bridge.load()
        assert bridge.state is BridgeState.UNAVAILABLE
        assert "bad cpu" in str(bridge.load_error)
        assert "bad cpu" in caplog.text

    def test_reports_unavailable(self, module_factory, bridge_factory):
        bridge = bridge_factory(module_factory(is_available=lambda: False))
        assert not bridge.load()
        assert bridge.state is BridgeState.UNAVAILABLE

    def test_concurrent_threads_load_once(self, native_module):
        importer = CountingImporter(module=native_module, delay=0.05)
        bridge = AccelerationBridge("fake", importer=importer)
        results = []

        def worker():
            results.append(bridge.load())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results == [True] * 8
        assert importer.calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_async_load_once(self, native_module):
        importer = CountingImporter(module=native_module, delay=0.05)
        bridge = AccelerationBridge("fake", importer=importer)

        results = await asyncio.gather(*(bridge.load_async() for _ in range(5)))

        assert list(results) == [True] * 5
        assert importer.calls == 1
        assert bridge.state is BridgeState.LOADED


class TestDispatch:
    """Test native-or-fallback dispatch"""

    def test_uses_native(self, module_factory, bridge_factory):
        bridge = bridge_factory(module_factory(double=lambda x: x * 2))
        bridge.load()
        assert bridge.with_fallback("double", lambda x: -1, 21) == 42

    def test_accepts_callable(self, native_bridge):
        native_bridge.load()
        assert native_bridge.with_fallback(lambda x: "native", lambda x: "python", 1) == "native"

    def test_unloaded_uses_fallback(self, module_factory, bridge_factory):
        bridge = bridge_factory(module_factory(double=lambda x: x * 2))
        assert bridge.with_fallback("double", lambda x: -1, 21) == -1

    def test_missing_function_uses_fallback(self, native_bridge):
        native_bridge.load()
        assert not native_bridge.has_function("pedersen_commit")
        assert native_bridge.with_fallback("pedersen_commit", lambda: "python") == "python"

    def test_native_error_falls_back(self, module_factory, bridge_factory, caplog):
        def broken(x):
            raise RuntimeError("segfault averted")

        bridge = bridge_factory(module_factory(broken=broken))
        bridge.load()
        with caplog.at_level(logging.WARNING, logger="obscura.bridge"):
            assert bridge.with_fallback("broken", lambda x: x + 1, 1) == 2
        assert "segfault averted" in caplog.text

    def test_kwargs_forwarded(self, missing_bridge):
        missing_bridge.load()
        assert missing_bridge.with_fallback("f", lambda a, b=0: a + b, 1, b=2) == 3

    @pytest.mark.asyncio
    async def test_async_awaits_native(self, module_factory, bridge_factory):
        async def triple(x):
            return x * 3

        bridge = bridge_factory(module_factory(triple=triple))
        await bridge.load_async()
        assert await bridge.with_fallback_async("triple", lambda x: -1, 5) == 15

    @pytest.mark.asyncio
    async def test_async_error_falls_back(self, module_factory, bridge_factory):
        async def broken(x):
            raise ValueError("nope")

        async def fallback(x):
            return "python"

        bridge = bridge_factory(module_factory(broken=broken))
        bridge.load()
        assert await bridge.with_fallback_async("broken", fallback, 5) == "python"

    @pytest.mark.asyncio
    async def test_async_sync_fallback(self, missing_bridge):
        assert await missing_bridge.with_fallback_async("f", lambda: 7) == 7


class TestInfo:
    """Test bridge introspection"""

    def test_info_loaded(self, module_factory, bridge_factory):
        bridge = bridge_factory(module_factory(get_info=lambda: {"simd": True}))
        bridge.load()
        info = bridge.info()
        assert info["state"] == "loaded"
        assert info["available"] is True
        assert info["version"] == "9.9.9"
        assert info["native_info"] == {"simd": True}
        assert info["error"] is None

    def test_info_unavailable(self, missing_bridge):
        missing_bridge.load()
        info = missing_bridge.info()
        assert info["state"] == "unavailable"
        assert info["available"] is False
        assert info["version"] is None
        assert "obscura._missing" in info["error"]

    def test_has_function(self, native_bridge):
        native_bridge.load()
        assert native_bridge.has_function("generate_range_proof")
        assert not native_bridge.has_function("__version__")


class TestBenchmark:
    """Test timing helpers"""

    def test_benchmark(self):
        calls = []
        result = benchmark("noop", lambda: calls.append(1), iterations=5, warmup=2)
        assert isinstance(result, BenchmarkResult)
        assert result.iterations == 5
        assert len(calls) == 7
        assert result.min_ms <= result.mean_ms <= result.max_ms
        assert result.to_dict()["name"] == "noop"

    def test_benchmark_single_iteration(self):
        result = benchmark("once", lambda: None, iterations=1, warmup=0)
        assert result.stdev_ms == 0.0

    def test_benchmark_invalid_iterations(self):
        with pytest.raises(ValueError):
            benchmark("bad", lambda: None, iterations=0)

    def test_compare_with_native(self, module_factory, bridge_factory):
        bridge = bridge_factory(module_factory(fast=lambda: None))
        bridge.load()
        result = bridge.compare("op", "fast", lambda: time.sleep(0.001), iterations=3)
        assert result["native"] is not None
        assert result["fallback"].iterations == 3
        assert result["speedup"] > 0

    def test_compare_without_native(self, missing_bridge):
        missing_bridge.load()
        result = missing_bridge.compare("op", "fast", lambda: None, iterations=2)
        assert result["native"] is None
        assert result["speedup"] == 0.0


def test_default_bridge_is_shared(monkeypatch):
    monkeypatch.setattr(bridge_module, "_default_bridge", None)
    first = bridge_module.default_bridge()
    assert first is bridge_module.default_bridge()
    assert first.module_name == "obscura._native"
