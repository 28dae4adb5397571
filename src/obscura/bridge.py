"""
Acceleration bridge for the optional native crypto module

The native module (built separately, imported as ``obscura._native`` by
default) is loaded lazily, at most once per bridge:

    UNLOADED -> LOADING -> LOADED | UNAVAILABLE

Concurrent load requests wait for the in-flight load. A failed load is final
until reset(); every accelerated call afterwards takes the fallback path.
"""

import asyncio
import importlib
import inspect
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from statistics import mean, stdev
from types import ModuleType
from typing import Any, Callable, Optional, Union

from .config import DEFAULT_NATIVE_MODULE

logger = logging.getLogger(__name__)


class BridgeState(Enum):
    """Load state of the native module"""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class BenchmarkResult:
    """Timing summary for one benchmarked operation"""

    name: str
    iterations: int
    mean_ms: float
    stdev_ms: float
    min_ms: float
    max_ms: float

    @property
    def ops_per_sec(self) -> float:
        return 1000 / self.mean_ms if self.mean_ms > 0 else float("inf")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "iterations": self.iterations,
            "mean_ms": self.mean_ms,
            "stdev_ms": self.stdev_ms,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "ops_per_sec": self.ops_per_sec,
        }


def benchmark(
    name: str, func: Callable[[], Any], iterations: int = 100, warmup: int = 10
) -> BenchmarkResult:
    """
    Time a zero-argument callable

    Args:
        name: Label for the result
        func: Operation to time
        iterations: Timed runs
        warmup: Untimed runs first

    Returns:
        BenchmarkResult in milliseconds
    """
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    for _ in range(warmup):
        func()

    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        func()
        times.append((time.perf_counter() - start) * 1000)

    return BenchmarkResult(
        name=name,
        iterations=iterations,
        mean_ms=mean(times),
        stdev_ms=stdev(times) if len(times) > 1 else 0.0,
        min_ms=min(times),
        max_ms=max(times),
    )


class AccelerationBridge:
    """
    Lazily loads the native module and routes calls to it

    Example:
        ```python
        bridge = AccelerationBridge()
        if bridge.load():
            module = bridge.get_module()

        commitment = bridge.with_fallback(
            "pedersen_commit", python_commit, value, blinding
        )
        ```
    """

    def __init__(
        self,
        module_name: str = DEFAULT_NATIVE_MODULE,
        importer: Optional[Callable[[str], ModuleType]] = None,
        enabled: bool = True,
    ):
        """
        Initialize bridge

        Args:
            module_name: Import path of the native module
            importer: Import function (defaults to importlib.import_module)
            enabled: If False, loading always resolves to UNAVAILABLE
        """
        self.module_name = module_name
        self.enabled = enabled
        self._importer = importer or importlib.import_module
        self._lock = threading.Lock()
        self._state = BridgeState.UNLOADED
        self._module: Optional[ModuleType] = None
        self._load_error: Optional[BaseException] = None

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def load_error(self) -> Optional[BaseException]:
        """Exception that made the module unavailable, if any"""
        return self._load_error

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self) -> bool:
        """
        Load the native module once

        Returns:
            True if the module is loaded and usable
        """
        if self._state in (BridgeState.LOADED, BridgeState.UNAVAILABLE):
            return self._state is BridgeState.LOADED

        with self._lock:
            # Another caller may have finished while we waited
            if self._state is BridgeState.UNLOADED:
                self._state = BridgeState.LOADING
                module = None
                try:
                    module = self._load_module()
                finally:
                    # Never left in LOADING, even on BaseException
                    self._module = module
                    self._state = (
                        BridgeState.LOADED
                        if module is not None
                        else BridgeState.UNAVAILABLE
                    )
        return self._state is BridgeState.LOADED

    async def load_async(self) -> bool:
        """Load without blocking the event loop"""
        if self._state in (BridgeState.LOADED, BridgeState.UNAVAILABLE):
            return self._state is BridgeState.LOADED
        return await asyncio.to_thread(self.load)

    def _load_module(self) -> Optional[ModuleType]:
        if not self.enabled:
            logger.info("Native crypto module disabled by configuration")
            return None

        try:
            module = self._importer(self.module_name)
        except ImportError as e:
            self._load_error = e
            logger.info(
                "Native crypto module %s not available (%s); using Python fallback",
                self.module_name,
                e,
            )
            return None
        except Exception as e:
            # Broken shared object or a module that raises at import time
            self._load_error = e
            logger.warning(
                "Failed to import native crypto module %s: %s; "
                "falling back to Python implementations",
                self.module_name,
                e,
            )
            return None

        try:
            init = getattr(module, "init", None)
            if callable(init):
                init()
            is_available = getattr(module, "is_available", None)
            if callable(is_available) and not is_available():
                raise RuntimeError("native module reports itself unavailable")
        except Exception as e:
            self._load_error = e
            logger.warning(
                "Failed to initialize native crypto module %s: %s; "
                "falling back to Python implementations",
                self.module_name,
                e,
            )
            return None

        logger.info("Native crypto module %s loaded", self.module_name)
        return module

    def reset(self) -> None:
        """Forget the cached module (test isolation)"""
        with self._lock:
            self._state = BridgeState.UNLOADED
            self._module = None
            self._load_error = None

    # =========================================================================
    # Queries
    # =========================================================================

    def is_available(self) -> bool:
        """True once the module has loaded successfully (does not trigger a load)"""
        return self._state is BridgeState.LOADED

    def get_module(self) -> Optional[ModuleType]:
        """Loaded module, or None"""
        return self._module if self._state is BridgeState.LOADED else None

    def has_function(self, name: str) -> bool:
        module = self.get_module()
        return module is not None and callable(getattr(module, name, None))

    def info(self) -> dict[str, Any]:
        """Describe the bridge and, when loaded, the native module"""
        result: dict[str, Any] = {
            "module": self.module_name,
            "state": self._state.value,
            "available": self.is_available(),
            "version": None,
            "error": str(self._load_error) if self._load_error else None,
        }
        module = self.get_module()
        if module is not None:
            result["version"] = getattr(module, "__version__", None)
            get_info = getattr(module, "get_info", None)
            if callable(get_info):
                result["native_info"] = get_info()
        return result

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _resolve(self, native_fn: Union[str, Callable, None]) -> Optional[Callable]:
        if not self.is_available() or native_fn is None:
            return None
        if isinstance(native_fn, str):
            fn = getattr(self._module, native_fn, None)
            return fn if callable(fn) else None
        return native_fn

    def with_fallback(
        self,
        native_fn: Union[str, Callable, None],
        fallback_fn: Callable,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """
        Call the native function if available, else the fallback

        Any exception from the native call is logged and answered with the
        fallback; native errors never reach the caller.

        Args:
            native_fn: Native callable, or the name of a module function
            fallback_fn: Python implementation with the same signature
        """
        fn = self._resolve(native_fn)
        if fn is not None:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    "Native call %s failed, falling back: %s",
                    getattr(fn, "__name__", native_fn),
                    e,
                )
        return fallback_fn(*args, **kwargs)

    async def with_fallback_async(
        self,
        native_fn: Union[str, Callable, None],
        fallback_fn: Callable,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Async variant of with_fallback; awaits results that are awaitable"""
        fn = self._resolve(native_fn)
        if fn is not None:
            try:
                result = fn(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as e:
                logger.warning(
                    "Native call %s failed, falling back: %s",
                    getattr(fn, "__name__", native_fn),
                    e,
                )
        result = fallback_fn(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def compare(
        self,
        name: str,
        native_fn: Union[str, Callable],
        fallback_fn: Callable[[], Any],
        iterations: int = 10,
    ) -> dict[str, Any]:
        """
        Benchmark the native and fallback versions of one operation

        Args:
            name: Operation label
            native_fn: Native callable or module function name (zero-argument)
            fallback_fn: Zero-argument fallback

        Returns:
            Dict with "native" and "fallback" BenchmarkResults (native is None
            when unavailable or failing) and "speedup"
        """
        fallback_result = benchmark(f"{name} (python)", fallback_fn, iterations, warmup=1)

        native_result = None
        fn = self._resolve(native_fn)
        if fn is not None:
            try:
                native_result = benchmark(f"{name} (native)", fn, iterations, warmup=1)
            except Exception as e:
                logger.warning("Native benchmark %s failed: %s", name, e)

        speedup = 0.0
        if native_result is not None and native_result.mean_ms > 0:
            speedup = fallback_result.mean_ms / native_result.mean_ms
        return {"native": native_result, "fallback": fallback_result, "speedup": speedup}


_default_bridge: Optional[AccelerationBridge] = None
_default_lock = threading.Lock()


def default_bridge() -> AccelerationBridge:
    """Process-wide bridge for callers that do not inject their own"""
    global _default_bridge
    with _default_lock:
        if _default_bridge is None:
            _default_bridge = AccelerationBridge()
        return _default_bridge
