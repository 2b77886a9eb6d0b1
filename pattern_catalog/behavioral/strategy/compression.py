"""
Interchangeable compression algorithms from the standard library.
"""

import bz2
import gzip
import lzma
import time
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ...exceptions import UnsupportedTypeException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class CompressionResult:
    algorithm: str
    data: bytes
    original_size: int
    compressed_size: int
    elapsed_ms: float

    @property
    def ratio(self) -> float:
        """Compressed size as a fraction of the original (lower is better)."""
        if not self.original_size:
            return 1.0
        return round(self.compressed_size / self.original_size, 4)

    @property
    def savings_percent(self) -> float:
        return round((1 - self.ratio) * 100, 2)


class CompressionStrategy(ABC):
    name: str = ""

    @abstractmethod
    def compress(self, data: bytes) -> bytes: ...

    @abstractmethod
    def decompress(self, data: bytes) -> bytes: ...


class NoCompression(CompressionStrategy):
    name = "none"

    def compress(self, data: bytes) -> bytes:
        return bytes(data)

    def decompress(self, data: bytes) -> bytes:
        return bytes(data)


class ZlibStrategy(CompressionStrategy):
    name = "zlib"

    def __init__(self, level: int = 6):
        self.level = level

    def compress(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)

    def decompress(self, data: bytes) -> bytes:
        return zlib.decompress(data)


class GzipStrategy(CompressionStrategy):
    name = "gzip"

    def __init__(self, level: int = 9):
        self.level = level

    def compress(self, data: bytes) -> bytes:
        # mtime=0 keeps the output reproducible
        return gzip.compress(data, compresslevel=self.level, mtime=0)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


class Bz2Strategy(CompressionStrategy):
    name = "bz2"

    def compress(self, data: bytes) -> bytes:
        return bz2.compress(data)

    def decompress(self, data: bytes) -> bytes:
        return bz2.decompress(data)


class LzmaStrategy(CompressionStrategy):
    name = "lzma"

    def compress(self, data: bytes) -> bytes:
        return lzma.compress(data)

    def decompress(self, data: bytes) -> bytes:
        return lzma.decompress(data)


STRATEGIES: Dict[str, Callable[[], CompressionStrategy]] = {
    "none": NoCompression,
    "zlib": ZlibStrategy,
    "gzip": GzipStrategy,
    "bz2": Bz2Strategy,
    "lzma": LzmaStrategy,
}


def get_strategy(name: str) -> CompressionStrategy:
    if name not in STRATEGIES:
        raise UnsupportedTypeException("compression", name, STRATEGIES)
    return STRATEGIES[name]()


class Compressor:
    def __init__(self, strategy: Optional[CompressionStrategy] = None, timer: Callable[[], float] = time.perf_counter):
        self.strategy = strategy or ZlibStrategy()
        self._timer = timer

    def set_strategy(self, strategy: CompressionStrategy) -> None:
        self.strategy = strategy

    def compress(self, data: bytes) -> CompressionResult:
        if not isinstance(data, (bytes, bytearray)):
            raise ValidationException("data", type(data).__name__, "must be bytes")
        start = self._timer()
        compressed = self.strategy.compress(bytes(data))
        elapsed_ms = (self._timer() - start) * 1000
        result = CompressionResult(self.strategy.name, compressed, len(data), len(compressed), round(elapsed_ms, 3))
        logger.debug(
            "Compressed payload",
            algorithm=result.algorithm,
            original=result.original_size,
            compressed=result.compressed_size,
            ratio=result.ratio,
        )
        return result

    def decompress(self, result: CompressionResult) -> bytes:
        return get_strategy(result.algorithm).decompress(result.data)


def choose_strategy(data: bytes, priority: str = "speed") -> CompressionStrategy:
    """
    Pick an algorithm for ``data``.

    ``speed`` favours zlib (or no compression for tiny payloads), ``ratio``
    tries every algorithm and keeps the smallest output.
    """
    if priority == "speed":
        return NoCompression() if len(data) < 64 else ZlibStrategy(level=1)
    if priority == "ratio":
        results = {name: len(factory().compress(data)) for name, factory in STRATEGIES.items()}
        best = min(results, key=results.get)
        logger.debug("Best ratio strategy", chosen=best, sizes=results)
        return get_strategy(best)
    raise UnsupportedTypeException("priority", priority, ["ratio", "speed"])


def sample_payload() -> bytes:
    lines = [f'{{"id": {i}, "event": "page_view", "path": "/products/{i % 7}"}}' for i in range(400)]
    return "\n".join(lines).encode()


@demo(
    "strategy.compression",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Swap compression algorithms and pick one by priority",
)
def run_demo() -> None:
    payload = sample_payload()
    compressor = Compressor()
    print(f"Payload: {len(payload):,} bytes of JSON lines\n")
    for name in STRATEGIES:
        compressor.set_strategy(get_strategy(name))
        result = compressor.compress(payload)
        intact = compressor.decompress(result) == payload
        print(
            f"  {name:<5} {result.compressed_size:>7,} bytes  ratio {result.ratio:<7} "
            f"{result.elapsed_ms:.2f} ms  round-trip {'ok' if intact else 'BROKEN'}"
        )

    print(f"\nFor speed: {choose_strategy(payload, 'speed').name}")
    print(f"For ratio: {choose_strategy(payload, 'ratio').name}")
    print(f"Tiny payload for speed: {choose_strategy(b'ok', 'speed').name}")


if __name__ == "__main__":
    run_module(run_demo)
