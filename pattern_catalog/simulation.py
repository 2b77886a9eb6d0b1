"""
Latency and randomness helpers for mock collaborators.

Every simulated delay is multiplied by ``settings.LATENCY_SCALE`` so tests
and quick runs can switch sleeping off, and every random draw goes through
one shared ``random.Random`` seeded from ``settings.RANDOM_SEED``.
"""

import asyncio
import random
import time
from typing import Optional

from .config import settings

_rng: Optional[random.Random] = None


def _scaled_seconds(ms: float) -> float:
    return max(0.0, ms * settings.LATENCY_SCALE / 1000)


async def simulate_latency(ms: float) -> None:
    """Sleep asynchronously for ``ms`` milliseconds, scaled by settings."""
    seconds = _scaled_seconds(ms)
    if seconds > 0:
        await asyncio.sleep(seconds)


def simulate_latency_sync(ms: float) -> None:
    """Blocking variant of :func:`simulate_latency`."""
    seconds = _scaled_seconds(ms)
    if seconds > 0:
        time.sleep(seconds)


def get_random() -> random.Random:
    """Return the process-wide random generator."""
    global _rng
    if _rng is None:
        _rng = random.Random(settings.RANDOM_SEED)
    return _rng


def reset_random(seed: Optional[int] = None) -> random.Random:
    """Recreate the shared generator, seeded with ``seed`` or the configured seed."""
    global _rng
    _rng = random.Random(seed if seed is not None else settings.RANDOM_SEED)
    return _rng


def generate_id(prefix: str) -> str:
    """Generate a short random identifier such as ``txn_3f9a01c2``."""
    return f"{prefix}_{get_random().getrandbits(32):08x}"
