"""
Shared test fixtures.

Every test runs with simulated latency switched off, a seeded random
generator, and freshly reset singletons.
"""

import pytest

from pattern_catalog.config import settings
from pattern_catalog.creational.singleton.application_logger import reset_application_logger
from pattern_catalog.creational.singleton.cache_manager import reset_cache_manager
from pattern_catalog.creational.singleton.configuration_manager import ConfigurationManager
from pattern_catalog.creational.singleton.database_manager import reset_database_manager
from pattern_catalog.creational.singleton.event_bus import reset_event_bus
from pattern_catalog.simulation import reset_random

TEST_SEED = 1234


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def fast_deterministic_runtime(monkeypatch):
    """Disable simulated latency, seed randomness and reset singletons."""
    monkeypatch.setattr(settings, "LATENCY_SCALE", 0.0)
    monkeypatch.setattr(settings, "RANDOM_SEED", TEST_SEED)
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)
    reset_random(TEST_SEED)

    yield

    reset_application_logger()
    reset_cache_manager()
    reset_event_bus()
    reset_database_manager()
    ConfigurationManager.reset_instance()


@pytest.fixture
def fake_clock():
    """Provide a controllable clock."""
    return FakeClock()
