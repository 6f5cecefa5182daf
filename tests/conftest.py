"""
Shared pytest fixtures and configuration for MathPractice tests.

This file is automatically discovered by pytest and provides
fixtures available to all tests.
"""

import random
import sys
from pathlib import Path

import pytest

# Make the package importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from mathpractice.engine.generator import ProblemGenerator  # noqa: E402
from mathpractice.engine.level_manager import LevelManager  # noqa: E402
from mathpractice.engine.notifications import NotificationChannel, RecordingListener  # noqa: E402
from mathpractice.engine.rewards import RewardEngine  # noqa: E402
from mathpractice.errors import PersistenceError  # noqa: E402
from mathpractice.models.settings import ExerciseSettings  # noqa: E402
from mathpractice.utils.persistence import InMemoryStore, KeyValueStore  # noqa: E402
from mathpractice.utils.progress import InMemoryProgressStore, ProgressStore  # noqa: E402


class FailingStore(KeyValueStore):
    """Store whose every operation fails, simulating an unreachable backend."""

    def load(self, key):
        raise PersistenceError("store unreachable", key=key)

    def save(self, key, payload):
        raise PersistenceError("store unreachable", key=key)

    def delete(self, key):
        raise PersistenceError("store unreachable", key=key)


class FailingProgressStore(ProgressStore):
    def save(self, entry):
        raise PersistenceError("progress backend down")

    def history(self, operation_id=None):
        return []

    def clear(self):
        pass


@pytest.fixture
def rng():
    """Seeded random source for reproducible generation and rewards."""
    return random.Random(1234)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def progress_store():
    return InMemoryProgressStore()


@pytest.fixture
def failing_progress_store():
    return FailingProgressStore()


@pytest.fixture
def channel():
    return NotificationChannel()


@pytest.fixture
def listener(channel):
    """Recording listener subscribed to every event on the channel."""
    recorder = RecordingListener()
    channel.subscribe(recorder)
    return recorder


@pytest.fixture
def generator(rng):
    return ProblemGenerator("addition", rng=rng)


@pytest.fixture
def level_manager(store, channel):
    return LevelManager(store, "child-1", "addition", channel=channel, adaptive=True)


@pytest.fixture
def reward_engine(store, channel, rng):
    return RewardEngine(store, "child-1", channel=channel, rng=rng)


@pytest.fixture
def make_settings():
    """
    Factory for ExerciseSettings.

    Defaults favour deterministic sessions: no rewards, no time limit.
    """

    def _make(**overrides):
        values = {
            "problem_count": 3,
            "max_attempts": 2,
            "time_value": 0,
            "enable_adaptive_difficulty": False,
            "enable_rewards": False,
        }
        values.update(overrides)
        return ExerciseSettings(**values)

    return _make


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Mark tests in integration/ directory
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
