"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from presence_server.registry import PresenceRegistry  # noqa: E402
from presence_server.sweeper import EvictionSweeper  # noqa: E402


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    """Fake clock starting at a fixed time."""
    return FakeClock()


@pytest.fixture
def registry(clock):
    """Registry with default timings driven by the fake clock."""
    sweeper = EvictionSweeper(liveness_window_ms=2000, sweep_interval_ms=4000)
    return PresenceRegistry(sweeper=sweeper, clock=clock)


@pytest.fixture
def word_files(tmp_path):
    """Single-word lists so generated names are predictable."""
    adjectives = tmp_path / "adjectives.txt"
    nouns = tmp_path / "nouns.txt"
    adjectives.write_text("Sunny\r\n\r\n")
    nouns.write_text("Otter\n")
    return str(adjectives), str(nouns)
