"""
Pytest configuration and fixtures for embedded-kafka tests.

This module provides:
- A fake Kafka distribution built from shell scripts
- Settings pointing at it with a short startup wait
- A recording diagnostic sink
- Marker registration
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

from embedded_kafka.settings import HarnessSettings
from fake_kafka import STATE_ENV, build_fake_kafka

FAKE_STARTUP_WAIT = 0.5
FAKE_BASE_PORT = 21000


class RecordingSink:
    """Collects (event, fields) pairs."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def names(self) -> List[str]:
        return [event for event, _ in self.events]

    def output(self) -> str:
        return "".join(
            str(fields.get("text", "")) for event, fields in self.events if event == "broker.output"
        )


@pytest.fixture
def state_dir(tmp_path: Path, monkeypatch) -> Path:
    """Directory where the fake scripts leave their notes."""
    state = tmp_path / "state"
    state.mkdir()
    monkeypatch.setenv(STATE_ENV, str(state))
    return state


@pytest.fixture
def fake_kafka_home(tmp_path: Path, state_dir: Path) -> Path:
    if sys.platform == "win32":
        pytest.skip("fake Kafka distribution uses POSIX shell scripts")
    return build_fake_kafka(tmp_path / "kafka")


@pytest.fixture
def settings(fake_kafka_home: Path) -> HarnessSettings:
    return HarnessSettings(
        kafka_home=fake_kafka_home,
        base_port=FAKE_BASE_PORT,
        startup_wait=FAKE_STARTUP_WAIT,
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: needs a real Kafka distribution"
    )
