"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Iterator, Optional

import pytest  # type: ignore[import-not-found]

from to_concentrate.core.clock import Clock
from to_concentrate.core.stages import Notification, Stage, StageSequencer


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


class FakeClock(Clock):
    """Clock whose time only moves when a test advances it."""

    def __init__(self, start: float = 1000.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def wait_until(self, condition: threading.Condition, deadline: Optional[float]) -> bool:
        # Poll in short real-time slices so advance() is noticed by the timer thread
        condition.wait(timeout=0.01)
        return deadline is not None and self.now() >= deadline


class RecordingSink:
    """Notification sink remembering every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Optional[str]]] = []
        self.event = threading.Event()

    def __call__(self, summary: str, body: Optional[str] = None) -> None:
        self.calls.append((summary, body))
        self.event.set()

    @property
    def summaries(self) -> list[str]:
        return [summary for summary, _ in self.calls]


def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    """Provide the polling helper to tests."""
    return _wait_for


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    """Create a recording notification sink."""
    return RecordingSink()


@pytest.fixture
def sequencer() -> StageSequencer:
    """Sequencer with short, distinct stage durations."""
    return StageSequencer(
        durations={
            Stage.PREPARATION: 10,
            Stage.CONCENTRATION: 20,
            Stage.RELAXATION: 5,
        },
        notifications={
            Stage.PREPARATION: Notification("Preparation done", "Start concentrating"),
            Stage.CONCENTRATION: Notification("Concentration done", "Have a rest"),
            Stage.RELAXATION: Notification("Relaxation done"),
        },
    )


@pytest.fixture
def config_data() -> dict:
    """Configuration file content with short durations."""
    return {
        "duration": {"preparation": 10, "concentration": 20, "relaxation": 5},
        "notification": {
            "preparation": {"summary": "Preparation done", "body": "Start concentrating"},
            "concentration": {"summary": "Concentration done", "body": "Have a rest"},
            "relaxation": {"summary": "Relaxation done", "body": None},
        },
    }


@pytest.fixture
def runtime_dir() -> Iterator[Path]:
    """Short-lived runtime directory.

    pytest's tmp_path can exceed the length limit for Unix socket paths.
    """
    path = Path(tempfile.mkdtemp(prefix="tc-"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def socket_path(runtime_dir: Path) -> Path:
    """Control socket path inside the runtime directory."""
    return runtime_dir / "daemon.sock"
