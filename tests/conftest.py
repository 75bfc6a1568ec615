"""Shared fakes for the harness tests. No editor or display is needed."""

import itertools

import pytest

from editor_uitest import HarnessConfig


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that only records durations."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeClock:
    """Returns the given timestamps in order."""

    def __init__(self, *times):
        self._times = list(times)

    def __call__(self):
        return self._times.pop(0)


def counting_grabber():
    counter = itertools.count()
    return lambda: f"frame-{next(counter)}".encode()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def run_config(tmp_path):
    return HarnessConfig(
        artifact_root=tmp_path / "artifacts",
        settle_delay=3.0,
        poll_interval=2.0,
        startup_timeout=2.0,
        shutdown_timeout=2.0,
    )
