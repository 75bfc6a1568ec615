"""
Test 04: Scenario Context

Verifies the exhaustion sequence (error screenshot, flush, close, raise)
and the flush-on-exit behaviour of a Scenario.
"""

import pytest

from editor_uitest.config import Category
from editor_uitest.errors import PollExhausted
from editor_uitest.failure_capture import ScreenshotSession
from editor_uitest.harness import Scenario

from conftest import FakeClock, counting_grabber


class FakeLauncher:
    """Records what was on disk each time the scenario closed its editors."""

    def __init__(self, artifact_root):
        self.artifact_root = artifact_root
        self.closes = []

    async def close_all(self):
        found = self.artifact_root.rglob("*.png") if self.artifact_root.exists() else []
        self.closes.append(sorted(p.name for p in found))


def make_scenario(config, sleeper, *times, grabber=None):
    screenshots = ScreenshotSession(
        config,
        Category.CREATE,
        grabber=grabber or counting_grabber(),
        clock=FakeClock(*times),
        sleep=sleeper,
    )
    launcher = FakeLauncher(config.artifact_root)
    return Scenario(config, launcher=launcher, screenshots=screenshots, sleep=sleeper), launcher


async def never():
    return False


@pytest.mark.asyncio
async def test_exhaustion_captures_flushes_then_closes(run_config, sleeper):
    scenario, launcher = make_scenario(run_config, sleeper, 1.0, 2.0)
    scenario.set_dir("create_project")
    await scenario.capture("start.png")

    with pytest.raises(PollExhausted, match="Template list never appeared"):
        await scenario.poll(2, never, "Template list never appeared", interval=0.1)

    assert launcher.closes == [["0_start.png", "1_error.png"]]
    assert sleeper.calls == [3.0, 0.1, 0.1, 3.0]


@pytest.mark.asyncio
async def test_successful_poll_takes_no_screenshot(run_config, sleeper):
    scenario, launcher = make_scenario(run_config, sleeper)
    scenario.set_dir("create_project")

    async def ready():
        return True

    result = await scenario.poll(3, ready, "msg")

    assert result.attempts == 1
    assert sleeper.calls == [run_config.poll_interval]
    assert len(scenario.screenshots) == 0
    assert launcher.closes == []


@pytest.mark.asyncio
async def test_editors_closed_even_if_error_capture_fails(run_config, sleeper):

    def broken_grabber():
        raise OSError("no display")

    scenario, launcher = make_scenario(run_config, sleeper, grabber=broken_grabber)
    scenario.set_dir("create_project")

    with pytest.raises(PollExhausted) as info:
        await scenario.poll(1, never, "msg", interval=0)

    assert isinstance(info.value.__cause__, OSError)
    assert launcher.closes == [[]]


@pytest.mark.asyncio
async def test_context_exit_flushes_on_failure(run_config, sleeper):
    scenario, launcher = make_scenario(run_config, sleeper, 1.0)

    with pytest.raises(AssertionError):
        async with scenario:
            scenario.set_dir("emit")
            await scenario.capture("emit.png")
            raise AssertionError("generated files differ")

    assert launcher.closes == [["0_emit.png"]]


@pytest.mark.asyncio
async def test_category_and_dir_pass_through(run_config, sleeper):
    scenario, _ = make_scenario(run_config, sleeper)
    scenario.set_category(Category.IMPORT)
    name = scenario.set_dir("import_openapi")

    assert scenario.get_dir() == f"ImportTypeSpecFromOpenAPI3/{name}"


def test_injected_collaborators_are_used(run_config, sleeper):
    session = ScreenshotSession(run_config, Category.EMIT, grabber=counting_grabber(), sleep=sleeper)
    launcher = FakeLauncher(run_config.artifact_root)

    scenario = Scenario(run_config, launcher=launcher, screenshots=session)

    assert len(session) == 0
    assert scenario.screenshots is session
    assert scenario.launcher is launcher
    assert scenario.screenshots.category is Category.EMIT


@pytest.mark.asyncio
async def test_exhaustion_frame_lands_in_injected_session(run_config, sleeper):
    scenario, _ = make_scenario(run_config, sleeper, 1.0)
    session = scenario.screenshots
    session.set_dir("create_project")

    with pytest.raises(PollExhausted):
        await scenario.poll(1, never, "msg", interval=0)

    assert len(session) == 1
    assert session.frames[-1].full_path.endswith("error.png")
    assert session.frames[-1].data == b"frame-0"


@pytest.mark.asyncio
async def test_capture_returns_frame(run_config, sleeper):
    scenario, _ = make_scenario(run_config, sleeper, 7.0)
    scenario.set_dir("create_project")

    frame = await scenario.capture("start.png")

    assert frame is scenario.screenshots.frames[0]
    assert frame.timestamp == 7.0
