"""
harness.py - Per-scenario context tying launch, polling and screenshots together

A Scenario owns one screenshot buffer and the editors it launched. Step
helpers receive it explicitly instead of reaching for module globals:

    async with Scenario(config, Category.CREATE) as scenario:
        scenario.set_dir("create_by_command")
        app = await scenario.launch(workspace_path=workspace)
        await scenario.poll(3, template_listed, "Template list never appeared")
        await scenario.capture("select_template.png")

Leaving the block flushes the screenshots, passed or failed, and closes
every editor still running.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from .config import Category, HarnessConfig
from .failure_capture import CapturedFrame, ScreenshotSession
from .launcher import ApplicationHandle, EditorLauncher, LaunchOptions
from .retry import Predicate, PollResult, Sleep, poll

logger = logging.getLogger(__name__)

ERROR_SCREENSHOT = "error.png"


class Scenario:
    """Explicit context for one scenario run."""

    def __init__(self, config: Optional[HarnessConfig] = None,
                 category: Category = Category.CREATE,
                 launcher: Optional[EditorLauncher] = None,
                 screenshots: Optional[ScreenshotSession] = None,
                 sleep: Sleep = asyncio.sleep):
        self.config = config or HarnessConfig()
        self.launcher = launcher if launcher is not None else EditorLauncher(self.config)
        if screenshots is None:
            screenshots = ScreenshotSession(self.config, category, sleep=sleep)
        self.screenshots = screenshots
        self._sleep = sleep

    async def __aenter__(self) -> "Scenario":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.flush()
        finally:
            await self.close_host()

    # Launch

    async def launch(self, options: Optional[LaunchOptions] = None,
                     **kwargs) -> ApplicationHandle:
        """Launch an isolated editor; see EditorLauncher.launch."""
        return await self.launcher.launch(options, **kwargs)

    async def close_host(self) -> None:
        """Close every editor launched by this scenario."""
        await self.launcher.close_all()

    # Polling

    async def poll(self, count: int, predicate: Predicate, message: str,
                   interval: Optional[float] = None) -> PollResult:
        """
        Wait for a UI condition.

        If it never holds, an error screenshot is captured, all screenshots
        are flushed and the editors are closed before PollExhausted is raised.
        """
        if interval is None:
            interval = self.config.poll_interval
        return await poll(count, predicate, message, interval,
                          on_exhaustion=self._on_exhaustion, sleep=self._sleep)

    async def _on_exhaustion(self, result: PollResult) -> None:
        logger.error("Giving up after %d attempt(s): %s", result.attempts, result.message)
        try:
            await self.capture(ERROR_SCREENSHOT)
            await self.flush()
        finally:
            await self.close_host()

    # Screenshots

    def set_category(self, category: Category) -> None:
        self.screenshots.set_category(category)

    def set_dir(self, case_name: str) -> str:
        return self.screenshots.set_dir(case_name)

    def get_dir(self) -> str:
        return self.screenshots.get_dir()

    async def capture(self, file_name: str) -> CapturedFrame:
        return await self.screenshots.capture(file_name)

    async def flush(self) -> List[Path]:
        return await self.screenshots.flush()
