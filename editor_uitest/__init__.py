"""
Editor UI Testing Harness

Drives a desktop code editor through Playwright for end-to-end scenarios:
isolated launches, bounded polling of UI state, and ordered screenshots.

Quick Start:
    from editor_uitest import Scenario, HarnessConfig, Category

    async with Scenario(HarnessConfig.from_env(), Category.CREATE) as scenario:
        scenario.set_dir("create_project")
        app = await scenario.launch(workspace_path="CreateTypespecProject")
        await scenario.poll(3, project_created, "Project was not created")
"""

from .config import Category, HarnessConfig, build_user_settings, platform_dir
from .errors import LaunchFailure, PollExhausted, UITestException
from .failure_capture import CapturedFrame, ScreenshotSession
from .harness import Scenario
from .launcher import (
    ApplicationHandle,
    EditorLauncher,
    IsolatedEnvironment,
    LaunchOptions,
    reset_workspace,
)
from .paths import SegmentedPath, prefix_filename
from .retry import PollResult, RetryBudget, poll, retry

__version__ = "1.0.0"
__all__ = [
    "ApplicationHandle",
    "CapturedFrame",
    "Category",
    "EditorLauncher",
    "HarnessConfig",
    "IsolatedEnvironment",
    "LaunchFailure",
    "LaunchOptions",
    "PollExhausted",
    "PollResult",
    "RetryBudget",
    "Scenario",
    "ScreenshotSession",
    "SegmentedPath",
    "UITestException",
    "build_user_settings",
    "platform_dir",
    "poll",
    "prefix_filename",
    "reset_workspace",
    "retry",
]
