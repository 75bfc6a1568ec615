"""
pytest_plugin.py - pytest fixtures for editor UI scenarios

Registered through the ``pytest11`` entry point, so installing the package
is enough. Provides:

    harness_config  session-wide HarnessConfig (env + --executable-path)
    task_name       "<test name>-<short id>", unique per test item
    log_path        ./tests-logs-<task_name>.txt, handed to the extension
    launch          factory launching isolated editors, closed after the test
    scenario        a Scenario for the test, flushed and closed after it

Mark a test with ``@pytest.mark.category("emit")`` to choose its screenshot
directory; the default is "create".
"""

import hashlib
import re
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio

from .config import Category, HarnessConfig
from .harness import Scenario
from .launcher import ApplicationHandle, EditorLauncher, LaunchOptions

_UNSAFE_CHARS = re.compile(r"[^\w.\-\[\]]+")


def pytest_addoption(parser):
    group = parser.getgroup("editor-uitest")
    group.addoption(
        "--executable-path",
        action="store",
        default=None,
        help="Editor executable to launch (overrides VSCODE_E2E_EXECUTABLE_PATH)",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "category(name): screenshot category (create, emit, import, preview)"
    )


@pytest.fixture(scope="session")
def harness_config(pytestconfig) -> HarnessConfig:
    return HarnessConfig.from_env(
        executable_path=pytestconfig.getoption("executable_path")
    )


@pytest.fixture
def task_name(request) -> str:
    digest = hashlib.sha1(request.node.nodeid.encode("utf-8")).hexdigest()[:8]
    return f"{_UNSAFE_CHARS.sub('_', request.node.name)}-{digest}"


@pytest.fixture
def log_path(task_name) -> Path:
    return Path(f"tests-logs-{task_name}.txt").resolve()


@pytest_asyncio.fixture
async def launch(harness_config, log_path):
    """Factory fixture: ``app = await launch(workspace_path=...)``."""
    launcher = EditorLauncher(harness_config)

    async def _launch(workspace_path: Optional[str] = None, **kwargs) -> ApplicationHandle:
        kwargs.setdefault("log_path", str(log_path))
        return await launcher.launch(LaunchOptions(workspace_path=workspace_path, **kwargs))

    yield _launch
    await launcher.close_all()


@pytest_asyncio.fixture
async def scenario(request, harness_config):
    marker = request.node.get_closest_marker("category")
    category = Category(marker.args[0]) if marker else Category.CREATE
    async with Scenario(harness_config, category) as current:
        yield current
