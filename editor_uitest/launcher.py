"""
launcher.py - Launch the host editor in a throwaway, isolated profile

Each launch gets a fresh temporary root holding its own extensions and
user-data directories, with a user settings file written before the editor
starts so that no first-run, telemetry, trust or update prompt shows up.

The editor is started with a remote debugging port and attached through
Playwright's CDP connection; the first window becomes the page handed to
the scenario.

The temporary root is never deleted by the harness. It stays behind for
post-mortem inspection.

Usage:
    launcher = EditorLauncher(HarnessConfig.from_env())
    app = await launcher.launch(LaunchOptions(workspace_path="CreateTypespecProject"))
    await app.page.keyboard.press("Control+Shift+P")
    ...
    await launcher.close_all()
"""

import asyncio
import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .config import (
    HOST_LOG_FILE_ENV,
    HOST_LOG_LEVEL_ENV,
    HarnessConfig,
    build_user_settings,
)
from .errors import LaunchFailure

logger = logging.getLogger(__name__)

DEVTOOLS_PATTERN = re.compile(r"DevTools listening on (ws://\S+)")
STDERR_LINE_LIMIT = 1024 * 1024


@dataclass
class LaunchOptions:
    """
    What to open and how.

    Attributes:
        workspace_path: Folder the editor opens into, None for an empty window
        executable_path: Overrides the configured host executable
        trace: Record a Playwright trace, saved to <root>/trace.zip on close
        log_path: Log file handed to the extension under test
        extra_args: Additional command line arguments for the editor
    """

    workspace_path: Optional[str] = None
    executable_path: Optional[str] = None
    trace: bool = False
    log_path: Optional[str] = None
    extra_args: Sequence[str] = ()


def companion_bin_dir(executable_path: str) -> Path:
    """Directory next to the editor binary holding its CLI helpers."""
    return Path(executable_path).parent / "bin"


@dataclass
class IsolatedEnvironment:
    """A private profile root plus the environment the editor runs with."""

    root: Path
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def extensions_dir(self) -> Path:
        return self.root / "extensions"

    @property
    def user_data_dir(self) -> Path:
        return self.root / "user-data"

    @property
    def settings_path(self) -> Path:
        return self.user_data_dir / "User" / "settings.json"

    @property
    def trace_path(self) -> Path:
        return self.root / "trace.zip"

    @classmethod
    def create(cls, config: HarnessConfig, executable_path: str,
               base_env: Optional[Mapping[str, str]] = None,
               log_path: Optional[str] = None) -> "IsolatedEnvironment":
        """
        Allocate a new temporary root and write the user settings into it.

        Args:
            config: Harness configuration (temp prefix, template URLs)
            executable_path: Host executable, used to locate its bin directory
            base_env: Environment to extend (defaults to os.environ)
            log_path: Log file for the extension under test, if any

        Returns:
            The prepared environment
        """
        root = Path(tempfile.mkdtemp(prefix=config.temp_prefix))
        environment = cls(root)
        environment.extensions_dir.mkdir(parents=True, exist_ok=True)
        environment.settings_path.parent.mkdir(parents=True, exist_ok=True)
        environment.settings_path.write_text(
            json.dumps(build_user_settings(config.template_urls), indent=2),
            encoding="utf-8",
        )

        env = dict(os.environ if base_env is None else base_env)
        search_path = env.get("PATH", "")
        bin_dir = str(companion_bin_dir(executable_path))
        env["PATH"] = f"{bin_dir}{os.pathsep}{search_path}" if search_path else bin_dir
        if log_path:
            env[HOST_LOG_FILE_ENV] = str(log_path)
            env[HOST_LOG_LEVEL_ENV] = "verbose"
        environment.env = env

        logger.info("Isolated editor profile at %s", root)
        return environment


def host_arguments(environment: IsolatedEnvironment,
                   workspace_path: Optional[str] = None,
                   port: int = 0,
                   extra_args: Sequence[str] = ()) -> List[str]:
    """Command line for an isolated, prompt-free editor window."""
    args = [
        "--no-sandbox",
        "--disable-gpu-sandbox",
        "--disable-updates",
        "--skip-welcome",
        "--skip-release-notes",
        "--disable-workspace-trust",
        f"--extensions-dir={environment.extensions_dir.resolve()}",
        f"--user-data-dir={environment.user_data_dir.resolve()}",
        f"--remote-debugging-port={port}",
    ]
    if workspace_path:
        args.append(f"--folder-uri=file:{Path(workspace_path).resolve()}")
    args.extend(extra_args)
    return args


def reset_workspace(path: str) -> Path:
    """
    Empty a scenario workspace folder, creating it if needed.

    Returns:
        The workspace path
    """
    workspace = Path(path)
    if workspace.exists():
        for entry in workspace.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
    else:
        workspace.mkdir(parents=True)
    return workspace


async def _read_devtools_endpoint(stream: asyncio.StreamReader) -> Optional[str]:
    while True:
        line = await stream.readline()
        if not line:
            return None
        text = line.decode(errors="replace").rstrip()
        logger.debug("host: %s", text)
        match = DEVTOOLS_PATTERN.search(text)
        if match:
            return match.group(1)


async def _drain(stream: asyncio.StreamReader) -> None:
    while True:
        line = await stream.readline()
        if not line:
            return
        logger.debug("host: %s", line.decode(errors="replace").rstrip())


async def _terminate(process: asyncio.subprocess.Process, timeout: float) -> None:
    if process.returncode is not None:
        return
    try:
        process.terminate()
        await asyncio.wait_for(process.wait(), timeout)
    except ProcessLookupError:
        return
    except asyncio.TimeoutError:
        logger.warning("Editor (pid %d) ignored terminate, killing it", process.pid)
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


class ApplicationHandle:
    """
    A running editor attached over CDP.

    Attributes:
        page: The editor's first window
        environment: The isolated profile it runs in
        process: The editor process
    """

    def __init__(self, page: Page, environment: IsolatedEnvironment,
                 process: asyncio.subprocess.Process,
                 playwright: Playwright, browser: Browser,
                 context: BrowserContext, tracing: bool = False,
                 shutdown_timeout: float = 10.0,
                 stderr_task: Optional["asyncio.Task[None]"] = None):
        self.page = page
        self.environment = environment
        self.process = process
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._tracing = tracing
        self._shutdown_timeout = shutdown_timeout
        self._stderr_task = stderr_task
        self._closed = False

    @property
    def extension_dir(self) -> Path:
        return self.environment.extensions_dir

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """
        Shut the editor down. Safe to call more than once.

        The isolated root directory is left on disk.
        """
        if self._closed:
            return
        self._closed = True

        try:
            if self._tracing:
                await self._context.tracing.stop(path=str(self.environment.trace_path))
                logger.info("Trace saved: %s", self.environment.trace_path)
            await self._browser.close()
        except PlaywrightError as e:
            logger.warning("Error detaching from editor: %s", e)

        await _terminate(self.process, self._shutdown_timeout)
        if self._stderr_task is not None:
            self._stderr_task.cancel()
            await asyncio.gather(self._stderr_task, return_exceptions=True)
        await self._playwright.stop()
        logger.info("Editor closed (profile kept at %s)", self.environment.root)


class EditorLauncher:
    """
    Starts isolated editor instances and remembers them for teardown.

    Usage:
        launcher = EditorLauncher(config)
        app = await launcher.launch(workspace_path="out")
        ...
        await launcher.close_all()
    """

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or HarnessConfig()
        self.handles: List[ApplicationHandle] = []

    async def launch(self, options: Optional[LaunchOptions] = None,
                     **kwargs) -> ApplicationHandle:
        """
        Launch the editor into a brand new isolated profile.

        Args:
            options: Launch options; keyword arguments build one if omitted

        Returns:
            Handle with the first window and the profile's extension dir

        Raises:
            LaunchFailure: If the editor cannot be started or attached to
        """
        options = options or LaunchOptions(**kwargs)
        executable = options.executable_path or self.config.executable_path
        if not executable:
            raise LaunchFailure(
                "No editor executable configured. Pass --executable-path "
                "or set VSCODE_E2E_EXECUTABLE_PATH."
            )

        environment = IsolatedEnvironment.create(
            self.config, executable, log_path=options.log_path
        )
        args = host_arguments(environment, options.workspace_path,
                              extra_args=options.extra_args)

        logger.info("Launching %s", executable)
        try:
            process = await asyncio.create_subprocess_exec(
                executable, *args,
                env=environment.env,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                limit=STDERR_LINE_LIMIT,
            )
        except OSError as e:
            raise LaunchFailure(f"Failed to start editor {executable}: {e}") from e

        timeout = self.config.startup_timeout
        try:
            endpoint = await asyncio.wait_for(
                _read_devtools_endpoint(process.stderr), timeout
            )
        except asyncio.TimeoutError as e:
            await _terminate(process, self.config.shutdown_timeout)
            raise LaunchFailure(
                f"Editor did not open a debugging endpoint within {timeout}s"
            ) from e

        if endpoint is None:
            code = await process.wait()
            raise LaunchFailure(f"Editor exited with code {code} before its window opened")

        handle = await self._attach(process, environment, endpoint, options.trace)
        self.handles.append(handle)
        return handle

    async def _attach(self, process: asyncio.subprocess.Process,
                      environment: IsolatedEnvironment, endpoint: str,
                      trace: bool) -> ApplicationHandle:
        stderr_task = asyncio.ensure_future(_drain(process.stderr))
        playwright = None
        try:
            try:
                playwright = await async_playwright().start()
            except Exception as e:
                raise LaunchFailure(f"Could not start the Playwright driver: {e}") from e
            browser, context, page = await self._first_window(playwright, endpoint, trace)
        except BaseException:
            if playwright is not None:
                await playwright.stop()
            await _terminate(process, self.config.shutdown_timeout)
            stderr_task.cancel()
            await asyncio.gather(stderr_task, return_exceptions=True)
            raise

        logger.info("Editor ready (pid %d)", process.pid)
        return ApplicationHandle(
            page, environment, process, playwright, browser, context,
            tracing=trace,
            shutdown_timeout=self.config.shutdown_timeout,
            stderr_task=stderr_task,
        )

    async def _first_window(self, playwright: Playwright, endpoint: str,
                            trace: bool) -> Tuple[Browser, BrowserContext, Page]:
        timeout_ms = self.config.startup_timeout * 1000
        try:
            browser = await playwright.chromium.connect_over_cdp(endpoint, timeout=timeout_ms)
            if not browser.contexts:
                raise LaunchFailure("Editor exposed no browser context")
            context = browser.contexts[0]
            if context.pages:
                page = context.pages[0]
            else:
                page = await context.wait_for_event("page", timeout=timeout_ms)
            await page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
            if trace:
                await context.tracing.start(screenshots=True, snapshots=True)
        except PlaywrightError as e:
            raise LaunchFailure(f"Could not obtain the editor window: {e}") from e
        return browser, context, page

    async def close_all(self) -> None:
        """Close every editor this launcher started, newest first."""
        while self.handles:
            await self.handles.pop().close()
