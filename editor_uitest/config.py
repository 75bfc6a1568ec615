"""
config.py - Run configuration for the editor UI test harness

All tunables live on HarnessConfig, a frozen dataclass, so tests can build
one directly without touching os.environ. HarnessConfig.from_env() is what
the pytest plugin uses.
"""

import os
import sys
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

ARTIFACT_ROOT_ENV = "BUILD_ARTIFACT_STAGING_DIRECTORY"
EXECUTABLE_PATH_ENV = "VSCODE_E2E_EXECUTABLE_PATH"

# Read by the extension under test, not by the harness
HOST_LOG_FILE_ENV = "VITEST_VSCODE_E2E_LOG_FILE"
HOST_LOG_LEVEL_ENV = "VITEST_VSCODE_LOG"

DEFAULT_TEMPLATE_URLS: Tuple[Tuple[str, str], ...] = (
    ("Azure", "https://aka.ms/typespec/azure-init"),
)


class Category(str, Enum):
    """Screenshot category; each maps to its own artifact directory."""

    CREATE = "create"
    EMIT = "emit"
    IMPORT = "import"
    PREVIEW = "preview"

    @property
    def directory(self) -> str:
        return _CATEGORY_DIRECTORIES[self]


_CATEGORY_DIRECTORIES = {
    Category.CREATE: "CreateTypeSpecProject",
    Category.EMIT: "EmitFromTypeSpec",
    Category.IMPORT: "ImportTypeSpecFromOpenAPI3",
    Category.PREVIEW: "PreviewAPIDocument",
}


def platform_dir(platform: Optional[str] = None) -> str:
    """Name of the per-platform image directory under the artifact root."""
    platform = platform or sys.platform
    return "images-windows" if platform == "win32" else "images-linux"


@dataclass(frozen=True)
class HarnessConfig:
    """
    Configuration for one harness run.

    Attributes:
        artifact_root: Directory under which screenshot trees are written
        executable_path: Host editor executable, None if not yet injected
        settle_delay: Seconds to wait before each screen capture
        poll_interval: Default seconds between poll attempts
        startup_timeout: Seconds to wait for the host's first window
        shutdown_timeout: Seconds to wait for the host to exit before killing it
        temp_prefix: Prefix of the isolated temporary root directory
        template_urls: (name, url) pairs written to the isolated user settings
    """

    artifact_root: Path = field(default_factory=Path.cwd)
    executable_path: Optional[str] = None
    settle_delay: float = 3.0
    poll_interval: float = 2.0
    startup_timeout: float = 30.0
    shutdown_timeout: float = 10.0
    temp_prefix: str = "typespec-automation"
    template_urls: Tuple[Tuple[str, str], ...] = DEFAULT_TEMPLATE_URLS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 **overrides: Any) -> "HarnessConfig":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Field values that win over the environment

        Returns:
            A new HarnessConfig
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        artifact_root = environ.get(ARTIFACT_ROOT_ENV)
        if artifact_root:
            values["artifact_root"] = Path(artifact_root)

        executable_path = environ.get(EXECUTABLE_PATH_ENV)
        if executable_path:
            values["executable_path"] = executable_path

        values.update({k: v for k, v in overrides.items() if v is not None})
        if "artifact_root" in values:
            values["artifact_root"] = Path(values["artifact_root"]).resolve()
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "HarnessConfig":
        return replace(self, **changes)

    @property
    def image_root(self) -> Path:
        return Path(self.artifact_root) / platform_dir()


def build_user_settings(template_urls: Tuple[Tuple[str, str], ...] = DEFAULT_TEMPLATE_URLS
                        ) -> Dict[str, Any]:
    """
    Build the user settings document written into the isolated profile.

    Besides the init template sources, it switches off every first-run,
    telemetry, trust and update prompt so startup is deterministic.
    """
    templates: List[Dict[str, str]] = [
        {"name": name, "url": url} for name, url in template_urls
    ]
    return {
        "typespec.initTemplatesUrls": templates,
        "workbench.startupEditor": "none",
        "workbench.tips.enabled": False,
        "workbench.enableExperiments": False,
        "telemetry.telemetryLevel": "off",
        "security.workspace.trust.enabled": False,
        "security.workspace.trust.startupPrompt": "never",
        "update.mode": "none",
        "update.showReleaseNotes": False,
        "extensions.autoUpdate": False,
        "extensions.autoCheckUpdates": False,
        "extensions.ignoreRecommendations": True,
    }
