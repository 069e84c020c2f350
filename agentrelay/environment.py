"""Host environment detection: OS family, user, paths, and installed browsers."""

from __future__ import annotations

import getpass
import logging
import os
import platform
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from agentrelay.config import Settings, get_settings
from agentrelay.schemas import OperatingSystem

logger = logging.getLogger(__name__)


class BinaryProbe(ABC):
    """Capability query for executables and app bundles on the host."""

    @abstractmethod
    def which(self, name: str) -> str | None:
        """Return the full path of an executable on PATH, or None."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if the filesystem path exists."""
        ...


class ShellProbe(BinaryProbe):
    """Probe backed by shutil.which and the real filesystem."""

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)


@dataclass(frozen=True)
class BrowserSpec:
    """How one logical browser is found and launched on each OS."""

    name: str
    linux_binaries: tuple[str, ...]
    macos_app: str | None
    windows_exe: str | None
    windows_paths: tuple[str, ...] = ()


# Order defines listing order of installed browsers
BROWSER_CATALOGUE: tuple[BrowserSpec, ...] = (
    BrowserSpec(
        name="chrome",
        linux_binaries=("google-chrome", "google-chrome-stable"),
        macos_app="Google Chrome",
        windows_exe="chrome",
        windows_paths=("Google\\Chrome\\Application\\chrome.exe",),
    ),
    BrowserSpec(
        name="chromium",
        linux_binaries=("chromium", "chromium-browser"),
        macos_app="Chromium",
        windows_exe="chromium",
        windows_paths=("Chromium\\Application\\chrome.exe",),
    ),
    BrowserSpec(
        name="firefox",
        linux_binaries=("firefox", "firefox-esr"),
        macos_app="Firefox",
        windows_exe="firefox",
        windows_paths=("Mozilla Firefox\\firefox.exe",),
    ),
    BrowserSpec(
        name="brave",
        linux_binaries=("brave-browser", "brave", "brave-browser-stable"),
        macos_app="Brave Browser",
        windows_exe="brave",
        windows_paths=("BraveSoftware\\Brave-Browser\\Application\\brave.exe",),
    ),
    BrowserSpec(
        name="edge",
        linux_binaries=("microsoft-edge", "microsoft-edge-stable"),
        macos_app="Microsoft Edge",
        windows_exe="msedge",
        windows_paths=("Microsoft\\Edge\\Application\\msedge.exe",),
    ),
    BrowserSpec(
        name="safari",
        linux_binaries=(),
        macos_app="Safari",
        windows_exe=None,
    ),
    BrowserSpec(
        name="opera",
        linux_binaries=("opera",),
        macos_app="Opera",
        windows_exe="opera",
        windows_paths=("Programs\\Opera\\opera.exe",),
    ),
    BrowserSpec(
        name="vivaldi",
        linux_binaries=("vivaldi", "vivaldi-stable"),
        macos_app="Vivaldi",
        windows_exe="vivaldi",
        windows_paths=("Vivaldi\\Application\\vivaldi.exe",),
    ),
    BrowserSpec(
        name="arc",
        linux_binaries=(),
        macos_app="Arc",
        windows_exe=None,
    ),
)

BROWSERS_BY_NAME: dict[str, BrowserSpec] = {spec.name: spec for spec in BROWSER_CATALOGUE}

MACOS_APPLICATION_DIRS = ("/Applications", "~/Applications")
WINDOWS_PROGRAM_DIR_VARS = ("ProgramFiles", "ProgramFiles(x86)", "LocalAppData")


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Read-only description of the host, captured once at startup."""

    os: OperatingSystem
    username: str
    home_dir: Path
    project_dir: Path
    installed_browsers: tuple[str, ...] = field(default_factory=tuple)


def detect_operating_system() -> OperatingSystem:
    """Map platform.system() onto the supported OS families.

    Anything that is neither Darwin nor Windows is treated as Linux.
    """
    system = platform.system()
    if system == "Darwin":
        return OperatingSystem.MACOS
    if system == "Windows":
        return OperatingSystem.WINDOWS
    return OperatingSystem.LINUX


def _macos_app_installed(app_name: str, probe: BinaryProbe) -> bool:
    for base in MACOS_APPLICATION_DIRS:
        if probe.exists(os.path.join(os.path.expanduser(base), f"{app_name}.app")):
            return True
    return False


def find_windows_executable(spec: BrowserSpec, probe: BinaryProbe) -> str | None:
    """Return the full path of the browser executable: PATH first, then program dirs."""
    if spec.windows_exe:
        found = probe.which(spec.windows_exe)
        if found:
            return found
    for var in WINDOWS_PROGRAM_DIR_VARS:
        base = os.environ.get(var)
        if not base:
            continue
        for relative in spec.windows_paths:
            candidate = os.path.join(base, relative)
            if probe.exists(candidate):
                return candidate
    return None


def find_linux_binary(spec: BrowserSpec, probe: BinaryProbe) -> str | None:
    """Return the first Linux binary name for the browser present on PATH."""
    for binary in spec.linux_binaries:
        if probe.which(binary):
            return binary
    return None


def detect_installed_browsers(
    os_family: OperatingSystem,
    probe: BinaryProbe | None = None,
) -> list[str]:
    """List logical browser names installed on the host, in catalogue order.

    Detection is best-effort: probe failures exclude the browser, they never raise.
    """
    probe = probe or ShellProbe()
    installed = []

    for spec in BROWSER_CATALOGUE:
        try:
            if os_family == OperatingSystem.LINUX:
                found = find_linux_binary(spec, probe) is not None
            elif os_family == OperatingSystem.MACOS:
                found = spec.macos_app is not None and _macos_app_installed(spec.macos_app, probe)
            else:
                found = find_windows_executable(spec, probe) is not None
        except OSError as e:
            logger.debug(f"Probe for {spec.name} failed: {e}")
            found = False

        if found:
            installed.append(spec.name)

    return installed


def home_directory() -> Path:
    """Get the current user's home directory."""
    return Path.home()


def current_user() -> str:
    """Get the login name, falling back to the home directory name."""
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return home_directory().name


def project_directory(settings: Settings | None = None) -> Path:
    """Get the project directory: the configured one, else the working directory."""
    settings = settings or get_settings()
    if settings.project_dir is not None:
        return Path(settings.project_dir).expanduser().resolve()
    return Path.cwd()


def capture_environment(
    settings: Settings | None = None,
    probe: BinaryProbe | None = None,
) -> EnvironmentSnapshot:
    """Detect everything about the host in one pass.

    Args:
        settings: Settings to read project_dir from
        probe: Executable/app probe (defaults to ShellProbe)

    Returns:
        EnvironmentSnapshot for the current process
    """
    os_family = detect_operating_system()
    snapshot = EnvironmentSnapshot(
        os=os_family,
        username=current_user(),
        home_dir=home_directory(),
        project_dir=project_directory(settings),
        installed_browsers=tuple(detect_installed_browsers(os_family, probe)),
    )
    logger.info(
        f"Environment: os={snapshot.os.value}, user={snapshot.username}, "
        f"browsers={list(snapshot.installed_browsers)}"
    )
    return snapshot


# Global snapshot instance
_environment: EnvironmentSnapshot | None = None


def get_environment() -> EnvironmentSnapshot:
    """Get or capture the global environment snapshot."""
    global _environment
    if _environment is None:
        _environment = capture_environment()
    return _environment
