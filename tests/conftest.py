"""Pytest configuration and fixtures for AgentRelay tests."""

from pathlib import Path
from typing import Callable, Iterable

import pytest

from agentrelay.environment import BinaryProbe, EnvironmentSnapshot
from agentrelay.schemas import OperatingSystem


class FakeProbe(BinaryProbe):
    """Probe answering from fixed sets instead of the real host."""

    def __init__(self, binaries: Iterable[str] = (), paths: Iterable[str] = ()):
        self.binaries = set(binaries)
        self.paths = set(paths)
        self.queries: list[str] = []

    def which(self, name: str) -> str | None:
        self.queries.append(name)
        return f"/usr/bin/{name}" if name in self.binaries else None

    def exists(self, path: str) -> bool:
        return path in self.paths


@pytest.fixture
def make_probe() -> Callable[..., FakeProbe]:
    """Factory for fake executable probes."""
    return FakeProbe


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A real directory the agent can be pointed at."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def linux_env(project_dir: Path) -> EnvironmentSnapshot:
    """Linux snapshot with only Firefox installed."""
    return EnvironmentSnapshot(
        os=OperatingSystem.LINUX,
        username="octocat",
        home_dir=Path("/home/octocat"),
        project_dir=project_dir,
        installed_browsers=("firefox",),
    )


@pytest.fixture
def macos_env(project_dir: Path) -> EnvironmentSnapshot:
    """macOS snapshot with Safari and Chrome."""
    return EnvironmentSnapshot(
        os=OperatingSystem.MACOS,
        username="octocat",
        home_dir=Path("/Users/octocat"),
        project_dir=project_dir,
        installed_browsers=("chrome", "safari"),
    )


@pytest.fixture
def windows_env(project_dir: Path) -> EnvironmentSnapshot:
    """Windows snapshot with Edge only."""
    return EnvironmentSnapshot(
        os=OperatingSystem.WINDOWS,
        username="octocat",
        home_dir=Path("C:/Users/octocat"),
        project_dir=project_dir,
        installed_browsers=("edge",),
    )
