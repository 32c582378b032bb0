"""
Pytest configuration and shared fixtures.
"""

import io
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest
from rich.console import Console

from devbox.config import settings as settings_module
from devbox.config.settings import ProvisionerSettings
from devbox.logging import LogManager, ProgressTracker
from devbox.provisioner.provisioner import Provisioner
from devbox.tools.base import CommandError, CommandResult, ToolConfig
from devbox.tools.distrobox import DistroboxTool
from devbox.tools.dnf import DnfTool

DISTROBOX_LIST = (
    "ID           | NAME                 | STATUS             | IMAGE\n"
    "3f2a1b9c0d4e | fedora-dev           | Up 2 hours         | fedora:41\n"
    "9a8b7c6d5e4f | ubuntu-box           | Exited (0) 1 day   | ubuntu:24.04\n"
)


def _contains(command: Sequence[str], needle: Sequence[str]) -> bool:
    """Whether ``needle`` appears as a contiguous run in ``command``."""
    size = len(needle)
    return any(
        tuple(command[i : i + size]) == tuple(needle)
        for i in range(len(command) - size + 1)
    )


class FakeCommandRunner:
    """Stand-in for ``Tool._run_command`` that records every command."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self._responses: List[Tuple[Tuple[str, ...], int, str]] = []

    def respond(self, *needle: str, returncode: int = 0, stdout: str = "") -> None:
        """Answer commands containing ``needle`` with the given result."""
        self._responses.append((needle, returncode, stdout))

    async def __call__(self, cmd, check=True, capture=True, input_text=None):
        command = list(cmd)
        self.calls.append(command)
        self.inputs.append(input_text)

        returncode, stdout = 0, ""
        for needle, rc, out in self._responses:
            if _contains(command, needle):
                returncode, stdout = rc, out
                break

        result = CommandResult(command=command, returncode=returncode, stdout=stdout)
        if check and returncode != 0:
            raise CommandError(result)
        return result

    def ran(self, *needle: str) -> bool:
        """Whether any recorded command contains ``needle``."""
        return any(_contains(command, needle) for command in self.calls)

    def index_of(self, *needle: str) -> int:
        """Position of the first command containing ``needle``."""
        for index, command in enumerate(self.calls):
            if _contains(command, needle):
                return index
        raise AssertionError(f"{needle} was never run")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep settings, logs and the profile inside the test's tmp directory."""
    monkeypatch.setenv("DEVBOX_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("DEVBOX_PROFILE_PATH", str(tmp_path / ".bashrc"))
    monkeypatch.setenv("DEVBOX_CONTAINER_MARKER", str(tmp_path / "containerenv"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr(settings_module, "_settings", None)


@pytest.fixture
def marker_file(tmp_path) -> Path:
    return tmp_path / "containerenv"


@pytest.fixture
def profile_path(tmp_path) -> Path:
    return tmp_path / ".bashrc"


@pytest.fixture
def repos_dir(tmp_path) -> Path:
    path = tmp_path / "yum.repos.d"
    path.mkdir()
    return path


@pytest.fixture
def provisioner_settings(marker_file, profile_path) -> ProvisionerSettings:
    """Provisioner settings pointing at tmp files."""
    return ProvisionerSettings(
        container_marker=marker_file,
        profile_path=profile_path,
        use_sudo=False,
        reentry_command="devbox",
    )


@pytest.fixture
def command_runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def distrobox_tool(command_runner, monkeypatch) -> DistroboxTool:
    tool = DistroboxTool(ToolConfig(name="distrobox", executable="distrobox"))
    monkeypatch.setattr(tool, "_run_command", command_runner)
    return tool


@pytest.fixture
def dnf_tool(command_runner, monkeypatch) -> DnfTool:
    tool = DnfTool(ToolConfig(name="dnf", executable="dnf"))
    monkeypatch.setattr(tool, "_run_command", command_runner)
    return tool


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def log_manager(tmp_path) -> LogManager:
    return LogManager(str(tmp_path / "events"))


@pytest.fixture
def progress_tracker(log_manager, console_output) -> ProgressTracker:
    console = Console(file=console_output, width=200, highlight=False, emoji=False)
    return ProgressTracker(log_manager, console=console)


@pytest.fixture
def provisioner(
    provisioner_settings, distrobox_tool, dnf_tool, log_manager, progress_tracker, repos_dir
) -> Provisioner:
    """Provisioner wired to the fake command runner."""
    return Provisioner(
        provisioner_settings,
        runtime=distrobox_tool,
        package_manager=dnf_tool,
        log_manager=log_manager,
        progress_tracker=progress_tracker,
        repos_dir=repos_dir,
    )


@pytest.fixture
def distrobox_list() -> str:
    """``distrobox list`` output with fedora-dev and ubuntu-box."""
    return DISTROBOX_LIST
