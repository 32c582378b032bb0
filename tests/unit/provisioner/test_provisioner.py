"""
Tests for the provisioner's routing, install, configure and report sequence.
"""

import pytest

from devbox.logging import ExecutionCompleted, StepCompleted
from devbox.provisioner.packages import VSCODE_REPOSITORY
from devbox.provisioner.profile import ALIAS_BLOCK, CARGO_PATH_BLOCK
from devbox.provisioner.provisioner import Provisioner
from devbox.tools.base import CommandError, ToolError


class TestRoutingOutsideContainer:
    """Runs on the host, where the marker file is absent."""

    @pytest.mark.asyncio
    async def test_enters_existing_container(
        self, provisioner, command_runner, distrobox_list
    ):
        """Test an existing container is entered without being created."""
        command_runner.respond("distrobox", "list", stdout=distrobox_list)

        outcome = await provisioner.provision("fedora-dev")

        assert outcome.route == "enter_existing"
        assert outcome.created_container is False
        assert not command_runner.ran("distrobox", "create")
        assert command_runner.calls[-1] == [
            "distrobox",
            "enter",
            "fedora-dev",
            "--",
            "devbox",
            "provision",
            "fedora-dev",
        ]

    @pytest.mark.asyncio
    async def test_creates_missing_container_then_enters(
        self, provisioner, command_runner, distrobox_list
    ):
        """Test a missing container is created from the base image first."""
        command_runner.respond("distrobox", "list", stdout=distrobox_list)

        outcome = await provisioner.provision("rust-box")

        assert outcome.route == "create_and_enter"
        assert outcome.created_container is True
        create = command_runner.index_of("distrobox", "create")
        enter = command_runner.index_of("distrobox", "enter")
        assert command_runner.calls[create] == [
            "distrobox",
            "create",
            "--name",
            "rust-box",
            "--image",
            "fedora:41",
        ]
        assert create < enter

    @pytest.mark.asyncio
    async def test_lookup_happens_before_any_install(self, provisioner, command_runner):
        """Test the host never runs the package manager itself."""
        await provisioner.provision()

        assert command_runner.index_of("distrobox", "list") == 0
        assert all(c[0] == "distrobox" for c in command_runner.calls)

    @pytest.mark.asyncio
    async def test_default_container_name(self, provisioner, command_runner):
        """Test no argument targets fedora-dev."""
        outcome = await provisioner.provision()

        assert outcome.container_name == "fedora-dev"
        assert command_runner.ran("--name", "fedora-dev")

    @pytest.mark.asyncio
    async def test_argument_overrides_default_name(self, provisioner, command_runner):
        """Test an explicit name replaces the default."""
        outcome = await provisioner.provision("my-box")

        assert outcome.container_name == "my-box"
        assert command_runner.ran("enter", "my-box")
        assert not command_runner.ran("fedora-dev")

    @pytest.mark.asyncio
    async def test_similar_container_name_is_not_a_match(
        self, provisioner, command_runner
    ):
        """Test fedora-dev-old does not count as fedora-dev."""
        command_runner.respond(
            "distrobox",
            "list",
            stdout="ID | NAME | STATUS | IMAGE\nabc | fedora-dev-old | Up | fedora:40\n",
        )

        outcome = await provisioner.provision()

        assert outcome.route == "create_and_enter"

    @pytest.mark.asyncio
    async def test_host_summary_points_at_container(
        self, provisioner, command_runner, console_output
    ):
        """Test the host-side summary explains how to enter the container."""
        await provisioner.provision("my-box")

        output = console_output.getvalue()
        assert "To enter your development container, run:" in output
        assert "distrobox enter my-box" in output
        assert "Reload your shell" not in output


class TestContainerBootstrap:
    """The container must be able to run the provisioner before the hand-off."""

    @pytest.mark.asyncio
    async def test_interpreter_installed_before_handoff(
        self, provisioner, command_runner
    ):
        """Test python3 is installed and checked before provision runs inside."""
        await provisioner.provision("my-box")

        bootstrap = command_runner.index_of(
            "distrobox", "enter", "my-box", "--", "dnf", "install", "-y", "python3"
        )
        check = command_runner.index_of("sh", "-c", 'command -v "$1"', "sh", "devbox")
        handoff = command_runner.index_of("--", "devbox", "provision", "my-box")
        assert bootstrap < check < handoff

    def test_bootstrap_uses_sudo_when_not_root(self, provisioner_settings):
        """Test the in-container install is privileged like host installs."""
        settings = provisioner_settings.model_copy(update={"use_sudo": True})

        assert Provisioner(settings).bootstrap_command() == [
            "sudo",
            "dnf",
            "install",
            "-y",
            "python3",
        ]

    @pytest.mark.asyncio
    async def test_missing_interpreter_stops_handoff(
        self, provisioner, command_runner, log_manager
    ):
        """Test an interpreter absent from the container gives a clear error."""
        command_runner.respond('command -v "$1"', returncode=1)

        with pytest.raises(ToolError) as exc_info:
            await provisioner.provision("my-box")

        assert "DEVBOX_REENTRY_COMMAND" in str(exc_info.value)
        assert not command_runner.ran("devbox", "provision")
        completed = [e for e in log_manager.events if isinstance(e, ExecutionCompleted)]
        assert completed[-1].success is False

    @pytest.mark.asyncio
    async def test_bootstrap_failure_is_fatal(self, provisioner, command_runner):
        """Test a failed in-container install aborts before the hand-off."""
        command_runner.respond("--", "dnf", "install", returncode=1)

        with pytest.raises(CommandError):
            await provisioner.provision("my-box")

        assert not command_runner.ran("command -v \"$1\"")
        assert not command_runner.ran("devbox", "provision")


class TestFailFast:
    """First fatal command failure stops the run."""

    @pytest.mark.asyncio
    async def test_create_failure_aborts(
        self, provisioner, command_runner, profile_path
    ):
        """Test nothing runs after a failed container creation."""
        command_runner.respond("distrobox", "create", returncode=125)

        with pytest.raises(CommandError) as exc_info:
            await provisioner.provision()

        assert exc_info.value.returncode == 125
        assert not command_runner.ran("distrobox", "enter")
        assert not command_runner.ran("dnf")
        assert not profile_path.exists()

    @pytest.mark.asyncio
    async def test_lookup_failure_aborts(self, provisioner, command_runner):
        """Test an unavailable runtime is fatal."""
        command_runner.respond("distrobox", "list", returncode=127)

        with pytest.raises(CommandError) as exc_info:
            await provisioner.provision()

        assert exc_info.value.returncode == 127
        assert len(command_runner.calls) == 1

    @pytest.mark.asyncio
    async def test_failure_recorded_in_event_log(
        self, provisioner, command_runner, log_manager
    ):
        """Test a failed run emits an unsuccessful completion event."""
        command_runner.respond("distrobox", "create", returncode=3)

        with pytest.raises(CommandError):
            await provisioner.provision()

        completed = [e for e in log_manager.events if isinstance(e, ExecutionCompleted)]
        assert len(completed) == 1
        assert completed[0].success is False
        assert completed[0].returncode == 3
        assert completed[0].route == "create_and_enter"

    @pytest.mark.asyncio
    async def test_install_failure_skips_shell_configuration(
        self, provisioner, command_runner, marker_file, profile_path
    ):
        """Test a failed install leaves the profile untouched."""
        marker_file.touch()
        command_runner.respond("dnf", "install", returncode=1)

        with pytest.raises(CommandError):
            await provisioner.provision()

        assert not profile_path.exists()
        assert len([c for c in command_runner.calls if "install" in c]) == 1


class TestInsideContainer:
    """Runs inside the container, where the marker file exists."""

    @pytest.fixture(autouse=True)
    def inside(self, marker_file):
        marker_file.touch()

    @pytest.mark.asyncio
    async def test_no_container_lookup(self, provisioner, command_runner):
        """Test the runtime is never queried inside the container."""
        outcome = await provisioner.provision()

        assert outcome.route == "run_locally"
        assert outcome.inside_container is True
        assert not command_runner.ran("distrobox")

    @pytest.mark.asyncio
    async def test_installs_every_package_set(self, provisioner, command_runner):
        """Test each set is installed in table order."""
        outcome = await provisioner.provision()

        installs = [c for c in command_runner.calls if c[:3] == ["dnf", "install", "-y"]]
        assert [c[3] for c in installs] == ["python3", "code", "neovim", "git", "make"]
        assert outcome.installed_sets == [
            "languages",
            "vscode",
            "terminal-editors",
            "cli-tools",
            "build-tools",
        ]

    @pytest.mark.asyncio
    async def test_repository_registered_before_editor_install(
        self, provisioner, command_runner, repos_dir
    ):
        """Test key import, repo write and refresh come before installing code."""
        outcome = await provisioner.provision()

        key = command_runner.index_of("rpm", "--import", VSCODE_REPOSITORY.gpgkey)
        write = command_runner.index_of("tee", str(repos_dir / "vscode.repo"))
        refresh = command_runner.index_of("dnf", "check-update")
        install = command_runner.index_of("dnf", "install", "-y", "code")
        assert key < write < refresh < install
        assert VSCODE_REPOSITORY.render() in command_runner.inputs
        assert outcome.registered_repositories == ["vscode"]

    @pytest.mark.asyncio
    async def test_existing_repository_not_rewritten(
        self, provisioner, command_runner, repos_dir
    ):
        """Test re-running with the repository in place does not error."""
        (repos_dir / "vscode.repo").write_text(VSCODE_REPOSITORY.render())

        await provisioner.provision()

        assert not command_runner.ran("tee")
        assert command_runner.ran("dnf", "install", "-y", "code")

    @pytest.mark.asyncio
    async def test_refresh_failure_is_tolerated(self, provisioner, command_runner):
        """Test a failing metadata refresh does not stop the run."""
        command_runner.respond("dnf", "check-update", returncode=1)

        outcome = await provisioner.provision()

        assert command_runner.ran("dnf", "install", "-y", "code")
        assert outcome.profile_blocks_added == [
            CARGO_PATH_BLOCK.label,
            ALIAS_BLOCK.label,
        ]

    @pytest.mark.asyncio
    async def test_updates_available_is_tolerated(self, provisioner, command_runner):
        """Test check-update's exit status 100 is not an error."""
        command_runner.respond("dnf", "check-update", returncode=100)

        outcome = await provisioner.provision()

        assert "vscode" in outcome.installed_sets

    @pytest.mark.asyncio
    async def test_profile_configured(self, provisioner, profile_path):
        """Test the PATH export and alias block land in the profile."""
        await provisioner.provision()

        content = profile_path.read_text()
        assert 'export PATH="$HOME/.cargo/bin:$PATH"' in content
        assert "alias ls='eza'" in content

    @pytest.mark.asyncio
    async def test_profile_with_latin1_bytes(self, provisioner, profile_path):
        """Test a profile that is not UTF-8 is patched without losing bytes."""
        original = b"# caf\xe9 settings\nexport EDITOR=vim\n"
        profile_path.write_bytes(original)

        outcome = await provisioner.provision()

        content = profile_path.read_bytes()
        assert content.startswith(original)
        assert b"alias grep='rg'" in content
        assert len(outcome.profile_blocks_added) == 2

    @pytest.mark.asyncio
    async def test_latin1_profile_dry_run(
        self, provisioner, profile_path, console_output
    ):
        """Test the dry-run plan reads a profile that is not UTF-8."""
        profile_path.write_bytes(b"# \xff\n# Development aliases\n")

        await provisioner.provision(dry_run=True)

        output = console_output.getvalue()
        assert "Would add cargo bin to PATH" in output
        assert "Would add development aliases" not in output

    @pytest.mark.asyncio
    async def test_repeated_runs_leave_profile_unchanged(
        self, provisioner, profile_path
    ):
        """Test a second run does not touch the profile."""
        profile_path.write_text("# user settings\nexport EDITOR=vim\n")

        await provisioner.provision()
        after_first = profile_path.read_bytes()
        second = await provisioner.provision()

        assert profile_path.read_bytes() == after_first
        assert second.profile_blocks_added == []

    @pytest.mark.asyncio
    async def test_summary_suggests_reloading_shell(
        self, provisioner, console_output
    ):
        """Test the in-container summary lists categories and next steps."""
        await provisioner.provision()

        output = console_output.getvalue()
        assert "Installed tools:" in output
        assert "Languages: Python 3, Go, Rust" in output
        assert "Editors: VS Code, Neovim" in output
        assert "Reload your shell to apply changes:" in output
        assert "distrobox enter" not in output

    @pytest.mark.asyncio
    async def test_step_events_emitted(self, provisioner, log_manager):
        """Test install and configure steps are recorded."""
        await provisioner.provision()

        steps = [e for e in log_manager.events if isinstance(e, StepCompleted)]
        assert [s.step_id for s in steps] == ["install_packages", "configure_shell"]
        assert all(s.success for s in steps)


class TestDryRun:
    """Dry runs list containers but change nothing."""

    @pytest.mark.asyncio
    async def test_host_dry_run(self, provisioner, command_runner, console_output):
        """Test only the lookup runs on the host."""
        outcome = await provisioner.provision("new-box", dry_run=True)

        assert outcome.dry_run is True
        assert outcome.route == "create_and_enter"
        assert command_runner.calls == [["distrobox", "list", "--no-color"]]
        assert "Would create container new-box from fedora:41" in (
            console_output.getvalue()
        )

    @pytest.mark.asyncio
    async def test_container_dry_run(
        self, provisioner, command_runner, marker_file, profile_path, console_output
    ):
        """Test nothing is installed or written inside the container."""
        marker_file.touch()

        await provisioner.provision(dry_run=True)

        assert command_runner.calls == []
        assert not profile_path.exists()
        output = console_output.getvalue()
        assert "Would install vscode (repository: vscode)" in output
        assert "Would add development aliases" in output


class TestApplyPackageSet:
    """The generic install operation over declarative data."""

    @pytest.mark.asyncio
    async def test_set_without_repository(self, provisioner, command_runner):
        """Test a plain set is a single install command."""
        from devbox.provisioner.packages import PackageCategory, PackageSet

        package_set = PackageSet(
            name="extras",
            category=PackageCategory.CLI_TOOLS,
            display="just",
            packages=["just"],
        )

        await provisioner.apply_package_set(package_set)

        assert command_runner.calls == [["dnf", "install", "-y", "just"]]
