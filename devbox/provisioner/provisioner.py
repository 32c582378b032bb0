"""
Development environment provisioner.

Outside the development container the provisioner looks the container up,
creates it if needed and dispatches ``provision`` inside it. Inside, it
installs the package sets, patches the shell profile and prints a summary.
Every external command runs to completion before the next one starts and
the first fatal failure aborts the run.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from pydantic import BaseModel, Field

from ..config.settings import ProvisionerSettings
from ..logging import ExecutionCompleted, ExecutionStarted, LogManager, ProgressTracker
from ..tools.base import CommandError, ToolConfig, ToolError
from ..tools.distrobox import DistroboxTool
from ..tools.dnf import DnfTool
from .context import (
    CreateAndEnter,
    EnterExisting,
    RouteDecision,
    RunLocally,
    decide_route,
    detect_container,
)
from .packages import DEFAULT_PACKAGE_SETS, ExternalRepository, PackageSet
from .profile import (
    DEFAULT_PROFILE_BLOCKS,
    PROFILE_ERRORS,
    ProfileBlock,
    append_missing_blocks,
    missing_blocks,
    open_profile,
)
from .report import display_path, render_banner, render_summary

REPOS_DIR = Path("/etc/yum.repos.d")

# Installed in the container before the provisioner is handed off to it
BOOTSTRAP_PACKAGES = ["python3"]


class ProvisionOutcome(BaseModel):
    """What a provisioning run did."""

    container_name: str
    inside_container: bool
    route: str = ""
    dry_run: bool = False
    created_container: bool = False
    installed_sets: List[str] = Field(default_factory=list)
    registered_repositories: List[str] = Field(default_factory=list)
    profile_blocks_added: List[str] = Field(default_factory=list)
    duration: Optional[float] = None


class Provisioner:
    """Runs the detect, route, install, configure and report sequence."""

    def __init__(
        self,
        settings: ProvisionerSettings,
        runtime: Optional[DistroboxTool] = None,
        package_manager: Optional[DnfTool] = None,
        package_sets: Sequence[PackageSet] = DEFAULT_PACKAGE_SETS,
        profile_blocks: Sequence[ProfileBlock] = DEFAULT_PROFILE_BLOCKS,
        log_manager: Optional[LogManager] = None,
        progress_tracker: Optional[ProgressTracker] = None,
        repos_dir: Path = REPOS_DIR,
    ):
        self.settings = settings
        self.logger = logging.getLogger(self.__class__.__name__)
        self.correlation_id = str(uuid.uuid4())

        self.runtime = runtime or DistroboxTool(
            ToolConfig(name="distrobox", executable=settings.runtime_command)
        )
        self.package_manager = package_manager or DnfTool(
            ToolConfig(
                name="dnf",
                executable=settings.package_manager,
                use_sudo=settings.needs_sudo,
            )
        )
        self.package_sets = list(package_sets)
        self.profile_blocks = list(profile_blocks)
        self.repos_dir = repos_dir

        self.log_manager = log_manager or LogManager()
        self.progress_tracker = progress_tracker or ProgressTracker(self.log_manager)

    async def provision(
        self, container_name: Optional[str] = None, dry_run: bool = False
    ) -> ProvisionOutcome:
        """
        Provision the development environment.

        Args:
            container_name: Target container, defaults to the configured name
            dry_run: Only list containers and print what would be done

        Returns:
            ProvisionOutcome: Summary of the actions taken

        Raises:
            ToolError: On the first fatal command failure
        """
        name = container_name or self.settings.container_name
        execution_id = str(uuid.uuid4())
        start_time = datetime.utcnow()
        tracker = self.progress_tracker

        tracker.banner(
            "Fedora Distrobox Development Environment Setup", render_banner(name)
        )

        inside = detect_container(self.settings.container_marker)
        outcome = ProvisionOutcome(
            container_name=name, inside_container=inside, dry_run=dry_run
        )

        await self.log_manager.emit_event(
            ExecutionStarted(
                correlation_id=self.correlation_id,
                execution_id=execution_id,
                container_name=name,
                inside_container=inside,
            )
        )

        try:
            if inside:
                tracker.log_step_success(
                    "Already inside a container, proceeding with installation..."
                )
                existing: List[str] = []
            else:
                tracker.add_step_message(
                    "Not in a container, will create/enter distrobox..."
                )
                existing = await self.runtime.list_containers()

            route = decide_route(inside, existing, name, self.settings.image)
            outcome.route = route.kind

            if dry_run:
                self._show_plan(route)
            elif isinstance(route, RunLocally):
                await self._run_locally(outcome, execution_id)
            else:
                await self._dispatch(route, outcome)

        except ToolError as e:
            duration = (datetime.utcnow() - start_time).total_seconds()
            returncode = e.returncode if isinstance(e, CommandError) else 1

            await self.log_manager.emit_event(
                ExecutionCompleted(
                    correlation_id=self.correlation_id,
                    execution_id=execution_id,
                    container_name=name,
                    route=outcome.route,
                    success=False,
                    duration_seconds=duration,
                    returncode=returncode,
                )
            )
            self.logger.error(
                "Provisioning failed",
                extra={
                    "correlation_id": self.correlation_id,
                    "execution_id": execution_id,
                    "container": name,
                    "route": outcome.route,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                    "returncode": returncode,
                    "duration_seconds": duration,
                },
            )
            raise

        outcome.duration = (datetime.utcnow() - start_time).total_seconds()
        await self.log_manager.emit_event(
            ExecutionCompleted(
                correlation_id=self.correlation_id,
                execution_id=execution_id,
                container_name=name,
                route=outcome.route,
                success=True,
                duration_seconds=outcome.duration,
            )
        )
        return outcome

    def reentry_command(self, container_name: str) -> List[str]:
        """Command that runs ``provision`` again inside the container."""
        return [*self.settings.reentry_argv, "provision", container_name]

    def bootstrap_command(self) -> List[str]:
        """Install command making the container able to run the provisioner."""
        cmd = [self.settings.package_manager, "install", "-y", *BOOTSTRAP_PACKAGES]
        if self.settings.needs_sudo:
            return ["sudo", *cmd]
        return cmd

    async def bootstrap_container(self, container_name: str) -> None:
        """
        Install the interpreter inside the container and check the re-entry
        command can be started there.

        Raises:
            ToolError: When the re-entry interpreter is missing in the container
        """
        self.progress_tracker.add_step_message(
            f"Installing {', '.join(BOOTSTRAP_PACKAGES)} in {container_name}..."
        )
        await self.runtime.enter_container(container_name, self.bootstrap_command())

        interpreter = self.settings.reentry_argv[0]
        if not await self.runtime.command_available(container_name, interpreter):
            raise ToolError(
                f"{interpreter} cannot be run inside container {container_name}; "
                f"set DEVBOX_REENTRY_COMMAND to a command available there, "
                f"e.g. 'python3 -m devbox'"
            )

    async def _dispatch(
        self, route: RouteDecision, outcome: ProvisionOutcome
    ) -> None:
        tracker = self.progress_tracker

        if isinstance(route, CreateAndEnter):
            tracker.add_step_message(
                f"Creating new distrobox container: {route.name}"
            )
            await self.runtime.create_container(route.name, route.image)
            outcome.created_container = True
        elif isinstance(route, EnterExisting):
            tracker.add_step_message(f"Container '{route.name}' already exists")

        await self.bootstrap_container(route.name)

        tracker.add_step_message("Entering container to install packages...")
        await self.runtime.enter_container(
            route.name, self.reentry_command(route.name)
        )

        tracker.print_lines(self._summary(inside_container=False, name=route.name))

    async def _run_locally(self, outcome: ProvisionOutcome, execution_id: str) -> None:
        tracker = self.progress_tracker

        async with tracker.track_step_execution(
            "install_packages", "Install packages", self.correlation_id, execution_id
        ):
            tracker.add_step_message("Installing development packages...")
            for package_set in self.package_sets:
                await self.apply_package_set(package_set, outcome)
            tracker.log_step_success("All packages installed successfully!")

        async with tracker.track_step_execution(
            "configure_shell", "Configure shell", self.correlation_id, execution_id
        ):
            tracker.add_step_message("Configuring shell environment...")
            added = self.configure_shell()
            profile = display_path(self.settings.profile_path)
            for block in added:
                tracker.log_step_success(f"Added {block.label} to {profile}", indent=1)
            outcome.profile_blocks_added = [block.label for block in added]
            tracker.log_step_success("Shell configuration complete!")

        tracker.print_lines(
            self._summary(inside_container=True, name=outcome.container_name)
        )

    async def apply_package_set(
        self, package_set: PackageSet, outcome: Optional[ProvisionOutcome] = None
    ) -> None:
        """Register the set's repository if it has one, then install the set."""
        self.progress_tracker.add_step_message(
            f"Installing {package_set.display}...", indent=1
        )

        if package_set.repository is not None:
            await self.register_repository(package_set.repository)
            await self.package_manager.refresh_metadata()
            if outcome is not None:
                outcome.registered_repositories.append(package_set.repository.repo_id)

        await self.package_manager.install(package_set.packages)
        if outcome is not None:
            outcome.installed_sets.append(package_set.name)

    async def register_repository(self, repository: ExternalRepository) -> bool:
        """Import the signing key and write the repository definition."""
        await self.package_manager.import_key(repository.gpgkey)
        return await self.package_manager.write_repository(
            self.repos_dir / repository.filename, repository.render()
        )

    def configure_shell(self, handle: Optional[TextIO] = None) -> List[ProfileBlock]:
        """Append missing profile blocks to ``handle`` or the configured profile."""
        if handle is not None:
            return append_missing_blocks(handle, self.profile_blocks)

        with open_profile(self.settings.profile_path) as profile:
            return append_missing_blocks(profile, self.profile_blocks)

    def _show_plan(self, route: RouteDecision) -> None:
        tracker = self.progress_tracker
        tracker.add_step_message("Dry run, no changes will be made")

        if isinstance(route, RunLocally):
            for package_set in self.package_sets:
                repository = (
                    f" (repository: {package_set.repository.repo_id})"
                    if package_set.repository
                    else ""
                )
                tracker.add_step_message(
                    f"Would install {package_set.name}{repository}: "
                    f"{' '.join(package_set.packages)}",
                    indent=1,
                )

            profile_path = self.settings.profile_path
            content = (
                profile_path.read_text(encoding="utf-8", errors=PROFILE_ERRORS)
                if profile_path.exists()
                else ""
            )
            for block in missing_blocks(content, self.profile_blocks):
                tracker.add_step_message(
                    f"Would add {block.label} to {display_path(profile_path)}",
                    indent=1,
                )
            return

        if isinstance(route, CreateAndEnter):
            tracker.add_step_message(
                f"Would create container {route.name} from {route.image}", indent=1
            )
        tracker.add_step_message(
            f"Would run in {route.name}: {' '.join(self.bootstrap_command())}",
            indent=1,
        )
        tracker.add_step_message(
            f"Would run in {route.name}: {' '.join(self.reentry_command(route.name))}",
            indent=1,
        )

    def _summary(self, inside_container: bool, name: str) -> List[str]:
        return render_summary(
            inside_container,
            name,
            self.settings.profile_path,
            self.package_sets,
            runtime_command=self.settings.runtime_command,
        )
