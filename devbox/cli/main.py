"""
Main CLI interface for devbox.

This module provides the command-line interface that provisions the
Fedora development container and inspects its configuration and logs.
"""

import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import click
from pydantic import ValidationError

from .. import __version__
from ..config.settings import (
    AppSettings,
    MonitoringSettings,
    check_container_name,
    get_settings,
)
from ..logging import LogManager, ProgressTracker
from ..provisioner.packages import (
    CATEGORY_LABELS,
    DEFAULT_PACKAGE_SETS,
    group_by_category,
)
from ..provisioner.provisioner import Provisioner
from ..tools.base import CommandError, ToolConfig, ToolError
from ..tools.distrobox import DistroboxTool
from ..tools.dnf import DnfTool
from ..utils.directories import get_secure_app_directory

LOG_FILE_NAME = "devbox.log"


class StructuredFormatter(logging.Formatter):
    """Formatter writing one JSON object per record, including ``extra`` fields."""

    RESERVED = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
    }

    def format(self, record):
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in self.RESERVED and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_log_dir(monitoring: MonitoringSettings) -> Path:
    """Directory holding ``devbox.log`` and ``events.jsonl``."""
    if monitoring.log_dir:
        log_dir = Path(monitoring.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
    return get_secure_app_directory("devbox", "logs")


def configure_logging(monitoring: MonitoringSettings, verbose: bool = False) -> Path:
    """
    Send log records to the log file, and to stderr when ``verbose``.

    Standard output stays reserved for progress messages.
    """
    log_dir = get_log_dir(monitoring)

    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
    if monitoring.log_format == "json":
        file_handler.setFormatter(StructuredFormatter())
    else:
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else monitoring.log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(console_handler)

    return log_dir


def exit_status(returncode: int) -> int:
    """Shell exit status for a child's return code; signals become 128 + N."""
    if returncode < 0:
        return 128 - returncode
    return returncode or 1


def validate_container_name(ctx, param, value):
    """Apply the configured-name rules to the CONTAINER_NAME argument."""
    if value is None:
        return None
    try:
        return check_container_name(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def load_settings() -> AppSettings:
    """Load settings, exiting with status 2 on invalid configuration."""
    try:
        return get_settings()
    except ValidationError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(2)


# CLI Commands


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Also log to stderr")
@click.pass_context
def cli(ctx, verbose):
    """devbox - Fedora development container provisioner"""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("container_name", required=False, callback=validate_container_name)
@click.option("--dry-run", is_flag=True, help="Show what would be done, change nothing")
@click.pass_context
def provision(ctx, container_name, dry_run):
    """Create or enter the development container and set it up.

    CONTAINER_NAME defaults to "fedora-dev".

    Examples:
      devbox provision
      devbox provision my-box
      devbox provision --dry-run
    """
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    settings = load_settings()
    log_dir = configure_logging(settings.monitoring, verbose)

    async def _provision():
        log_manager = LogManager(str(log_dir))
        provisioner = Provisioner(
            settings.provisioner,
            log_manager=log_manager,
            progress_tracker=ProgressTracker(log_manager),
        )
        return await provisioner.provision(container_name, dry_run=dry_run)

    try:
        asyncio.run(_provision())
    except CommandError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(exit_status(e.returncode))
    except ToolError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
def packages():
    """List the package sets installed into the container."""
    click.echo("📦 Package sets:")
    click.echo()

    for category, sets in group_by_category(DEFAULT_PACKAGE_SETS).items():
        click.echo(f"{CATEGORY_LABELS[category]}:")
        for package_set in sets:
            click.echo(f"  {package_set.name}: {' '.join(package_set.packages)}")
            if package_set.repository:
                click.echo(
                    f"    repository: {package_set.repository.repo_id} "
                    f"({package_set.repository.baseurl})"
                )
        click.echo()


@cli.command()
def tools():
    """Show status of the external tools."""
    settings = load_settings().provisioner

    async def _tools():
        return {
            "distrobox": await DistroboxTool(
                ToolConfig(name="distrobox", executable=settings.runtime_command)
            ).get_status(),
            "dnf": await DnfTool(
                ToolConfig(
                    name="dnf",
                    executable=settings.package_manager,
                    use_sudo=settings.needs_sudo,
                )
            ).get_status(),
        }

    result = asyncio.run(_tools())

    click.echo("🔧 Tool Status:")
    click.echo()

    for tool_name, tool_info in result.items():
        if tool_info.get("status") == "available":
            click.echo(f"✅ {tool_name}: {tool_info.get('description', '')}")
            click.echo(f"   Version: {tool_info.get('version') or 'Unknown'}")
            click.echo(f"   Actions: {', '.join(tool_info.get('actions', []))}")
        else:
            click.echo(f"❌ {tool_name}: {tool_info.get('error', 'Not available')}")
        click.echo()


@cli.command(name="config")
def show_config():
    """Show the effective configuration as JSON."""
    settings = load_settings()
    click.echo(json.dumps(settings.get_display_dict(), indent=2, default=str))


@cli.command()
@click.option("--lines", "-n", default=50, help="Number of log lines to show")
def logs(lines):
    """Show recent log lines."""
    settings = load_settings()

    async def _logs():
        log_file = get_log_dir(settings.monitoring) / LOG_FILE_NAME

        if not log_file.exists():
            click.echo("📄 No logs found")
            return

        async with aiofiles.open(log_file, "r") as f:
            content = await f.read()
        log_lines = content.splitlines()

        recent_lines = log_lines[-lines:] if len(log_lines) > lines else log_lines

        click.echo(f"📄 Recent logs (last {len(recent_lines)} lines):")
        click.echo()

        for line in recent_lines:
            click.echo(line)

    try:
        asyncio.run(_logs())
    except OSError as e:
        click.echo(f"❌ Error reading logs: {e}", err=True)
        sys.exit(1)


@cli.command()
def version():
    """Show version information."""
    click.echo("devbox Fedora development container provisioner")
    click.echo(f"Version: {__version__}")


def provision_main(argv: Optional[list] = None) -> None:
    """Entry point for the standalone ``devbox-provision`` command."""
    provision.main(args=argv, prog_name="devbox-provision", obj={})


if __name__ == "__main__":
    cli()
