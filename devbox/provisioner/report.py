"""
Completion summary shown at the end of a provisioning run.
"""

from pathlib import Path
from typing import List, Sequence

from .packages import CATEGORY_LABELS, PackageSet, group_by_category

RECOMMENDED_EXTENSIONS = [
    "ms-python.python",
    "rust-lang.rust-analyzer",
    "golang.go",
    "github.copilot",
    "esbenp.prettier-vscode",
    "eamodio.gitlens",
]

RULE = "=" * 50


def display_path(path: Path) -> str:
    """Render ``path`` with ``~`` for the home directory."""
    try:
        return f"~/{path.relative_to(Path.home())}"
    except ValueError:
        return str(path)


def render_banner(container_name: str) -> List[str]:
    return [f"Container: {container_name}"]


def render_summary(
    inside_container: bool,
    container_name: str,
    profile_path: Path,
    package_sets: Sequence[PackageSet],
    runtime_command: str = "distrobox",
) -> List[str]:
    """Build the completion summary; next steps depend only on the context."""
    lines = [
        "",
        RULE,
        "✓ Development environment setup complete!",
        RULE,
        "",
        "Installed tools:",
    ]

    for category, sets in group_by_category(package_sets).items():
        label = CATEGORY_LABELS[category]
        lines.append(f"  {label}: {', '.join(s.display for s in sets)}")
    lines.append("")

    if inside_container:
        lines.append("Reload your shell to apply changes:")
        lines.append(f"  source {display_path(profile_path)}")
    else:
        lines.append("To enter your development container, run:")
        lines.append(f"  {runtime_command} enter {container_name}")

    lines.append("")
    lines.append("Recommended VS Code extensions:")
    lines.extend(f"  - {extension}" for extension in RECOMMENDED_EXTENSIONS)
    lines.append("")
    return lines
