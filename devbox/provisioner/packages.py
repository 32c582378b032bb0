"""
Package sets installed into the development container.

Each set is installed with a single package manager call, in table order.
A set that needs a third-party repository carries its definition, and the
repository is registered before the set is installed.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field


class PackageCategory(Enum):
    """Tool categories shown in the completion summary."""

    LANGUAGES = "languages"
    EDITORS = "editors"
    CLI_TOOLS = "cli_tools"
    BUILD_TOOLS = "build_tools"


CATEGORY_LABELS: Dict[PackageCategory, str] = {
    PackageCategory.LANGUAGES: "Languages",
    PackageCategory.EDITORS: "Editors",
    PackageCategory.CLI_TOOLS: "CLI Tools",
    PackageCategory.BUILD_TOOLS: "Build Tools",
}


class ExternalRepository(BaseModel):
    """A yum/dnf repository definition with its signing key."""

    repo_id: str
    name: str
    baseurl: str
    gpgkey: str
    enabled: bool = True
    gpgcheck: bool = True

    @property
    def filename(self) -> str:
        return f"{self.repo_id}.repo"

    def render(self) -> str:
        """Render the ``.repo`` file content."""
        lines = [
            f"[{self.repo_id}]",
            f"name={self.name}",
            f"baseurl={self.baseurl}",
            f"enabled={int(self.enabled)}",
            f"gpgcheck={int(self.gpgcheck)}",
            f"gpgkey={self.gpgkey}",
        ]
        return "\n".join(lines) + "\n"


class PackageSet(BaseModel):
    """A named group of packages installed together."""

    name: str
    category: PackageCategory
    display: str
    packages: List[str] = Field(min_length=1)
    repository: Optional[ExternalRepository] = None


VSCODE_REPOSITORY = ExternalRepository(
    repo_id="vscode",
    name="Visual Studio Code",
    baseurl="https://packages.microsoft.com/yumrepos/vscode",
    gpgkey="https://packages.microsoft.com/keys/microsoft.asc",
)

DEFAULT_PACKAGE_SETS: Tuple[PackageSet, ...] = (
    PackageSet(
        name="languages",
        category=PackageCategory.LANGUAGES,
        display="Python 3, Go, Rust (cargo, rustc, rust-analyzer)",
        packages=[
            "python3",
            "python3-pip",
            "python3-devel",
            "golang",
            "cargo",
            "rust",
            "rust-src",
            "rust-analyzer",
        ],
    ),
    PackageSet(
        name="vscode",
        category=PackageCategory.EDITORS,
        display="VS Code",
        packages=["code"],
        repository=VSCODE_REPOSITORY,
    ),
    PackageSet(
        name="terminal-editors",
        category=PackageCategory.EDITORS,
        display="Neovim",
        packages=["neovim"],
    ),
    PackageSet(
        name="cli-tools",
        category=PackageCategory.CLI_TOOLS,
        display="ripgrep, fd, fzf, bat, eza, jq, yq, and more",
        packages=[
            "git",
            "tmux",
            "ripgrep",
            "fd-find",
            "fzf",
            "bat",
            "eza",
            "jq",
            "yq",
            "tree",
            "htop",
            "curl",
            "wget",
        ],
    ),
    PackageSet(
        name="build-tools",
        category=PackageCategory.BUILD_TOOLS,
        display="gcc, cmake, make, autoconf, and more",
        packages=[
            "make",
            "gcc",
            "gcc-c++",
            "cmake",
            "autoconf",
            "automake",
            "libtool",
            "pkg-config",
        ],
    ),
)


def group_by_category(
    package_sets: Sequence[PackageSet],
) -> Dict[PackageCategory, List[PackageSet]]:
    """Group sets by category, keeping first-seen category order."""
    grouped: Dict[PackageCategory, List[PackageSet]] = {}
    for package_set in package_sets:
        grouped.setdefault(package_set.category, []).append(package_set)
    return grouped
