"""
Idempotent shell profile edits.

A block is appended only when its marker line is absent. Markers are
compared against whole lines, so an unrelated line that merely contains
the marker text does not count as the block being present.
"""

import io
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, TextIO


@dataclass(frozen=True)
class ProfileBlock:
    """Text appended to the profile, guarded by a marker line it contains."""

    label: str
    marker: str
    text: str


CARGO_PATH_BLOCK = ProfileBlock(
    label="cargo bin to PATH",
    marker='export PATH="$HOME/.cargo/bin:$PATH"',
    text='export PATH="$HOME/.cargo/bin:$PATH"\n',
)

ALIAS_BLOCK = ProfileBlock(
    label="development aliases",
    marker="# Development aliases",
    text=(
        "\n"
        "# Development aliases\n"
        "alias ls='eza'\n"
        "alias cat='bat'\n"
        "alias find='fd'\n"
        "alias grep='rg'\n"
        "\n"
    ),
)

DEFAULT_PROFILE_BLOCKS = (CARGO_PATH_BLOCK, ALIAS_BLOCK)

# Shell profiles are not guaranteed to be UTF-8
PROFILE_ERRORS = "surrogateescape"


def has_marker(content: str, marker: str) -> bool:
    """Whether ``content`` has a line equal to ``marker``, ignoring edge whitespace."""
    marker = marker.strip()
    return any(line.strip() == marker for line in content.splitlines())


def missing_blocks(content: str, blocks: Iterable[ProfileBlock]) -> List[ProfileBlock]:
    """Blocks whose marker is absent from ``content``."""
    return [block for block in blocks if not has_marker(content, block.marker)]


def append_missing_blocks(
    handle: TextIO, blocks: Iterable[ProfileBlock]
) -> List[ProfileBlock]:
    """
    Append each block whose marker is not yet in the file.

    The content is re-read before every append. ``handle`` must be readable
    and writable, e.g. a file opened with ``a+`` or an ``io.StringIO``.

    Returns:
        List[ProfileBlock]: Blocks that were appended
    """
    appended: List[ProfileBlock] = []

    for block in blocks:
        handle.seek(0)
        content = handle.read()
        if has_marker(content, block.marker):
            continue

        handle.seek(0, io.SEEK_END)
        if content and not content.endswith("\n"):
            handle.write("\n")
        handle.write(block.text)
        handle.flush()
        appended.append(block)

    return appended


@contextmanager
def open_profile(path: Path) -> Iterator[TextIO]:
    """
    Open the profile for reading and appending, creating it if missing.

    Bytes that are not valid UTF-8 are read and written back unchanged.
    """
    with open(path, "a+", encoding="utf-8", errors=PROFILE_ERRORS) as handle:
        yield handle
