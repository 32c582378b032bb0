"""
Execution context detection and routing.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union


def detect_container(marker: Path) -> bool:
    """True when the container marker file exists."""
    return marker.exists()


@dataclass(frozen=True)
class EnterExisting:
    """Dispatch the provisioner into an existing container."""

    name: str
    kind: str = "enter_existing"


@dataclass(frozen=True)
class CreateAndEnter:
    """Create the container, then dispatch the provisioner into it."""

    name: str
    image: str
    kind: str = "create_and_enter"


@dataclass(frozen=True)
class RunLocally:
    """Already inside the container: install and configure here."""

    kind: str = "run_locally"


RouteDecision = Union[EnterExisting, CreateAndEnter, RunLocally]


def decide_route(
    inside_container: bool, existing: Iterable[str], name: str, image: str
) -> RouteDecision:
    """
    Decide what a provisioning run does.

    ``existing`` is only consulted outside a container, and names must
    match exactly.
    """
    if inside_container:
        return RunLocally()
    if name in set(existing):
        return EnterExisting(name)
    return CreateAndEnter(name, image)
