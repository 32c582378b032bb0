"""
Development container provisioning.
"""

from .context import CreateAndEnter, EnterExisting, RunLocally, decide_route
from .packages import DEFAULT_PACKAGE_SETS, ExternalRepository, PackageSet
from .profile import DEFAULT_PROFILE_BLOCKS, ProfileBlock, append_missing_blocks
from .provisioner import ProvisionOutcome, Provisioner

__all__ = [
    "CreateAndEnter",
    "DEFAULT_PACKAGE_SETS",
    "DEFAULT_PROFILE_BLOCKS",
    "EnterExisting",
    "ExternalRepository",
    "PackageSet",
    "ProfileBlock",
    "ProvisionOutcome",
    "Provisioner",
    "RunLocally",
    "append_missing_blocks",
    "decide_route",
]
